from .aggregation import aggregate, expand_days
from .hours import compute_hours
from .models import PayPeriod, TimeEntry, Timesheet, TimesheetStatus, Totals
from .pay_period import PAY_PERIOD_ANCHOR, resolve_pay_period
from .service import TimesheetService
from .storage import DataStore

__all__ = [
    "PAY_PERIOD_ANCHOR",
    "DataStore",
    "PayPeriod",
    "TimeEntry",
    "Timesheet",
    "TimesheetService",
    "TimesheetStatus",
    "Totals",
    "aggregate",
    "compute_hours",
    "expand_days",
    "resolve_pay_period",
]

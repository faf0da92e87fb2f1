from .time_entry import TimeEntry
from .timesheet import Timesheet
from .user import User

__all__ = ["User", "Timesheet", "TimeEntry"]

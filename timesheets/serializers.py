from __future__ import annotations
from datetime import date, datetime
from typing import Any, Dict, Optional

from .aggregation import expand_days
from .models import DayRow, TimeEntry, Timesheet, Totals, UserSummary
from .workflow import TRANSITIONS


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_entry(entry: TimeEntry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "timesheetId": entry.timesheet_id,
        "date": entry.date.isoformat(),
        "startTime": entry.start_time,
        "endTime": entry.end_time,
        "breakMinutes": entry.break_minutes,
        "totalHours": entry.total_hours,
    }


def serialize_totals(totals: Totals) -> Dict[str, float]:
    return {
        "week1Total": totals.week1_total,
        "week2Total": totals.week2_total,
        "grandTotal": totals.grand_total,
    }


def serialize_user(user: Optional[UserSummary]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {
        "id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "email": user.email,
        "department": user.department,
    }


def serialize_day(row: DayRow) -> Dict[str, Any]:
    return {
        "date": row.date.isoformat(),
        "week": row.week,
        "entryId": row.entry_id,
        "startTime": row.start_time,
        "endTime": row.end_time,
        "breakMinutes": row.break_minutes,
        "totalHours": row.total_hours,
    }


def serialize_timesheet(timesheet: Timesheet, *, include_days: bool = False) -> Dict[str, Any]:
    entries = sorted(timesheet.entries, key=lambda e: e.date)
    payload: Dict[str, Any] = {
        "id": timesheet.id,
        "userId": timesheet.user_id,
        "payPeriodStart": timesheet.pay_period_start.isoformat(),
        "payPeriodEnd": timesheet.pay_period_end.isoformat(),
        "status": timesheet.status.value,
        "nextStatuses": sorted(status.value for status in TRANSITIONS[timesheet.status]),
        "timeEntries": [serialize_entry(e) for e in entries],
        **serialize_totals(timesheet.totals),
        "submittedAt": _iso(timesheet.submitted_at),
        "approvedAt": _iso(timesheet.approved_at),
        "approvedBy": timesheet.approved_by,
        "rejectedAt": _iso(timesheet.rejected_at),
        "rejectedBy": timesheet.rejected_by,
        "rejectionReason": timesheet.rejection_reason,
        "createdAt": _iso(timesheet.created_at),
        "user": serialize_user(timesheet.user),
    }
    if include_days:
        payload["days"] = [serialize_day(row) for row in expand_days(entries, timesheet.pay_period)]
    return payload


def parse_date(value: Any) -> date:
    """Accept a ``date``, a ``datetime`` or ISO text (date or timestamp)."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if len(text) > 10:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text)

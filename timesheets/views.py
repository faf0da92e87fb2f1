from __future__ import annotations
from typing import Any, Dict, Iterable

from .pay_period import format_day
from .serializers import parse_date


def format_timesheet(timesheet: Dict[str, Any]) -> str:
    """Render a serialized timesheet (with ``days``) as the fourteen-day grid."""

    rows = [
        f"Timesheet #{timesheet['id']}  {timesheet['payPeriodStart']} - {timesheet['payPeriodEnd']}  [{timesheet['status']}]",
        "Wk  Date              Start  End    Break  Hours",
    ]
    for day in timesheet.get("days", []):
        label = format_day(parse_date(day["date"]))
        rows.append(
            f"{day['week']:>2}  {label:<16}  {day['startTime'] or '-':<5}  {day['endTime'] or '-':<5}  "
            f"{day['breakMinutes']:>5}  {day['totalHours']:>5.2f}"
        )
    rows.append(f"Week 1: {timesheet['week1Total']:.2f}  Week 2: {timesheet['week2Total']:.2f}  Total: {timesheet['grandTotal']:.2f}")
    if timesheet.get("rejectionReason"):
        rows.append(f"Rejected: {timesheet['rejectionReason']}")
    return "\n".join(rows)


def format_timesheet_list(timesheets: Iterable[Dict[str, Any]]) -> str:
    rows = ["ID    Period                    Status     Hours  Employee"]
    for ts in timesheets:
        user = ts.get("user") or {}
        name = " ".join(part for part in (user.get("firstName"), user.get("lastName")) if part) or f"user {ts['userId']}"
        period = f"{ts['payPeriodStart']} - {ts['payPeriodEnd']}"
        rows.append(f"{ts['id']:<5} {period:<25} {ts['status']:<10} {ts['grandTotal']:>5.2f}  {name}")
    return "\n".join(rows)

from __future__ import annotations
from datetime import date, timedelta
from typing import Dict, Iterable, List

from .hours import round_hours
from .models import DayRow, PayPeriod, TimeEntry, Totals


def aggregate(entries: Iterable[TimeEntry], period_start: date) -> Totals:
    week_one_end = period_start + timedelta(days=6)
    week1 = 0.0
    week2 = 0.0
    for entry in entries:
        hours = entry.total_hours or 0.0
        if entry.date <= week_one_end:
            week1 += hours
        else:
            week2 += hours

    return Totals(
        week1_total=round_hours(week1),
        week2_total=round_hours(week2),
        grand_total=round_hours(week1 + week2),
    )


def expand_days(entries: Iterable[TimeEntry], period: PayPeriod) -> List[DayRow]:
    """Fill the sparse entry list out to one row per day of the period."""

    by_day: Dict[date, TimeEntry] = {entry.date: entry for entry in entries}
    rows: List[DayRow] = []
    for day in period.days():
        row = DayRow(date=day, week=period.week_of(day))
        entry = by_day.get(day)
        if entry is not None:
            row.entry_id = entry.id
            row.start_time = entry.start_time
            row.end_time = entry.end_time
            row.break_minutes = entry.break_minutes
            row.total_hours = entry.total_hours or 0.0
        rows.append(row)
    return rows

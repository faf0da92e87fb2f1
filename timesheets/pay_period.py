from __future__ import annotations
from datetime import date, datetime, timedelta
from typing import Dict, Union

from .models import PayPeriod

# Period index 0 starts on this Monday.
PAY_PERIOD_ANCHOR = date(2025, 1, 6)
PERIOD_LENGTH_DAYS = 14


def to_day(instant: Union[date, datetime]) -> date:
    if isinstance(instant, datetime):
        return instant.date()
    return instant


def resolve_pay_period(instant: Union[date, datetime], anchor: date = PAY_PERIOD_ANCHOR) -> PayPeriod:
    """Return the bi-weekly pay period containing ``instant``.

    The time of day is dropped before bucketing, and instants before the anchor
    resolve to negative period indexes.
    """

    day = to_day(instant)
    index = (day - anchor).days // PERIOD_LENGTH_DAYS
    start = anchor + timedelta(days=index * PERIOD_LENGTH_DAYS)
    return PayPeriod(start=start, end=start + timedelta(days=PERIOD_LENGTH_DAYS - 1))


def format_day(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}, {day.year}"


def format_period(period: PayPeriod) -> str:
    return f"{format_day(period.start)} - {format_day(period.end)}"


def describe_pay_period(period: PayPeriod) -> Dict[str, str]:
    return {
        "start": period.start.isoformat(),
        "end": period.end.isoformat(),
        "startFormatted": format_day(period.start),
        "endFormatted": format_day(period.end),
    }

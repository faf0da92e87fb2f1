from __future__ import annotations
from datetime import time
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Union

from .models import SchedulePreset

ClockValue = Union[str, time, None]

SCHEDULE_PRESETS: List[SchedulePreset] = [
    SchedulePreset("8-4:30", "08:00", "16:30", 30),
    SchedulePreset("9-5", "09:00", "17:00", 0),
    SchedulePreset("7-3:30", "07:00", "15:30", 30),
    SchedulePreset("8-5", "08:00", "17:00", 60),
    SchedulePreset("6-2:30", "06:00", "14:30", 30),
]


def round_hours(value: float) -> float:
    """Round half-up to two decimals."""

    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def minutes_since_midnight(value: Union[str, time]) -> int:
    """Convert ``HH:MM`` (or a ``time``) to minutes past midnight.

    Raises ``ValueError`` for anything that is not a valid wall-clock time.
    """

    if isinstance(value, time):
        return value.hour * 60 + value.minute
    hours, sep, minutes = value.strip().partition(":")
    if not sep or not hours.isdigit() or not minutes.isdigit() or len(minutes) != 2:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    hour, minute = int(hours), int(minutes)
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return hour * 60 + minute


def normalize_clock(value: ClockValue) -> Optional[str]:
    """Return ``HH:MM`` text for a clock value, or None when it is blank."""

    if value is None or value == "":
        return None
    minutes = minutes_since_midnight(value)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def compute_hours(start_time: ClockValue, end_time: ClockValue, break_minutes: int = 0) -> float:
    if not start_time or not end_time:
        return 0.0

    worked = minutes_since_midnight(end_time) - minutes_since_midnight(start_time) - (break_minutes or 0)
    # End time is always on the same day as start; no overnight wrap.
    if worked < 0:
        worked = 0
    return round_hours(worked / 60)


def find_preset(label: str) -> Optional[SchedulePreset]:
    for preset in SCHEDULE_PRESETS:
        if preset.label == label:
            return preset
    return None

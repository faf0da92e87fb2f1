from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterator, List, Optional


class TimesheetStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class PayPeriod:
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def week_of(self, day: date) -> int:
        """Return 1 for the first seven days of the period, 2 otherwise."""

        return 1 if day <= self.start + timedelta(days=6) else 2


@dataclass
class UserSummary:
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    department: Optional[str] = None


@dataclass
class TimeEntry:
    id: Optional[int]
    timesheet_id: int
    date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    break_minutes: int = 0
    total_hours: float = 0.0

    @property
    def is_set(self) -> bool:
        return bool(self.start_time and self.end_time)


@dataclass
class Totals:
    week1_total: float = 0.0
    week2_total: float = 0.0
    grand_total: float = 0.0


@dataclass
class Timesheet:
    id: Optional[int]
    user_id: int
    pay_period_start: date
    pay_period_end: date
    status: TimesheetStatus = TimesheetStatus.DRAFT
    entries: List[TimeEntry] = field(default_factory=list)
    week1_total: float = 0.0
    week2_total: float = 0.0
    grand_total: float = 0.0
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    user: Optional[UserSummary] = None

    @property
    def pay_period(self) -> PayPeriod:
        return PayPeriod(start=self.pay_period_start, end=self.pay_period_end)

    @property
    def totals(self) -> Totals:
        return Totals(
            week1_total=self.week1_total,
            week2_total=self.week2_total,
            grand_total=self.grand_total,
        )

    def apply_totals(self, totals: Totals) -> None:
        self.week1_total = totals.week1_total
        self.week2_total = totals.week2_total
        self.grand_total = totals.grand_total

    def entry_for(self, day: date) -> Optional[TimeEntry]:
        for entry in self.entries:
            if entry.date == day:
                return entry
        return None


@dataclass
class DayRow:
    """One line of the fourteen-day grid; unset days carry no entry id."""

    date: date
    week: int
    entry_id: Optional[int] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    break_minutes: int = 0
    total_hours: float = 0.0


@dataclass(frozen=True)
class SchedulePreset:
    label: str
    start_time: str
    end_time: str
    break_minutes: int = 0

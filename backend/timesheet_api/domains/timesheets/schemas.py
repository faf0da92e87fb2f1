"""Wire schema (v1) for the timesheet endpoints.

Field names are camelCase to match the desktop client. Every response is an
envelope carrying ``success``; failures always use ``FailureEnvelope``.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

Status = Literal["DRAFT", "SUBMITTED", "APPROVED", "REJECTED"]


class TotalsOut(BaseModel):
    week1Total: float
    week2Total: float
    grandTotal: float


class TimeEntryOut(BaseModel):
    id: int
    timesheetId: int
    date: date
    startTime: str | None = None
    endTime: str | None = None
    breakMinutes: int = 0
    totalHours: float = 0


class DayOut(BaseModel):
    date: date
    week: Literal[1, 2]
    entryId: int | None = None
    startTime: str | None = None
    endTime: str | None = None
    breakMinutes: int = 0
    totalHours: float = 0


class UserSummaryOut(BaseModel):
    id: int
    firstName: str | None = None
    lastName: str | None = None
    email: str | None = None
    department: str | None = None


class TimesheetOut(TotalsOut):
    id: int
    userId: int
    payPeriodStart: date
    payPeriodEnd: date
    status: Status
    nextStatuses: list[Status]
    timeEntries: list[TimeEntryOut]
    submittedAt: datetime | None = None
    approvedAt: datetime | None = None
    approvedBy: int | None = None
    rejectedAt: datetime | None = None
    rejectedBy: int | None = None
    rejectionReason: str | None = None
    createdAt: datetime | None = None
    user: UserSummaryOut | None = None
    days: list[DayOut] | None = None


class PayPeriodOut(BaseModel):
    start: date
    end: date
    startFormatted: str
    endFormatted: str


class StatsOut(BaseModel):
    pending: int
    currentPeriod: str


class PresetOut(BaseModel):
    label: str
    startTime: str
    endTime: str
    breakMinutes: int


class SuccessEnvelope(BaseModel):
    success: Literal[True] = True


class TimesheetEnvelope(SuccessEnvelope):
    timesheet: TimesheetOut


class TimesheetListEnvelope(SuccessEnvelope):
    timesheets: list[TimesheetOut]


class EntryEnvelope(SuccessEnvelope):
    entry: TimeEntryOut
    totals: TotalsOut


class EntriesEnvelope(SuccessEnvelope):
    entries: list[TimeEntryOut]
    totals: TotalsOut


class TotalsEnvelope(SuccessEnvelope):
    totals: TotalsOut


class PayPeriodEnvelope(SuccessEnvelope):
    payPeriod: PayPeriodOut


class StatsEnvelope(SuccessEnvelope):
    stats: StatsOut


class PresetsEnvelope(SuccessEnvelope):
    presets: list[PresetOut]


class FailureEnvelope(BaseModel):
    success: Literal[False] = False
    error: str
    code: Literal["not_found", "invalid_state", "validation", "unavailable", "internal"]
    retryable: bool = False


class CurrentTimesheetRequest(BaseModel):
    userId: int


class SaveEntryRequest(BaseModel):
    date: date
    startTime: str | None = None
    endTime: str | None = None
    breakMinutes: int | None = 0
    entryId: int | None = None


class ApproveRequest(BaseModel):
    approverId: int


class RejectRequest(BaseModel):
    rejecterId: int
    reason: str | None = Field(default=None, max_length=1000)


class ApplyPresetRequest(BaseModel):
    preset: str
    dates: list[date] = Field(..., min_length=1, max_length=14)

"""Timesheet operations.

Every public method returns a JSON-ready envelope. Success looks like
``{"success": True, ...}``; failure looks like ``{"success": False, "error": ...,
"code": ..., "retryable": ...}``. Rule violations and storage failures never
escape as exceptions; storage causes are logged and replaced with a generic
message.
"""

from __future__ import annotations
from datetime import date, datetime
from functools import wraps
from typing import Any, Callable, Dict, Iterable, Optional, Union

import structlog

from . import workflow
from .aggregation import aggregate
from .errors import NotFound, RepositoryError, TimesheetError, ValidationError
from .hours import SCHEDULE_PRESETS, compute_hours, find_preset, normalize_clock
from .models import TimeEntry, Timesheet, TimesheetStatus, Totals
from .pay_period import PAY_PERIOD_ANCHOR, describe_pay_period, format_period, resolve_pay_period
from .repository import TimesheetRepository
from .serializers import parse_date, serialize_entry, serialize_timesheet, serialize_totals

logger = structlog.get_logger(__name__)

Envelope = Dict[str, Any]
DateInput = Union[date, datetime, str]

STORAGE_UNAVAILABLE = "Timesheet storage is unavailable. Please try again."
UNEXPECTED_ERROR = "An unexpected error occurred while processing the timesheet."

_STATUS_RANK = {status: rank for rank, status in enumerate(TimesheetStatus)}


def failure(message: str, code: str, retryable: bool = False) -> Envelope:
    return {"success": False, "error": message, "code": code, "retryable": retryable}


def _envelope(func: Callable[..., Envelope]) -> Callable[..., Envelope]:
    @wraps(func)
    def wrapper(self: "TimesheetService", *args: Any, **kwargs: Any) -> Envelope:
        try:
            payload = func(self, *args, **kwargs)
        except RepositoryError as exc:
            self._report(exc)
            logger.error("timesheet_storage_failed", operation=func.__name__, retryable=exc.retryable, exc_info=True)
            return failure(STORAGE_UNAVAILABLE, exc.code, exc.retryable)
        except TimesheetError as exc:
            logger.info("timesheet_operation_rejected", operation=func.__name__, code=exc.code, reason=str(exc))
            return failure(str(exc), exc.code)
        except Exception as exc:
            self._report(exc)
            logger.exception("timesheet_operation_failed", operation=func.__name__)
            return failure(UNEXPECTED_ERROR, "internal")
        return {"success": True, **payload}

    return wrapper


class TimesheetService:
    def __init__(
        self,
        repository: TimesheetRepository,
        *,
        clock: Callable[[], datetime] = datetime.now,
        anchor: date = PAY_PERIOD_ANCHOR,
        require_rejection_reason: bool = False,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ) -> None:
        self._repository = repository
        self._clock = clock
        self._anchor = anchor
        self._require_rejection_reason = require_rejection_reason
        self._on_error = on_error

    # reads

    @_envelope
    def get_or_create_current_timesheet(self, user_id: int) -> Envelope:
        period = resolve_pay_period(self._clock(), self._anchor)
        timesheet = self._repository.upsert_timesheet(user_id=user_id, period=period)
        return {"timesheet": serialize_timesheet(timesheet, include_days=True)}

    @_envelope
    def get_timesheet_by_id(self, timesheet_id: int) -> Envelope:
        timesheet = self._require_timesheet(timesheet_id)
        return {"timesheet": serialize_timesheet(timesheet, include_days=True)}

    @_envelope
    def get_user_timesheets(self, user_id: int, status: Optional[str] = None) -> Envelope:
        rows = self._repository.list_timesheets(user_id=user_id, status=self._parse_status(status))
        rows.sort(key=lambda t: t.pay_period_start, reverse=True)
        return {"timesheets": [serialize_timesheet(t) for t in rows]}

    @_envelope
    def get_all_timesheets(self, status: Optional[str] = None, department: Optional[str] = None) -> Envelope:
        rows = self._repository.list_timesheets(status=self._parse_status(status), department=department or None)
        rows.sort(key=lambda t: (_STATUS_RANK[t.status], -t.pay_period_start.toordinal()))
        return {"timesheets": [serialize_timesheet(t) for t in rows]}

    @_envelope
    def get_pay_period_info(self, date: Optional[DateInput] = None) -> Envelope:
        day = self._parse_day(date) if date else self._clock()
        return {"payPeriod": describe_pay_period(resolve_pay_period(day, self._anchor))}

    @_envelope
    def get_timesheet_stats(self, user_id: int) -> Envelope:
        pending = self._repository.list_timesheets(user_id=user_id, status=TimesheetStatus.SUBMITTED)
        current = resolve_pay_period(self._clock(), self._anchor)
        return {"stats": {"pending": len(pending), "currentPeriod": format_period(current)}}

    @_envelope
    def get_schedule_presets(self) -> Envelope:
        return {
            "presets": [
                {
                    "label": preset.label,
                    "startTime": preset.start_time,
                    "endTime": preset.end_time,
                    "breakMinutes": preset.break_minutes,
                }
                for preset in SCHEDULE_PRESETS
            ]
        }

    # entry edits

    @_envelope
    def save_time_entry(
        self,
        timesheet_id: int,
        date: DateInput,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        break_minutes: Optional[int] = 0,
        entry_id: Optional[int] = None,
    ) -> Envelope:
        with self._repository.transaction():
            timesheet = self._require_timesheet(timesheet_id, for_update=True)
            workflow.ensure_editable(timesheet)
            entry = self._write_entry(
                timesheet,
                self._parse_day(date),
                self._parse_clock(start_time, "start time"),
                self._parse_clock(end_time, "end time"),
                self._parse_break(break_minutes),
                entry_id,
            )
            totals = self._recalculate(timesheet)

        logger.info("time_entry_saved", timesheet_id=timesheet.id, date=entry.date.isoformat(), hours=entry.total_hours)
        return {"entry": serialize_entry(entry), "totals": serialize_totals(totals)}

    @_envelope
    def apply_schedule_preset(self, timesheet_id: int, preset: str, dates: Iterable[DateInput]) -> Envelope:
        chosen = find_preset(preset)
        if chosen is None:
            raise ValidationError(f"Unknown schedule preset: {preset}")
        days = sorted({self._parse_day(d) for d in dates})
        if not days:
            raise ValidationError("Select at least one day to fill")

        with self._repository.transaction():
            timesheet = self._require_timesheet(timesheet_id, for_update=True)
            workflow.ensure_editable(timesheet)
            entries = [
                self._write_entry(timesheet, day, chosen.start_time, chosen.end_time, chosen.break_minutes)
                for day in days
            ]
            totals = self._recalculate(timesheet)

        logger.info("schedule_preset_applied", timesheet_id=timesheet.id, preset=chosen.label, days=len(days))
        return {"entries": [serialize_entry(e) for e in entries], "totals": serialize_totals(totals)}

    @_envelope
    def delete_time_entry(
        self,
        entry_id: Optional[int] = None,
        timesheet_id: Optional[int] = None,
        date: Optional[DateInput] = None,
    ) -> Envelope:
        if entry_id is None and (timesheet_id is None or date is None):
            raise ValidationError("Provide an entry id, or a timesheet id and date")

        with self._repository.transaction():
            if entry_id is not None:
                entry = self._repository.get_entry(entry_id)
                if entry is None:
                    raise NotFound("Entry not found")
                timesheet = self._require_timesheet(entry.timesheet_id, for_update=True)
            else:
                timesheet = self._require_timesheet(timesheet_id, for_update=True)
                entry = self._repository.find_entry(timesheet.id, self._parse_day(date))
                if entry is None:
                    raise NotFound("Entry not found")
            workflow.ensure_editable(timesheet)
            self._repository.delete_entry(entry.id)
            totals = self._recalculate(timesheet)

        logger.info("time_entry_deleted", timesheet_id=timesheet.id, entry_id=entry.id)
        return {"totals": serialize_totals(totals)}

    # lifecycle

    @_envelope
    def submit_timesheet(self, timesheet_id: int) -> Envelope:
        with self._repository.transaction():
            timesheet = self._require_timesheet(timesheet_id, for_update=True)
            workflow.submit(timesheet, self._clock())
            saved = self._repository.save_timesheet(timesheet)
        logger.info("timesheet_submitted", timesheet_id=saved.id, user_id=saved.user_id, hours=saved.grand_total)
        return {"timesheet": serialize_timesheet(saved)}

    @_envelope
    def approve_timesheet(self, timesheet_id: int, approver_id: int) -> Envelope:
        with self._repository.transaction():
            timesheet = self._require_timesheet(timesheet_id, for_update=True)
            workflow.approve(timesheet, approver_id, self._clock())
            saved = self._repository.save_timesheet(timesheet)
        logger.info("timesheet_approved", timesheet_id=saved.id, approver_id=approver_id)
        return {"timesheet": serialize_timesheet(saved)}

    @_envelope
    def reject_timesheet(self, timesheet_id: int, rejecter_id: int, reason: Optional[str] = None) -> Envelope:
        if self._require_rejection_reason and not (reason or "").strip():
            raise ValidationError("A rejection reason is required")

        with self._repository.transaction():
            timesheet = self._require_timesheet(timesheet_id, for_update=True)
            workflow.reject(timesheet, rejecter_id, reason, self._clock())
            saved = self._repository.save_timesheet(timesheet)
        logger.info("timesheet_rejected", timesheet_id=saved.id, rejecter_id=rejecter_id)
        return {"timesheet": serialize_timesheet(saved)}

    @_envelope
    def revert_to_draft(self, timesheet_id: int) -> Envelope:
        with self._repository.transaction():
            timesheet = self._require_timesheet(timesheet_id, for_update=True)
            workflow.revert_to_draft(timesheet)
            saved = self._repository.save_timesheet(timesheet)
        logger.info("timesheet_reverted", timesheet_id=saved.id)
        return {"timesheet": serialize_timesheet(saved)}

    @_envelope
    def delete_timesheet(self, timesheet_id: int) -> Envelope:
        with self._repository.transaction():
            timesheet = self._require_timesheet(timesheet_id, for_update=True)
            workflow.ensure_deletable(timesheet)
            self._repository.delete_timesheet(timesheet.id)
        logger.info("timesheet_deleted", timesheet_id=timesheet_id)
        return {}

    # helpers

    def _report(self, exc: BaseException) -> None:
        if self._on_error is not None:
            self._on_error(exc)

    def _require_timesheet(self, timesheet_id: int, *, for_update: bool = False) -> Timesheet:
        timesheet = self._repository.get_timesheet(timesheet_id, for_update=for_update)
        if timesheet is None:
            raise NotFound("Timesheet not found")
        return timesheet

    def _write_entry(
        self,
        timesheet: Timesheet,
        day: date,
        start_time: Optional[str],
        end_time: Optional[str],
        break_minutes: int,
        entry_id: Optional[int] = None,
    ) -> TimeEntry:
        if not timesheet.pay_period.contains(day):
            raise ValidationError("Date is outside the timesheet's pay period")

        same_day = self._repository.find_entry(timesheet.id, day)
        if entry_id is not None:
            entry = self._repository.get_entry(entry_id)
            if entry is None or entry.timesheet_id != timesheet.id:
                raise NotFound("Entry not found")
            if same_day is not None and same_day.id != entry.id:
                raise ValidationError("An entry already exists for this date")
        else:
            entry = same_day or TimeEntry(id=None, timesheet_id=timesheet.id, date=day)

        entry.date = day
        entry.start_time = start_time
        entry.end_time = end_time
        entry.break_minutes = break_minutes
        entry.total_hours = compute_hours(start_time, end_time, break_minutes)
        return self._repository.save_entry(entry)

    def _recalculate(self, timesheet: Timesheet) -> Totals:
        totals = aggregate(self._repository.list_entries(timesheet.id), timesheet.pay_period_start)
        timesheet.apply_totals(totals)
        self._repository.save_totals(timesheet.id, totals)
        return totals

    @staticmethod
    def _parse_day(value: DateInput) -> date:
        try:
            return parse_date(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid date: {value!r}")

    @staticmethod
    def _parse_clock(value: Optional[str], label: str) -> Optional[str]:
        try:
            return normalize_clock(value)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid {label} {value!r}, expected HH:MM")

    @staticmethod
    def _parse_break(value: Any) -> int:
        if value is None or value == "":
            return 0
        if isinstance(value, bool):
            raise ValidationError("Break minutes must be a whole number")
        try:
            minutes = float(value)
        except (TypeError, ValueError):
            raise ValidationError("Break minutes must be a whole number")
        if not minutes.is_integer():
            raise ValidationError("Break minutes must be a whole number")
        if minutes < 0:
            raise ValidationError("Break minutes cannot be negative")
        return int(minutes)

    @staticmethod
    def _parse_status(value: Optional[str]) -> Optional[TimesheetStatus]:
        if not value:
            return None
        try:
            return TimesheetStatus(str(value).upper())
        except ValueError:
            raise ValidationError(f"Unknown timesheet status: {value}")


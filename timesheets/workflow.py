"""Timesheet approval state machine.

DRAFT -> SUBMITTED -> APPROVED, SUBMITTED -> REJECTED, REJECTED -> DRAFT.
APPROVED is terminal and only DRAFT timesheets may be edited or deleted.

Each transition mutates the given ``Timesheet`` in place after its guard
passes, so the status and its lifecycle fields always change together.
"""

from __future__ import annotations
from datetime import datetime
from typing import Dict, FrozenSet, Optional

from .errors import InvalidState
from .models import Timesheet, TimesheetStatus

DEFAULT_REJECTION_REASON = "No reason provided"

TRANSITIONS: Dict[TimesheetStatus, FrozenSet[TimesheetStatus]] = {
    TimesheetStatus.DRAFT: frozenset({TimesheetStatus.SUBMITTED}),
    TimesheetStatus.SUBMITTED: frozenset({TimesheetStatus.APPROVED, TimesheetStatus.REJECTED}),
    TimesheetStatus.REJECTED: frozenset({TimesheetStatus.DRAFT}),
    TimesheetStatus.APPROVED: frozenset(),
}


def can_transition(current: TimesheetStatus, target: TimesheetStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_editable(timesheet: Timesheet) -> None:
    if timesheet.status != TimesheetStatus.DRAFT:
        raise InvalidState("Cannot edit a submitted timesheet")


def ensure_deletable(timesheet: Timesheet) -> None:
    if timesheet.status != TimesheetStatus.DRAFT:
        raise InvalidState("Only draft timesheets can be deleted")


def submit(timesheet: Timesheet, at: datetime) -> Timesheet:
    if timesheet.status != TimesheetStatus.DRAFT:
        raise InvalidState("Timesheet has already been submitted")
    if not timesheet.grand_total or timesheet.grand_total <= 0:
        raise InvalidState("Cannot submit a timesheet with no hours")

    timesheet.status = TimesheetStatus.SUBMITTED
    timesheet.submitted_at = at
    return timesheet


def approve(timesheet: Timesheet, approver_id: int, at: datetime) -> Timesheet:
    if timesheet.status != TimesheetStatus.SUBMITTED:
        raise InvalidState("Only submitted timesheets can be approved")

    timesheet.status = TimesheetStatus.APPROVED
    timesheet.approved_at = at
    timesheet.approved_by = approver_id
    _clear_rejection(timesheet)
    return timesheet


def reject(timesheet: Timesheet, rejecter_id: int, reason: Optional[str], at: datetime) -> Timesheet:
    if timesheet.status != TimesheetStatus.SUBMITTED:
        raise InvalidState("Only submitted timesheets can be rejected")

    timesheet.status = TimesheetStatus.REJECTED
    timesheet.rejected_at = at
    timesheet.rejected_by = rejecter_id
    timesheet.rejection_reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
    return timesheet


def revert_to_draft(timesheet: Timesheet) -> Timesheet:
    if timesheet.status != TimesheetStatus.REJECTED:
        raise InvalidState("Only rejected timesheets can be reverted to draft")

    timesheet.status = TimesheetStatus.DRAFT
    timesheet.submitted_at = None
    _clear_rejection(timesheet)
    return timesheet


def _clear_rejection(timesheet: Timesheet) -> None:
    timesheet.rejected_at = None
    timesheet.rejected_by = None
    timesheet.rejection_reason = None

from datetime import date
from typing import Any, Callable

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from timesheet_api.core.config import settings
from timesheet_api.core.logging import get_logger
from timesheet_api.core.monitoring import report_exception
from timesheet_api.core.observability import OperationRecorder
from timesheet_api.db.session import get_session
from timesheet_api.domains.timesheets.schemas import (
    ApplyPresetRequest,
    ApproveRequest,
    CurrentTimesheetRequest,
    EntriesEnvelope,
    EntryEnvelope,
    FailureEnvelope,
    PayPeriodEnvelope,
    PresetsEnvelope,
    RejectRequest,
    SaveEntryRequest,
    StatsEnvelope,
    SuccessEnvelope,
    TimesheetEnvelope,
    TimesheetListEnvelope,
    TotalsEnvelope,
)
from timesheet_api.repositories.sql_timesheet_repository import SqlTimesheetRepository
from timesheets.service import TimesheetService

router = APIRouter(prefix="/api/v1/timesheets", tags=["timesheets"])
logger = get_logger(__name__)
recorder = OperationRecorder()

STATUS_BY_CODE = {
    "not_found": 404,
    "invalid_state": 409,
    "validation": 422,
    "unavailable": 503,
    "internal": 500,
}

FAILURES: dict[int | str, dict[str, Any]] = {
    status: {"model": FailureEnvelope} for status in sorted(set(STATUS_BY_CODE.values()))
}


def get_timesheet_service(db: Session = Depends(get_session)) -> TimesheetService:
    return TimesheetService(
        SqlTimesheetRepository(db),
        anchor=settings.pay_period_anchor,
        require_rejection_reason=settings.require_rejection_reason,
        on_error=report_exception,
    )


def failure_response(result: dict[str, Any]) -> JSONResponse:
    return JSONResponse(status_code=STATUS_BY_CODE.get(result["code"], 500), content=result)


def run(operation: str, call: Callable[[], dict[str, Any]]) -> dict[str, Any] | JSONResponse:
    with recorder.span(operation) as span:
        result = call()
        span.set_attribute("timesheets.success", result["success"])
    recorder.count(operation, "ok" if result["success"] else result["code"])
    if result["success"]:
        return result
    logger.info("timesheet_request_failed", operation=operation, code=result["code"])
    return failure_response(result)


@router.get("", response_model=TimesheetListEnvelope, responses=FAILURES)
def list_all_timesheets(
    status: str | None = Query(default=None),
    department: str | None = Query(default=None),
    service: TimesheetService = Depends(get_timesheet_service),
):
    return run("getAllTimesheets", lambda: service.get_all_timesheets(status=status, department=department))


@router.post("/current", response_model=TimesheetEnvelope, responses=FAILURES)
def current_timesheet(payload: CurrentTimesheetRequest, service: TimesheetService = Depends(get_timesheet_service)):
    return run("getOrCreateCurrentTimesheet", lambda: service.get_or_create_current_timesheet(payload.userId))


@router.get("/pay-period", response_model=PayPeriodEnvelope, responses=FAILURES)
def pay_period_info(
    on: date | None = Query(default=None, alias="date"),
    service: TimesheetService = Depends(get_timesheet_service),
):
    return run("getPayPeriodInfo", lambda: service.get_pay_period_info(on))


@router.get("/presets", response_model=PresetsEnvelope, responses=FAILURES)
def schedule_presets(service: TimesheetService = Depends(get_timesheet_service)):
    return run("getSchedulePresets", service.get_schedule_presets)


@router.get("/stats/{user_id}", response_model=StatsEnvelope, responses=FAILURES)
def timesheet_stats(user_id: int, service: TimesheetService = Depends(get_timesheet_service)):
    return run("getTimesheetStats", lambda: service.get_timesheet_stats(user_id))


@router.get("/user/{user_id}", response_model=TimesheetListEnvelope, responses=FAILURES)
def user_timesheets(
    user_id: int,
    status: str | None = Query(default=None),
    service: TimesheetService = Depends(get_timesheet_service),
):
    return run("getUserTimesheets", lambda: service.get_user_timesheets(user_id, status=status))


@router.delete("/entries/{entry_id}", response_model=TotalsEnvelope, responses=FAILURES)
def delete_entry(entry_id: int, service: TimesheetService = Depends(get_timesheet_service)):
    return run("deleteTimeEntry", lambda: service.delete_time_entry(entry_id=entry_id))


@router.get("/{timesheet_id}", response_model=TimesheetEnvelope, responses=FAILURES)
def get_timesheet(timesheet_id: int, service: TimesheetService = Depends(get_timesheet_service)):
    return run("getTimesheetById", lambda: service.get_timesheet_by_id(timesheet_id))


@router.put("/{timesheet_id}/entries", response_model=EntryEnvelope, responses=FAILURES)
def save_entry(
    timesheet_id: int,
    payload: SaveEntryRequest,
    service: TimesheetService = Depends(get_timesheet_service),
):
    return run(
        "saveTimeEntry",
        lambda: service.save_time_entry(
            timesheet_id,
            payload.date,
            start_time=payload.startTime,
            end_time=payload.endTime,
            break_minutes=payload.breakMinutes,
            entry_id=payload.entryId,
        ),
    )


@router.delete("/{timesheet_id}/entries/{entry_date}", response_model=TotalsEnvelope, responses=FAILURES)
def delete_entry_for_day(
    timesheet_id: int,
    entry_date: date,
    service: TimesheetService = Depends(get_timesheet_service),
):
    return run("deleteTimeEntry", lambda: service.delete_time_entry(timesheet_id=timesheet_id, date=entry_date))


@router.post("/{timesheet_id}/presets", response_model=EntriesEnvelope, responses=FAILURES)
def apply_preset(
    timesheet_id: int,
    payload: ApplyPresetRequest,
    service: TimesheetService = Depends(get_timesheet_service),
):
    return run("applySchedulePreset", lambda: service.apply_schedule_preset(timesheet_id, payload.preset, payload.dates))


@router.post("/{timesheet_id}/submit", response_model=TimesheetEnvelope, responses=FAILURES)
def submit(timesheet_id: int, service: TimesheetService = Depends(get_timesheet_service)):
    return run("submitTimesheet", lambda: service.submit_timesheet(timesheet_id))


@router.post("/{timesheet_id}/approve", response_model=TimesheetEnvelope, responses=FAILURES)
def approve(timesheet_id: int, payload: ApproveRequest, service: TimesheetService = Depends(get_timesheet_service)):
    return run("approveTimesheet", lambda: service.approve_timesheet(timesheet_id, payload.approverId))


@router.post("/{timesheet_id}/reject", response_model=TimesheetEnvelope, responses=FAILURES)
def reject(timesheet_id: int, payload: RejectRequest, service: TimesheetService = Depends(get_timesheet_service)):
    return run("rejectTimesheet", lambda: service.reject_timesheet(timesheet_id, payload.rejecterId, payload.reason))


@router.post("/{timesheet_id}/revert", response_model=TimesheetEnvelope, responses=FAILURES)
def revert(timesheet_id: int, service: TimesheetService = Depends(get_timesheet_service)):
    return run("revertToDraft", lambda: service.revert_to_draft(timesheet_id))


@router.delete("/{timesheet_id}", response_model=SuccessEnvelope, responses=FAILURES)
def delete(timesheet_id: int, service: TimesheetService = Depends(get_timesheet_service)):
    return run("deleteTimesheet", lambda: service.delete_timesheet(timesheet_id))

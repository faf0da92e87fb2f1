from datetime import datetime

import pytest

from timesheets.errors import RepositoryError
from timesheets.service import STORAGE_UNAVAILABLE, UNEXPECTED_ERROR, TimesheetService
from timesheets.storage import DataStore


def fill_day(service, timesheet_id, day="2025-01-06", start="09:00", end="17:00", minutes=30):
    result = service.save_time_entry(timesheet_id, day, start_time=start, end_time=end, break_minutes=minutes)
    assert result["success"], result
    return result


def test_current_timesheet_is_created_once(service, staff):
    first = service.get_or_create_current_timesheet(staff.id)
    second = service.get_or_create_current_timesheet(staff.id)

    assert first["success"] is True
    assert first["timesheet"]["id"] == second["timesheet"]["id"]
    assert first["timesheet"]["payPeriodStart"] == "2025-01-06"
    assert first["timesheet"]["payPeriodEnd"] == "2025-01-19"
    assert first["timesheet"]["status"] == "DRAFT"
    assert first["timesheet"]["user"]["firstName"] == "Ada"
    assert len(first["timesheet"]["days"]) == 14


def test_save_entry_recomputes_totals(service, draft):
    fill_day(service, draft["id"], "2025-01-06")
    result = fill_day(service, draft["id"], "2025-01-13", "08:00", "14:00", 0)

    assert result["entry"]["totalHours"] == 6.0
    assert result["totals"] == {"week1Total": 7.5, "week2Total": 6.0, "grandTotal": 13.5}

    stored = service.get_timesheet_by_id(draft["id"])["timesheet"]
    assert stored["grandTotal"] == 13.5
    assert [e["date"] for e in stored["timeEntries"]] == ["2025-01-06", "2025-01-13"]


def test_save_entry_for_same_day_updates_in_place(service, draft):
    first = fill_day(service, draft["id"], "2025-01-07")
    second = fill_day(service, draft["id"], "2025-01-07", "07:00", "15:30", 30)

    assert first["entry"]["id"] == second["entry"]["id"]
    assert second["totals"]["grandTotal"] == 8.0


def test_blank_times_store_zero_hours(service, draft):
    result = service.save_time_entry(draft["id"], "2025-01-07", start_time="09:00", end_time=None)

    assert result["success"] is True
    assert result["entry"]["totalHours"] == 0


def test_entry_outside_period_is_rejected(service, draft):
    result = service.save_time_entry(draft["id"], "2025-01-20", start_time="09:00", end_time="17:00")

    assert result["success"] is False
    assert result["code"] == "validation"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"start_time": "9am", "end_time": "17:00"},
        {"start_time": "09:00", "end_time": "25:00"},
        {"start_time": "09:00", "end_time": "17:00", "break_minutes": -5},
        {"start_time": "09:00", "end_time": "17:00", "break_minutes": 7.5},
        {"start_time": "09:00", "end_time": "17:00", "break_minutes": True},
    ],
)
def test_invalid_entry_input(service, draft, kwargs):
    result = service.save_time_entry(draft["id"], "2025-01-07", **kwargs)

    assert result["success"] is False
    assert result["code"] == "validation"
    assert service.get_timesheet_by_id(draft["id"])["timesheet"]["timeEntries"] == []


def test_moving_entry_onto_taken_day_is_rejected(service, draft):
    monday = fill_day(service, draft["id"], "2025-01-06")["entry"]
    fill_day(service, draft["id"], "2025-01-07")

    result = service.save_time_entry(
        draft["id"], "2025-01-07", start_time="09:00", end_time="12:00", entry_id=monday["id"]
    )

    assert result == {
        "success": False,
        "error": "An entry already exists for this date",
        "code": "validation",
        "retryable": False,
    }


def test_edit_refused_once_submitted(service, draft):
    fill_day(service, draft["id"])
    assert service.submit_timesheet(draft["id"])["success"]
    before = service.get_timesheet_by_id(draft["id"])["timesheet"]

    result = service.save_time_entry(draft["id"], "2025-01-08", start_time="09:00", end_time="17:00")

    assert result["success"] is False
    assert result["error"] == "Cannot edit a submitted timesheet"
    assert result["code"] == "invalid_state"
    assert service.get_timesheet_by_id(draft["id"])["timesheet"] == before


def test_submit_requires_hours(service, draft):
    empty = service.submit_timesheet(draft["id"])
    assert empty["success"] is False
    assert empty["error"] == "Cannot submit a timesheet with no hours"

    fill_day(service, draft["id"])
    submitted = service.submit_timesheet(draft["id"])

    assert submitted["success"] is True
    assert submitted["timesheet"]["status"] == "SUBMITTED"
    assert submitted["timesheet"]["submittedAt"] == "2025-01-08T10:15:00"
    assert submitted["timesheet"]["nextStatuses"] == ["APPROVED", "REJECTED"]


def test_approve_draft_fails_with_message(service, draft):
    result = service.approve_timesheet(draft["id"], approver_id=99)

    assert result["success"] is False
    assert result["error"] == "Only submitted timesheets can be approved"
    assert service.get_timesheet_by_id(draft["id"])["timesheet"]["status"] == "DRAFT"


def test_approve_submitted(service, draft):
    fill_day(service, draft["id"])
    service.submit_timesheet(draft["id"])

    approved = service.approve_timesheet(draft["id"], approver_id=99)["timesheet"]

    assert approved["status"] == "APPROVED"
    assert approved["approvedBy"] == 99
    assert approved["nextStatuses"] == []
    assert service.revert_to_draft(draft["id"])["success"] is False


def test_reject_then_revert_cycle(service, draft):
    fill_day(service, draft["id"])
    service.submit_timesheet(draft["id"])

    rejected = service.reject_timesheet(draft["id"], rejecter_id=99, reason="Missing Tuesday")
    assert rejected["timesheet"]["status"] == "REJECTED"
    assert rejected["timesheet"]["rejectionReason"] == "Missing Tuesday"

    reverted = service.revert_to_draft(draft["id"])["timesheet"]
    assert reverted["status"] == "DRAFT"
    assert reverted["rejectionReason"] is None
    assert reverted["submittedAt"] is None
    assert fill_day(service, draft["id"], "2025-01-07")["totals"]["grandTotal"] == 15.0


def test_reject_without_reason_gets_placeholder(service, draft):
    fill_day(service, draft["id"])
    service.submit_timesheet(draft["id"])

    rejected = service.reject_timesheet(draft["id"], rejecter_id=99)

    assert rejected["timesheet"]["rejectionReason"] == "No reason provided"


def test_reject_can_require_reason(store, clock, draft):
    strict = TimesheetService(store, clock=clock, require_rejection_reason=True)
    fill_day(strict, draft["id"])
    strict.submit_timesheet(draft["id"])

    result = strict.reject_timesheet(draft["id"], rejecter_id=99, reason="  ")

    assert result["code"] == "validation"
    assert strict.get_timesheet_by_id(draft["id"])["timesheet"]["status"] == "SUBMITTED"


def test_delete_entry_by_id_and_by_date(service, draft):
    monday = fill_day(service, draft["id"], "2025-01-06")["entry"]
    fill_day(service, draft["id"], "2025-01-14")

    by_id = service.delete_time_entry(entry_id=monday["id"])
    assert by_id["totals"] == {"week1Total": 0.0, "week2Total": 7.5, "grandTotal": 7.5}

    by_date = service.delete_time_entry(timesheet_id=draft["id"], date="2025-01-14")
    assert by_date["totals"]["grandTotal"] == 0.0

    missing = service.delete_time_entry(timesheet_id=draft["id"], date="2025-01-14")
    assert missing["code"] == "not_found"


def test_delete_entry_needs_a_target(service):
    assert service.delete_time_entry()["code"] == "validation"


def test_delete_timesheet_only_when_draft(service, draft):
    fill_day(service, draft["id"])
    service.submit_timesheet(draft["id"])

    refused = service.delete_timesheet(draft["id"])
    assert refused["error"] == "Only draft timesheets can be deleted"

    service.reject_timesheet(draft["id"], 99, "redo")
    service.revert_to_draft(draft["id"])
    assert service.delete_timesheet(draft["id"]) == {"success": True}
    assert service.get_timesheet_by_id(draft["id"])["code"] == "not_found"


def test_unknown_timesheet(service):
    result = service.submit_timesheet(404)

    assert result == {"success": False, "error": "Timesheet not found", "code": "not_found", "retryable": False}


def test_user_timesheets_newest_first(service, staff, clock):
    older = service.get_or_create_current_timesheet(staff.id)["timesheet"]
    clock.now = datetime(2025, 2, 4, 8, 0)
    newer = service.get_or_create_current_timesheet(staff.id)["timesheet"]

    listed = service.get_user_timesheets(staff.id)["timesheets"]

    assert [t["id"] for t in listed] == [newer["id"], older["id"]]
    assert "days" not in listed[0]


def test_all_timesheets_filters_and_orders(service, store, staff):
    other = store.add_user(first_name="Grace", last_name="Hopper", department="Operations")
    mine = service.get_or_create_current_timesheet(staff.id)["timesheet"]
    theirs = service.get_or_create_current_timesheet(other.id)["timesheet"]
    fill_day(service, theirs["id"])
    service.submit_timesheet(theirs["id"])

    everything = service.get_all_timesheets()["timesheets"]
    assert [t["id"] for t in everything] == [mine["id"], theirs["id"]]

    submitted = service.get_all_timesheets(status="submitted")["timesheets"]
    assert [t["id"] for t in submitted] == [theirs["id"]]

    finance = service.get_all_timesheets(department="Finance")["timesheets"]
    assert [t["id"] for t in finance] == [mine["id"]]

    assert service.get_all_timesheets(status="LOST")["code"] == "validation"


def test_pay_period_info(service):
    assert service.get_pay_period_info()["payPeriod"]["start"] == "2025-01-06"

    info = service.get_pay_period_info("2025-01-20T15:30:00Z")["payPeriod"]
    assert info["startFormatted"] == "Jan 20, 2025"
    assert info["endFormatted"] == "Feb 2, 2025"

    assert service.get_pay_period_info("not a date")["code"] == "validation"


def test_stats_counts_pending(service, staff, draft):
    fill_day(service, draft["id"])
    service.submit_timesheet(draft["id"])

    stats = service.get_timesheet_stats(staff.id)["stats"]

    assert stats == {"pending": 1, "currentPeriod": "Jan 6, 2025 - Jan 19, 2025"}


def test_schedule_presets(service, draft):
    presets = service.get_schedule_presets()["presets"]
    assert presets[1] == {"label": "9-5", "startTime": "09:00", "endTime": "17:00", "breakMinutes": 0}

    result = service.apply_schedule_preset(draft["id"], "8-4:30", ["2025-01-07", "2025-01-06", "2025-01-13"])

    assert [e["date"] for e in result["entries"]] == ["2025-01-06", "2025-01-07", "2025-01-13"]
    assert result["totals"] == {"week1Total": 16.0, "week2Total": 8.0, "grandTotal": 24.0}
    assert service.apply_schedule_preset(draft["id"], "noon-ish", ["2025-01-06"])["code"] == "validation"
    assert service.apply_schedule_preset(draft["id"], "9-5", [])["code"] == "validation"


def test_preset_outside_period_writes_nothing(service, draft):
    result = service.apply_schedule_preset(draft["id"], "9-5", ["2025-01-06", "2025-01-25"])

    assert result["code"] == "validation"
    assert service.get_timesheet_by_id(draft["id"])["timesheet"]["timeEntries"] == []


class BrokenRepository(DataStore):
    def __init__(self, path, error):
        super().__init__(path)
        self.error = error

    def get_timesheet(self, timesheet_id, *, for_update=False):
        raise self.error


def test_storage_failure_becomes_unavailable(tmp_path):
    reported = []
    service = TimesheetService(
        BrokenRepository(tmp_path / "db.json", RepositoryError("disk gone", retryable=True)),
        on_error=reported.append,
    )

    result = service.get_timesheet_by_id(1)

    assert result == {"success": False, "error": STORAGE_UNAVAILABLE, "code": "unavailable", "retryable": True}
    assert len(reported) == 1


def test_unexpected_failure_is_contained(tmp_path):
    service = TimesheetService(BrokenRepository(tmp_path / "db.json", KeyError("boom")))

    result = service.submit_timesheet(1)

    assert result["success"] is False
    assert result["error"] == UNEXPECTED_ERROR
    assert result["code"] == "internal"

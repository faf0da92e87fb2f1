from __future__ import annotations

import pytest

BASE = "/api/v1/timesheets"


@pytest.fixture
def staff(make_user):
    return make_user("ada@example.com", department="Finance")


@pytest.fixture
def admin(make_user):
    return make_user("boss@example.com", department="Administration", role="admin")


@pytest.fixture
def timesheet(client, staff):
    response = client.post(f"{BASE}/current", json={"userId": staff["id"]})
    assert response.status_code == 200, response.text
    return response.json()["timesheet"]


def put_entry(client, timesheet_id, day, start="09:00", end="17:00", minutes=30):
    return client.put(
        f"{BASE}/{timesheet_id}/entries",
        json={"date": day, "startTime": start, "endTime": end, "breakMinutes": minutes},
    )


def test_current_timesheet_created_for_fixed_period(client, staff, timesheet):
    assert timesheet["payPeriodStart"] == "2025-01-06"
    assert timesheet["payPeriodEnd"] == "2025-01-19"
    assert timesheet["status"] == "DRAFT"
    assert timesheet["user"]["email"] == "ada@example.com"
    assert len(timesheet["days"]) == 14

    again = client.post(f"{BASE}/current", json={"userId": staff["id"]}).json()
    assert again["timesheet"]["id"] == timesheet["id"]


def test_current_timesheet_for_unknown_user(client):
    response = client.post(f"{BASE}/current", json={"userId": 404})

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "User not found", "code": "not_found", "retryable": False}


def test_save_entry_and_totals(client, timesheet):
    put_entry(client, timesheet["id"], "2025-01-06")
    response = put_entry(client, timesheet["id"], "2025-01-13", "08:00", "14:00", 0)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["entry"]["totalHours"] == 6.0
    assert body["totals"] == {"week1Total": 7.5, "week2Total": 6.0, "grandTotal": 13.5}

    detail = client.get(f"{BASE}/{timesheet['id']}").json()["timesheet"]
    assert detail["grandTotal"] == 13.5
    assert detail["days"][0]["startTime"] == "09:00"
    assert detail["days"][7]["week"] == 2


def test_invalid_entry_returns_validation_failure(client, timesheet):
    response = put_entry(client, timesheet["id"], "2025-01-06", start="9am")

    assert response.status_code == 422
    assert response.json()["code"] == "validation"


def test_malformed_body_uses_failure_envelope(client, timesheet):
    response = client.put(f"{BASE}/{timesheet['id']}/entries", json={"startTime": "09:00"})

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "validation"
    assert "date" in body["error"]


def test_approve_draft_is_conflict(client, timesheet, admin):
    response = client.post(f"{BASE}/{timesheet['id']}/approve", json={"approverId": admin["id"]})

    assert response.status_code == 409
    assert response.json()["error"] == "Only submitted timesheets can be approved"


def test_submit_approve_flow(client, timesheet, admin):
    assert client.post(f"{BASE}/{timesheet['id']}/submit").status_code == 409

    put_entry(client, timesheet["id"], "2025-01-07")
    submitted = client.post(f"{BASE}/{timesheet['id']}/submit").json()["timesheet"]
    assert submitted["status"] == "SUBMITTED"
    assert submitted["submittedAt"] == "2025-01-08T10:15:00"

    locked = put_entry(client, timesheet["id"], "2025-01-08")
    assert locked.status_code == 409
    assert locked.json()["error"] == "Cannot edit a submitted timesheet"

    approved = client.post(f"{BASE}/{timesheet['id']}/approve", json={"approverId": admin["id"]}).json()
    assert approved["timesheet"]["status"] == "APPROVED"
    assert approved["timesheet"]["approvedBy"] == admin["id"]


def test_reject_and_revert(client, timesheet, admin):
    put_entry(client, timesheet["id"], "2025-01-07")
    client.post(f"{BASE}/{timesheet['id']}/submit")

    rejected = client.post(f"{BASE}/{timesheet['id']}/reject", json={"rejecterId": admin["id"]}).json()
    assert rejected["timesheet"]["rejectionReason"] == "No reason provided"

    reverted = client.post(f"{BASE}/{timesheet['id']}/revert").json()["timesheet"]
    assert reverted["status"] == "DRAFT"
    assert reverted["rejectionReason"] is None


def test_delete_entries(client, timesheet):
    first = put_entry(client, timesheet["id"], "2025-01-06").json()["entry"]
    put_entry(client, timesheet["id"], "2025-01-14")

    by_id = client.delete(f"{BASE}/entries/{first['id']}")
    assert by_id.json()["totals"]["week1Total"] == 0.0

    by_day = client.delete(f"{BASE}/{timesheet['id']}/entries/2025-01-14")
    assert by_day.json()["totals"]["grandTotal"] == 0.0

    assert client.delete(f"{BASE}/{timesheet['id']}/entries/2025-01-14").status_code == 404


def test_apply_preset(client, timesheet):
    response = client.post(
        f"{BASE}/{timesheet['id']}/presets",
        json={"preset": "8-5", "dates": ["2025-01-06", "2025-01-07"]},
    )

    assert response.status_code == 200
    assert response.json()["totals"]["grandTotal"] == 16.0

    presets = client.get(f"{BASE}/presets").json()["presets"]
    assert [p["label"] for p in presets] == ["8-4:30", "9-5", "7-3:30", "8-5", "6-2:30"]


def test_listings_and_stats(client, staff, timesheet, make_user):
    other = make_user("grace@example.com", department="Health")
    theirs = client.post(f"{BASE}/current", json={"userId": other["id"]}).json()["timesheet"]
    put_entry(client, theirs["id"], "2025-01-06")
    client.post(f"{BASE}/{theirs['id']}/submit")

    everything = client.get(BASE).json()["timesheets"]
    assert [t["id"] for t in everything] == [timesheet["id"], theirs["id"]]

    health = client.get(BASE, params={"department": "Health"}).json()["timesheets"]
    assert [t["id"] for t in health] == [theirs["id"]]

    mine = client.get(f"{BASE}/user/{staff['id']}").json()["timesheets"]
    assert [t["id"] for t in mine] == [timesheet["id"]]

    stats = client.get(f"{BASE}/stats/{other['id']}").json()["stats"]
    assert stats == {"pending": 1, "currentPeriod": "Jan 6, 2025 - Jan 19, 2025"}

    bad_status = client.get(BASE, params={"status": "PAID"})
    assert bad_status.status_code == 422


def test_pay_period_lookup(client):
    body = client.get(f"{BASE}/pay-period", params={"date": "2025-01-20"}).json()

    assert body["payPeriod"] == {
        "start": "2025-01-20",
        "end": "2025-02-02",
        "startFormatted": "Jan 20, 2025",
        "endFormatted": "Feb 2, 2025",
    }
    assert client.get(f"{BASE}/pay-period").json()["payPeriod"]["start"] == "2025-01-06"


def test_delete_draft(client, timesheet):
    response = client.delete(f"{BASE}/{timesheet['id']}")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert client.get(f"{BASE}/{timesheet['id']}").status_code == 404


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"x-request-id": "abc123"})

    assert response.headers["x-request-id"] == "abc123"
    assert response.json() == {"status": "ok"}
    assert client.get("/health/ready").json() == {"status": "ok"}

from datetime import datetime

import pytest

from timesheets.service import TimesheetService
from timesheets.storage import DataStore


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 1, 8, 10, 15))


@pytest.fixture
def store(tmp_path):
    return DataStore(tmp_path / "timesheets.json")


@pytest.fixture
def staff(store):
    return store.add_user(first_name="Ada", last_name="Lovelace", email="ada@example.com", department="Finance")


@pytest.fixture
def service(store, clock):
    return TimesheetService(store, clock=clock)


@pytest.fixture
def draft(service, staff):
    return service.get_or_create_current_timesheet(staff.id)["timesheet"]

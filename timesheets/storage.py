from __future__ import annotations
import copy
import json
import threading
from contextlib import contextmanager
from dataclasses import asdict, replace
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from .errors import NotFound, RepositoryError
from .models import PayPeriod, TimeEntry, Timesheet, TimesheetStatus, Totals, UserSummary

_DATETIME_FIELDS = ("submitted_at", "approved_at", "rejected_at", "created_at")


class DataStore:
    """JSON file implementation of ``TimesheetRepository``.

    A single re-entrant lock serialises every read-modify-write, and
    ``transaction()`` restores the in-memory snapshot if the block fails.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.users: Dict[int, UserSummary] = {}
        self.timesheets: Dict[int, Timesheet] = {}
        self.time_entries: Dict[int, TimeEntry] = {}
        self._sequences = {"user": 0, "timesheet": 0, "entry": 0}
        self._lock = threading.RLock()
        self._depth = 0
        if path.exists():
            self.load()

    def load(self) -> None:
        try:
            content = json.loads(self.path.read_text())
        except OSError as exc:
            raise RepositoryError(f"Could not read {self.path}", retryable=True) from exc
        except ValueError as exc:
            raise RepositoryError(f"{self.path} is not a valid timesheet store") from exc
        self.users = {u["id"]: UserSummary(**u) for u in content.get("users", [])}
        self.timesheets = {t["id"]: self._deserialize_timesheet(t) for t in content.get("timesheets", [])}
        self.time_entries = {e["id"]: self._deserialize_entry(e) for e in content.get("time_entries", [])}
        self._sequences.update(content.get("sequences", {}))

    def save(self) -> None:
        payload = {
            "users": [asdict(u) for u in self.users.values()],
            "timesheets": [self._serialize_timesheet(t) for t in self.timesheets.values()],
            "time_entries": [asdict(e) for e in self.time_entries.values()],
            "sequences": self._sequences,
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, default=self._date_serializer, indent=2))
        except OSError as exc:
            raise RepositoryError(f"Could not write {self.path}", retryable=True) from exc

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            snapshot = copy.deepcopy((self.users, self.timesheets, self.time_entries, self._sequences))
            self._depth += 1
            try:
                yield
                if self._depth == 1:
                    self.save()
            except BaseException:
                self.users, self.timesheets, self.time_entries, self._sequences = snapshot
                raise
            finally:
                self._depth -= 1

    # users

    def add_user(
        self,
        *,
        first_name: str,
        last_name: str,
        email: Optional[str] = None,
        department: Optional[str] = None,
    ) -> UserSummary:
        with self.transaction():
            user = UserSummary(
                id=self._next_id("user"),
                first_name=first_name,
                last_name=last_name,
                email=email,
                department=department,
            )
            self.users[user.id] = user
        return copy.copy(user)

    def list_users(self) -> List[UserSummary]:
        """Return users ordered by display name."""

        with self._lock:
            users = sorted(self.users.values(), key=lambda u: f"{u.last_name} {u.first_name}".lower())
            return [copy.copy(u) for u in users]

    # timesheets

    def upsert_timesheet(self, *, user_id: int, period: PayPeriod) -> Timesheet:
        with self.transaction():
            if user_id not in self.users:
                raise NotFound("User not found")
            for timesheet in self.timesheets.values():
                if timesheet.user_id == user_id and timesheet.pay_period_start == period.start:
                    return self._compose(timesheet)
            timesheet = Timesheet(
                id=self._next_id("timesheet"),
                user_id=user_id,
                pay_period_start=period.start,
                pay_period_end=period.end,
                created_at=datetime.utcnow(),
            )
            self.timesheets[timesheet.id] = timesheet
        return self._compose(timesheet)

    def get_timesheet(self, timesheet_id: int, *, for_update: bool = False) -> Optional[Timesheet]:
        # for_update needs nothing extra: writers already hold the store lock.
        with self._lock:
            timesheet = self.timesheets.get(timesheet_id)
            return self._compose(timesheet) if timesheet else None

    def list_timesheets(
        self,
        *,
        user_id: Optional[int] = None,
        status: Optional[TimesheetStatus] = None,
        department: Optional[str] = None,
    ) -> List[Timesheet]:
        with self._lock:
            rows = list(self.timesheets.values())
            if user_id is not None:
                rows = [t for t in rows if t.user_id == user_id]
            if status is not None:
                rows = [t for t in rows if t.status == status]
            if department:
                rows = [t for t in rows if self._department_of(t.user_id) == department]
            return [self._compose(t) for t in rows]

    def save_timesheet(self, timesheet: Timesheet) -> Timesheet:
        with self.transaction():
            if timesheet.id not in self.timesheets:
                raise RepositoryError(f"Timesheet {timesheet.id} does not exist")
            self.timesheets[timesheet.id] = replace(timesheet, entries=[], user=None)
        return self._compose(self.timesheets[timesheet.id])

    def save_totals(self, timesheet_id: int, totals: Totals) -> None:
        with self.transaction():
            stored = self.timesheets.get(timesheet_id)
            if stored is None:
                raise RepositoryError(f"Timesheet {timesheet_id} does not exist")
            self.timesheets[timesheet_id] = replace(
                stored,
                week1_total=totals.week1_total,
                week2_total=totals.week2_total,
                grand_total=totals.grand_total,
            )

    def delete_timesheet(self, timesheet_id: int) -> None:
        with self.transaction():
            self.timesheets.pop(timesheet_id, None)
            for entry_id in [e.id for e in self.time_entries.values() if e.timesheet_id == timesheet_id]:
                del self.time_entries[entry_id]

    # entries

    def get_entry(self, entry_id: int) -> Optional[TimeEntry]:
        with self._lock:
            entry = self.time_entries.get(entry_id)
            return copy.copy(entry) if entry else None

    def find_entry(self, timesheet_id: int, day: date) -> Optional[TimeEntry]:
        with self._lock:
            for entry in self.time_entries.values():
                if entry.timesheet_id == timesheet_id and entry.date == day:
                    return copy.copy(entry)
            return None

    def list_entries(self, timesheet_id: int) -> List[TimeEntry]:
        with self._lock:
            entries = [copy.copy(e) for e in self.time_entries.values() if e.timesheet_id == timesheet_id]
            return sorted(entries, key=lambda e: e.date)

    def save_entry(self, entry: TimeEntry) -> TimeEntry:
        with self.transaction():
            if entry.id is None:
                entry = replace(entry, id=self._next_id("entry"))
            self.time_entries[entry.id] = copy.copy(entry)
        return entry

    def delete_entry(self, entry_id: int) -> None:
        with self.transaction():
            self.time_entries.pop(entry_id, None)

    # helpers

    def _next_id(self, kind: str) -> int:
        self._sequences[kind] += 1
        return self._sequences[kind]

    def _department_of(self, user_id: int) -> Optional[str]:
        user = self.users.get(user_id)
        return user.department if user else None

    def _compose(self, timesheet: Timesheet) -> Timesheet:
        user = self.users.get(timesheet.user_id)
        return replace(
            timesheet,
            entries=self.list_entries(timesheet.id),
            user=copy.copy(user) if user else None,
        )

    @staticmethod
    def _date_serializer(value):
        if isinstance(value, date):
            return value.isoformat()
        raise TypeError(f"Type {type(value)} not serializable")

    def _serialize_timesheet(self, timesheet: Timesheet) -> dict:
        payload = asdict(timesheet)
        payload.pop("entries")
        payload.pop("user")
        payload["status"] = timesheet.status.value
        return payload

    def _deserialize_timesheet(self, data: dict) -> Timesheet:
        data["pay_period_start"] = date.fromisoformat(data["pay_period_start"])
        data["pay_period_end"] = date.fromisoformat(data["pay_period_end"])
        data["status"] = TimesheetStatus(data["status"])
        for name in _DATETIME_FIELDS:
            if data.get(name):
                data[name] = datetime.fromisoformat(data[name])
        return Timesheet(**data)

    def _deserialize_entry(self, data: dict) -> TimeEntry:
        data["date"] = date.fromisoformat(data["date"])
        return TimeEntry(**data)

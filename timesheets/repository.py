from __future__ import annotations
from datetime import date
from typing import ContextManager, List, Optional, Protocol

from .models import PayPeriod, TimeEntry, Timesheet, TimesheetStatus, Totals


class TimesheetRepository(Protocol):
    """Persistence collaborator used by ``TimesheetService``.

    Reads return detached copies: mutating a returned ``Timesheet`` has no
    effect until it is passed back to ``save_timesheet``. Backends raise
    ``RepositoryError`` when storage itself fails.
    """

    def transaction(self) -> ContextManager[None]:
        """Group writes so they commit together or not at all."""

        raise NotImplementedError

    def upsert_timesheet(self, *, user_id: int, period: PayPeriod) -> Timesheet:
        """Atomically fetch or create the DRAFT timesheet for ``(user_id, period.start)``."""

        raise NotImplementedError

    def get_timesheet(self, timesheet_id: int, *, for_update: bool = False) -> Optional[Timesheet]:
        raise NotImplementedError

    def list_timesheets(
        self,
        *,
        user_id: Optional[int] = None,
        status: Optional[TimesheetStatus] = None,
        department: Optional[str] = None,
    ) -> List[Timesheet]:
        raise NotImplementedError

    def save_timesheet(self, timesheet: Timesheet) -> Timesheet:
        """Persist status, totals and lifecycle fields (not entries)."""

        raise NotImplementedError

    def save_totals(self, timesheet_id: int, totals: Totals) -> None:
        """Persist only the three totals, leaving status and lifecycle fields alone."""

        raise NotImplementedError

    def delete_timesheet(self, timesheet_id: int) -> None:
        """Remove the timesheet together with its entries."""

        raise NotImplementedError

    def get_entry(self, entry_id: int) -> Optional[TimeEntry]:
        raise NotImplementedError

    def find_entry(self, timesheet_id: int, day: date) -> Optional[TimeEntry]:
        raise NotImplementedError

    def list_entries(self, timesheet_id: int) -> List[TimeEntry]:
        raise NotImplementedError

    def save_entry(self, entry: TimeEntry) -> TimeEntry:
        """Insert (``entry.id is None``) or update an entry; returns it with its id."""

        raise NotImplementedError

    def delete_entry(self, entry_id: int) -> None:
        raise NotImplementedError

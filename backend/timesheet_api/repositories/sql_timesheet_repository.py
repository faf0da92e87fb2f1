from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from functools import wraps
from typing import Any, Callable, Iterator, TypeVar

from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from timesheet_api.core.logging import get_logger
from timesheet_api.models.time_entry import TimeEntry as TimeEntryRow
from timesheet_api.models.timesheet import Timesheet as TimesheetRow
from timesheet_api.models.user import User
from timesheets.errors import NotFound, RepositoryError
from timesheets.models import PayPeriod, TimeEntry, Timesheet, TimesheetStatus, Totals, UserSummary

logger = get_logger(__name__)

T = TypeVar("T")

_UPSERT_INSERTS = {"sqlite": sqlite_insert, "postgresql": postgresql_insert}


def storage_error(exc: SQLAlchemyError) -> RepositoryError:
    """Map a SQLAlchemy failure onto a retryable or fatal ``RepositoryError``."""
    retryable = isinstance(exc, (OperationalError, PoolTimeoutError)) or (
        isinstance(exc, DBAPIError) and exc.connection_invalidated
    )
    return RepositoryError(f"Database error: {exc.__class__.__name__}", retryable=retryable)


def _guarded(func: Callable[..., T]) -> Callable[..., T]:
    @wraps(func)
    def wrapper(self: "SqlTimesheetRepository", *args: Any, **kwargs: Any) -> T:
        try:
            return func(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            if not self._depth:
                self.db.rollback()
            raise storage_error(exc) from exc

    return wrapper


class SqlTimesheetRepository:
    """``TimesheetRepository`` backed by a SQLAlchemy session.

    Writes made outside ``transaction()`` commit immediately; inside it they
    are flushed and committed once the block completes. SQLite ignores
    ``FOR UPDATE``, so there the outermost transaction takes the database
    write lock up front with ``BEGIN IMMEDIATE``.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self._depth = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        self._depth += 1
        try:
            if self._depth == 1:
                self._begin()
            yield
            if self._depth == 1:
                self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise storage_error(exc) from exc
        except BaseException:
            self.db.rollback()
            raise
        finally:
            self._depth -= 1

    @_guarded
    def upsert_timesheet(self, *, user_id: int, period: PayPeriod) -> Timesheet:
        if self.db.get(User, user_id) is None:
            raise NotFound("User not found")

        now = datetime.utcnow()
        values = dict(
            user_id=user_id,
            pay_period_start=period.start,
            pay_period_end=period.end,
            status=TimesheetStatus.DRAFT.value,
            week1_total=0,
            week2_total=0,
            grand_total=0,
            created_at=now,
            updated_at=now,
        )
        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is not None:
            statement = insert(TimesheetRow).values(**values).on_conflict_do_nothing(
                index_elements=["user_id", "pay_period_start"]
            )
            self.db.execute(statement)
        else:
            try:
                with self.db.begin_nested():
                    self.db.add(TimesheetRow(**values))
            except IntegrityError:
                logger.info("timesheet_upsert_conflict", user_id=user_id, period_start=period.start.isoformat())
        self._commit()

        row = (
            self.db.query(TimesheetRow)
            .filter(TimesheetRow.user_id == user_id, TimesheetRow.pay_period_start == period.start)
            .one()
        )
        return self._to_domain(row)

    @_guarded
    def get_timesheet(self, timesheet_id: int, *, for_update: bool = False) -> Timesheet | None:
        query = self.db.query(TimesheetRow).filter(TimesheetRow.id == timesheet_id)
        if for_update:
            query = query.populate_existing().with_for_update()
        row = query.one_or_none()
        return self._to_domain(row) if row else None

    @_guarded
    def list_timesheets(
        self,
        *,
        user_id: int | None = None,
        status: TimesheetStatus | None = None,
        department: str | None = None,
    ) -> list[Timesheet]:
        query = self.db.query(TimesheetRow)
        if user_id is not None:
            query = query.filter(TimesheetRow.user_id == user_id)
        if status is not None:
            query = query.filter(TimesheetRow.status == status.value)
        if department:
            query = query.join(User, TimesheetRow.user_id == User.id).filter(User.department == department)
        return [self._to_domain(row) for row in query.all()]

    @_guarded
    def save_timesheet(self, timesheet: Timesheet) -> Timesheet:
        row = self.db.get(TimesheetRow, timesheet.id)
        if row is None:
            raise NotFound("Timesheet not found")

        row.status = timesheet.status.value
        row.week1_total = timesheet.week1_total
        row.week2_total = timesheet.week2_total
        row.grand_total = timesheet.grand_total
        row.submitted_at = timesheet.submitted_at
        row.approved_at = timesheet.approved_at
        row.approved_by = timesheet.approved_by
        row.rejected_at = timesheet.rejected_at
        row.rejected_by = timesheet.rejected_by
        row.rejection_reason = timesheet.rejection_reason
        self._commit()
        return self._to_domain(row)

    @_guarded
    def save_totals(self, timesheet_id: int, totals: Totals) -> None:
        result = self.db.execute(
            update(TimesheetRow)
            .where(TimesheetRow.id == timesheet_id)
            .values(
                week1_total=totals.week1_total,
                week2_total=totals.week2_total,
                grand_total=totals.grand_total,
                updated_at=datetime.utcnow(),
            )
        )
        if result.rowcount == 0:
            raise NotFound("Timesheet not found")
        self._commit()

    @_guarded
    def delete_timesheet(self, timesheet_id: int) -> None:
        row = self.db.get(TimesheetRow, timesheet_id)
        if row is not None:
            self.db.delete(row)
            self._commit()

    @_guarded
    def get_entry(self, entry_id: int) -> TimeEntry | None:
        row = self.db.get(TimeEntryRow, entry_id)
        return self._entry_to_domain(row) if row else None

    @_guarded
    def find_entry(self, timesheet_id: int, day: date) -> TimeEntry | None:
        row = (
            self.db.query(TimeEntryRow)
            .filter(TimeEntryRow.timesheet_id == timesheet_id, TimeEntryRow.date == day)
            .one_or_none()
        )
        return self._entry_to_domain(row) if row else None

    @_guarded
    def list_entries(self, timesheet_id: int) -> list[TimeEntry]:
        rows = (
            self.db.query(TimeEntryRow)
            .filter(TimeEntryRow.timesheet_id == timesheet_id)
            .order_by(TimeEntryRow.date.asc())
            .all()
        )
        return [self._entry_to_domain(row) for row in rows]

    @_guarded
    def save_entry(self, entry: TimeEntry) -> TimeEntry:
        if entry.id is None:
            row = TimeEntryRow(timesheet_id=entry.timesheet_id)
            self.db.add(row)
        else:
            row = self.db.get(TimeEntryRow, entry.id)
            if row is None:
                raise NotFound("Entry not found")

        row.date = entry.date
        row.start_time = entry.start_time
        row.end_time = entry.end_time
        row.break_minutes = entry.break_minutes
        row.total_hours = entry.total_hours
        self._commit()
        return self._entry_to_domain(row)

    @_guarded
    def delete_entry(self, entry_id: int) -> None:
        row = self.db.get(TimeEntryRow, entry_id)
        if row is not None:
            self.db.delete(row)
            self._commit()

    def _begin(self) -> None:
        if self.db.get_bind().dialect.name != "sqlite":
            return
        # End the implicit read transaction so BEGIN IMMEDIATE opens a fresh one.
        self.db.commit()
        self.db.connection().exec_driver_sql("BEGIN IMMEDIATE")

    def _commit(self) -> None:
        if self._depth:
            self.db.flush()
        else:
            self.db.commit()

    def _to_domain(self, row: TimesheetRow) -> Timesheet:
        user = row.user
        return Timesheet(
            id=row.id,
            user_id=row.user_id,
            pay_period_start=row.pay_period_start,
            pay_period_end=row.pay_period_end,
            status=TimesheetStatus(row.status),
            entries=self.list_entries(row.id),
            week1_total=float(row.week1_total or 0),
            week2_total=float(row.week2_total or 0),
            grand_total=float(row.grand_total or 0),
            submitted_at=row.submitted_at,
            approved_at=row.approved_at,
            approved_by=row.approved_by,
            rejected_at=row.rejected_at,
            rejected_by=row.rejected_by,
            rejection_reason=row.rejection_reason,
            created_at=row.created_at,
            user=UserSummary(
                id=user.id,
                first_name=user.first_name,
                last_name=user.last_name,
                email=user.email,
                department=user.department,
            )
            if user
            else None,
        )

    @staticmethod
    def _entry_to_domain(row: TimeEntryRow) -> TimeEntry:
        return TimeEntry(
            id=row.id,
            timesheet_id=row.timesheet_id,
            date=row.date,
            start_time=row.start_time,
            end_time=row.end_time,
            break_minutes=row.break_minutes or 0,
            total_hours=float(row.total_hours or 0),
        )

from datetime import date, datetime

from sqlalchemy.orm import Session

from timesheet_api.db.session import session_scope
from timesheet_api.models import TimeEntry, Timesheet, User
from timesheets.aggregation import aggregate
from timesheets.hours import compute_hours
from timesheets.models import TimeEntry as EntryValue
from timesheets.pay_period import resolve_pay_period


def seed(session: Session, today: date | None = None) -> Timesheet:
    admin = User(email="admin@example.com", first_name="Office", last_name="Admin", department="Administration", role="admin")
    staff = User(email="staff@example.com", first_name="Ada", last_name="Lovelace", department="Finance", role="staff")
    session.add_all([admin, staff])
    session.flush()

    period = resolve_pay_period(today or date.today())
    timesheet = Timesheet(
        user_id=staff.id,
        pay_period_start=period.start,
        pay_period_end=period.end,
        status="DRAFT",
        created_at=datetime.utcnow(),
    )
    session.add(timesheet)
    session.flush()

    values = []
    for day in list(period.days())[:5]:
        hours = compute_hours("08:00", "16:30", 30)
        session.add(
            TimeEntry(
                timesheet_id=timesheet.id,
                date=day,
                start_time="08:00",
                end_time="16:30",
                break_minutes=30,
                total_hours=hours,
            )
        )
        values.append(EntryValue(id=None, timesheet_id=timesheet.id, date=day, total_hours=hours))

    totals = aggregate(values, period.start)
    timesheet.week1_total = totals.week1_total
    timesheet.week2_total = totals.week2_total
    timesheet.grand_total = totals.grand_total
    session.commit()
    return timesheet


if __name__ == "__main__":
    with session_scope() as db:
        seed(db)

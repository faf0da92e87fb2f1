from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from timesheet_api.db.session import Base


class TimeEntry(Base):
    __tablename__ = "time_entries"
    __table_args__ = (
        UniqueConstraint("timesheet_id", "date", name="uq_time_entries_timesheet_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    timesheet_id = Column(Integer, ForeignKey("timesheets.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=True)  # HH:MM
    end_time = Column(String(5), nullable=True)
    break_minutes = Column(Integer, nullable=False, default=0)
    total_hours = Column(Numeric(scale=2), nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    timesheet = relationship("Timesheet", back_populates="time_entries")

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from timesheet_api.db.session import Base


class Timesheet(Base):
    __tablename__ = "timesheets"
    __table_args__ = (
        UniqueConstraint("user_id", "pay_period_start", name="uq_timesheets_user_period"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    pay_period_start = Column(Date, nullable=False)
    pay_period_end = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="DRAFT", index=True)  # DRAFT|SUBMITTED|APPROVED|REJECTED

    week1_total = Column(Numeric(scale=2), nullable=False, default=0)
    week2_total = Column(Numeric(scale=2), nullable=False, default=0)
    grand_total = Column(Numeric(scale=2), nullable=False, default=0)

    submitted_at = Column(DateTime, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejected_at = Column(DateTime, nullable=True)
    rejected_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", foreign_keys=[user_id])
    time_entries = relationship(
        "TimeEntry",
        back_populates="timesheet",
        order_by="TimeEntry.date",
        cascade="all, delete-orphan",
    )

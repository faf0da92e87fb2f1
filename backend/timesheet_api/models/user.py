from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from timesheet_api.db.session import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    department = Column(String(100), nullable=True, index=True)
    role = Column(String(50), nullable=False, default="staff")  # staff|staff_admin|admin
    created_at = Column(DateTime, default=datetime.utcnow)

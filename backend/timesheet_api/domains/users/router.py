from __future__ import annotations

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import func
from sqlalchemy.orm import Session

from timesheet_api.core.logging import get_logger
from timesheet_api.db.session import get_session
from timesheet_api.models.user import User

router = APIRouter(prefix="/users", tags=["users"])
logger = get_logger(__name__)

Role = Literal["staff", "staff_admin", "admin"]


class UserCreate(BaseModel):
    email: str
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    role: Role = "staff"

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        email = value.strip()
        if "@" not in email:
            raise ValueError("Invalid email format")
        return email


class UserOut(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    department: str | None
    role: Role
    created_at: datetime


def _sanitize(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        department=user.department,
        role=user.role,
        created_at=user.created_at or datetime.utcnow(),
    )


@router.get("", response_model=list[UserOut])
def list_users(
    department: str | None = Query(default=None),
    db: Session = Depends(get_session),
) -> list[UserOut]:
    query = db.query(User)
    if department:
        query = query.filter(User.department == department)
    users = query.order_by(User.last_name.asc(), User.first_name.asc(), User.id.asc()).all()
    return [_sanitize(user) for user in users]


@router.post("", response_model=UserOut, status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_session)) -> UserOut:
    existing_user = (
        db.query(User)
        .filter(func.lower(User.email) == payload.email.lower())
        .one_or_none()
    )
    if existing_user:
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(
        email=payload.email.strip(),
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        department=(payload.department or "").strip() or None,
        role=payload.role,
    )

    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("user_created", email=payload.email, role=payload.role, department=user.department)
    return _sanitize(user)

from __future__ import annotations

from datetime import datetime

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from timesheet_api.db.session import Base, get_session
from timesheet_api.domains.timesheets.router import get_timesheet_service
from timesheet_api.main import app
from timesheet_api.repositories.sql_timesheet_repository import SqlTimesheetRepository
from timesheets.service import TimesheetService

FIXED_NOW = datetime(2025, 1, 8, 10, 15)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def override_get_timesheet_service(db: Session = Depends(get_session)) -> TimesheetService:
    return TimesheetService(SqlTimesheetRepository(db), clock=lambda: FIXED_NOW)


app.dependency_overrides[get_session] = override_get_session
app.dependency_overrides[get_timesheet_service] = override_get_timesheet_service


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_user(client):
    def create_user(email: str, department: str = "Finance", role: str = "staff") -> dict:
        response = client.post(
            "/users",
            json={
                "email": email,
                "first_name": email.split("@")[0].title(),
                "last_name": "Tester",
                "department": department,
                "role": role,
            },
        )
        assert response.status_code == 201, response.text
        return response.json()

    return create_user

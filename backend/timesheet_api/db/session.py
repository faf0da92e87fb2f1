from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from timesheet_api.core.config import settings


def connect_args_for(database_url: str, timeout: float) -> dict[str, Any]:
    """Bound connection and lock waits so no request blocks indefinitely."""
    backend = make_url(database_url).get_backend_name()
    if backend == "sqlite":
        return {"check_same_thread": False, "timeout": timeout}
    if backend == "postgresql":
        return {"connect_timeout": max(int(timeout), 1)}
    return {}


engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    connect_args=connect_args_for(settings.database_url, settings.db_timeout_seconds),
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_session() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timesheet_api.core.logging import get_logger
from timesheet_api.db.session import get_session

router = APIRouter(prefix="/health", tags=["health"])
logger = get_logger(__name__)


@router.get("", summary="Liveness probe")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/ready", summary="Readiness probe (database reachable)")
def readiness(db: Session = Depends(get_session)):
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("database_unreachable", exc_info=True)
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return {"status": "ok"}

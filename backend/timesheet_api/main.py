from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from timesheet_api.api.routes import health
from timesheet_api.core.config import settings
from timesheet_api.core.logging import bind_request_context, configure_logging, get_logger
from timesheet_api.core.monitoring import configure_error_monitoring
from timesheet_api.core.observability import configure_observability
from timesheet_api.domains.timesheets.router import router as timesheets_router
from timesheet_api.domains.users.router import router as users_router

configure_logging(settings.log_level)
configure_observability()
configure_error_monitoring()
logger = get_logger(__name__)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin) for origin in settings.cors_origins] or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(timesheets_router)
app.include_router(users_router)


@app.middleware("http")
async def request_context(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or uuid4().hex
    bind_request_context(request_id=request_id, path=request.url.path, method=request.method)
    response = await call_next(request)
    response.headers["x-request-id"] = request_id
    return response


@app.exception_handler(RequestValidationError)
async def validation_failure(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg', 'invalid value')}" if location else first.get("msg", "Invalid request")
    logger.info("request_validation_failed", path=request.url.path, error=message)
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": message, "code": "validation", "retryable": False},
    )


@app.on_event("startup")
def startup_event() -> None:
    logger.info("startup_complete", env=settings.env, pay_period_anchor=settings.pay_period_anchor.isoformat())


@app.get("/")
def root() -> dict[str, str]:
    return {"message": "Timesheets API running", "environment": settings.env}

import os
from datetime import date
from functools import lru_cache
from pathlib import Path

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from timesheets.pay_period import PAY_PERIOD_ANCHOR

BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    env: str = Field(default="dev", description="Deployment environment")
    app_name: str = "Band Office Timesheets API"
    database_url: str = Field(
        default="sqlite:///./timesheets.db",
        description="Database connection string",
    )
    db_timeout_seconds: float = Field(default=30.0, gt=0, description="Connect/lock timeout for the database")
    cors_origins: list[AnyHttpUrl] = []
    log_level: str = "INFO"
    sentry_dsn: str | None = Field(default=None, description="Sentry DSN for error monitoring")
    otlp_endpoint: str | None = Field(default=None, description="OTLP endpoint for traces/metrics")
    pay_period_anchor: date = Field(default=PAY_PERIOD_ANCHOR, description="Monday that starts pay period 0")
    require_rejection_reason: bool = Field(
        default=False, description="Refuse rejections without a reason instead of using a placeholder"
    )

    model_config = SettingsConfigDict(env_prefix="TIMESHEETS_", extra="ignore")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, value: str | list[AnyHttpUrl]) -> list[AnyHttpUrl]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin]
        return value

    @field_validator("pay_period_anchor")
    @classmethod
    def anchor_is_monday(cls, value: date) -> date:
        if value.weekday() != 0:
            raise ValueError("pay_period_anchor must be a Monday")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings(_env_file=get_settings_env_file())


def get_settings_env_file() -> str | None:
    """Resolve environment-specific env file if it exists."""
    env = os.getenv("TIMESHEETS_ENV", "dev")
    env_file = BASE_DIR / f".env.{env}"
    default_file = BASE_DIR / ".env"
    if env_file.exists():
        return str(env_file)
    if default_file.exists():
        return str(default_file)
    return None


settings = get_settings()

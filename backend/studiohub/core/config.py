# backend/studiohub/core/config.py
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import EXPIRED_RESERVATION_RETENTION_DAYS, RESERVATION_HOLD_MINUTES


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.info(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: str = Field(default="development", description="Deployment environment name")

    database_url: str = Field(
        default="sqlite+pysqlite:///./studiohub.db",
        description="SQLAlchemy database URL",
    )
    database_echo: bool = False
    sqlite_busy_timeout_seconds: float = Field(
        default=30.0,
        description="SQLite busy timeout; concurrent writers wait this long for the write lock",
        gt=0,
    )

    # memory:// keeps pub/sub in-process; use redis://host:6379 when running several workers
    broadcast_url: str = Field(
        default="memory://",
        description="Broadcaster backend URL for availability/reservation events",
    )

    scheduler_enabled: bool = Field(
        default=True,
        description="Enable background schedulers (disabled automatically during tests)",
    )
    reservation_hold_minutes: int = Field(
        default=RESERVATION_HOLD_MINUTES,
        description="Minutes a pending reservation holds its slots",
        ge=1,
    )
    expiry_sweep_interval_seconds: int = Field(
        default=60,
        description="Seconds between expiry sweeps",
        ge=1,
    )
    cleanup_retention_days: int = Field(
        default=EXPIRED_RESERVATION_RETENTION_DAYS,
        description="Expired reservations older than this many days are deleted",
        ge=1,
    )
    cleanup_hour_utc: int = Field(
        default=0,
        description="Wall-clock hour (UTC) of the daily expired-reservation cleanup",
        ge=0,
        le=23,
    )
    availability_cas_retries: int = Field(
        default=5,
        description="Attempts for a versioned availability write before reporting a conflict",
        ge=1,
    )
    reschedule_days_ahead: int = Field(default=14, ge=1, le=90)
    sse_heartbeat_interval: float = Field(default=15.0, description="Seconds between SSE heartbeats", gt=0)

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return (value or "INFO").strip().upper()

    @property
    def is_testing(self) -> bool:
        return is_running_tests() or self.environment.strip().lower() == "test"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = Settings()

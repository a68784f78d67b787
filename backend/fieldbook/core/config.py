# backend/fieldbook/core/config.py
import logging
import os
import sys

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def is_running_tests() -> bool:
    """Return True when the process looks like a pytest run."""
    if os.getenv("PYTEST_CURRENT_TEST"):
        return True
    return "pytest" in sys.modules


class Settings(BaseSettings):
    environment: str = Field(default="development", description="Deployment environment name")
    database_url: str = Field(
        default="sqlite:///./fieldbook.db",
        description="SQLAlchemy database URL",
    )
    log_level: str = Field(default="INFO", description="Root log level")
    create_tables_on_startup: bool = Field(
        default=True, description="Run metadata.create_all during application startup"
    )

    # Booking engine
    booking_page_size: int = Field(default=15, ge=1, description="Page size for booking lists")
    calendar_slot_minutes: int = Field(
        default=30, ge=1, description="Length of one calendar availability slot"
    )
    default_utc_offset_minutes: int = Field(
        default=420, description="UTC offset used for facilities created without one (UTC+7)"
    )

    # Notifications
    notification_page_size: int = Field(default=15, ge=1)
    sse_heartbeat_interval: int = Field(default=30, description="SSE heartbeat interval in seconds")
    notification_queue_size: int = Field(
        default=100, ge=1, description="Buffered events per live connection before dropping"
    )

    # Monitoring
    slow_operation_threshold: float = Field(
        default=1.0, description="Service operations slower than this (seconds) log a warning"
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()

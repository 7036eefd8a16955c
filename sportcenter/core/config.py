# sportcenter/core/config.py
from decimal import Decimal
import logging
import os
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz

logger = logging.getLogger(__name__)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


class Settings(BaseSettings):
    environment: Literal["development", "production", "test"] = Field(
        default="development",
        description="Deployment environment name",
    )
    log_level: str = Field(default="INFO", description="Root log level")

    # Database
    database_url: str = Field(
        default="sqlite:///./sportcenter.db",
        description="SQLAlchemy database URL",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")
    database_pool_size: int = 5
    database_max_overflow: int = 10
    availability_isolation_level: str = Field(
        default="REPEATABLE READ",
        description="Isolation level for availability reads (PostgreSQL only)",
    )

    # Scheduling
    slot_step_minutes: int = Field(
        default=30, description="Spacing between candidate slot starts"
    )
    min_reservation_minutes: int = 30
    max_reservation_minutes: int = 480  # 8 hours
    default_timezone: str = Field(
        default="Europe/Madrid",
        description="IANA timezone used when a center has none configured",
    )

    # Payments
    amount_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        description="Accepted difference between client and server payment amounts",
    )
    card_redirect_base_url: str = Field(
        default="http://localhost:3000/api/payments/redsys/redirect",
        description="Base URL of the external card processor redirect",
    )

    # Wallet
    ledger_page_size_default: int = 20
    ledger_page_size_max: int = 100

    # Metrics
    prometheus_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        if value not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def _check_reservation_bounds(self) -> "Settings":
        if self.slot_step_minutes <= 0:
            raise ValueError("slot_step_minutes must be positive")
        if self.min_reservation_minutes > self.max_reservation_minutes:
            raise ValueError("min_reservation_minutes cannot exceed max_reservation_minutes")
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()

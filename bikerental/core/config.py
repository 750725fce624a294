# bikerental/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = _PROJECT_ROOT / ".env"
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


IsolationLevel = Literal["READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE"]
SignalProviderName = Literal["http", "static"]


class Settings(BaseSettings):
    """
    Runtime configuration for the reservation service.

    Every field can be overridden with a ``BIKERENTAL_``-prefixed environment
    variable, e.g. ``BIKERENTAL_DATABASE_URL``.
    """

    model_config = SettingsConfigDict(
        env_prefix="BIKERENTAL_",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = "development"
    log_level: str = "INFO"

    # Ledger
    database_url: str = "sqlite:///./bikerental.db"
    reservation_isolation_level: IsolationLevel = "REPEATABLE READ"
    # Lock wait for writes outside a reservation (bike CRUD, cancel); reservation
    # transactions wait at most until their request deadline.
    sqlite_busy_timeout_seconds: float = Field(default=5.0, gt=0)

    # Deadlines
    request_timeout_seconds: float = Field(default=10.0, gt=0)
    provider_timeout_seconds: float = Field(default=3.0, gt=0)

    # Discount signal providers
    signal_provider: SignalProviderName = "http"
    weather_api_url: str = "http://localhost:8081"
    incidents_api_url: str = "http://localhost:8082"
    incident_proximity_km: float = Field(default=10.0, gt=0)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return normalized

    @model_validator(mode="after")
    def _lock_wait_within_deadline(self) -> "Settings":
        if self.sqlite_busy_timeout_seconds >= self.request_timeout_seconds:
            raise ValueError(
                "sqlite_busy_timeout_seconds must be shorter than request_timeout_seconds"
            )
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()

from __future__ import annotations

import threading
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- MongoDB ---
    MONGO_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI",
    )
    MONGO_DB_NAME: str = Field(
        default="waterwatch",
        description="MongoDB database name",
    )
    MONGO_TIMEOUT_MS: int = Field(
        default=5_000,
        ge=100,
        description="Connect, server-selection and socket timeout for MongoDB calls",
    )

    # --- Redis ---
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URI",
    )
    REDIS_TIMEOUT_SECONDS: float = Field(
        default=5.0,
        gt=0,
        description="Connect and socket timeout for the sweeper lock client",
    )

    # --- Alert sweeper ---
    ALERT_SWEEPER_ENABLED: bool = Field(
        default=True,
        description="Run the auto-resolve / escalation sweeper inside the API process",
    )
    ALERT_SWEEP_INTERVAL_SECONDS: int = Field(
        default=60,
        ge=1,
        description="Seconds between two sweeper passes",
    )
    ALERT_SWEEP_LOCK_TIMEOUT_SECONDS: int = Field(
        default=120,
        ge=1,
        description="Expiry of the Redis lock held while a sweep runs",
    )
    ALERT_PENDING_ACTIONS_GRACE_SECONDS: int = Field(
        default=300,
        ge=0,
        description="Age after which an alert with unprocessed rule actions is retried",
    )

    # --- Alert rule semantics ---
    ALERT_EVALUATE_RULE_CONDITIONS: bool = Field(
        default=False,
        description="Gate rule actions on the rule's conditions, not only on type and severity",
    )
    ALERT_STRICT_STATUS_TRANSITIONS: bool = Field(
        default=False,
        description="Reject status changes that are not legal lifecycle transitions",
    )
    ALERT_ESCALATION_CHAINS: bool = Field(
        default=False,
        description="Schedule every escalation step of a rule instead of only the first",
    )

    # --- Logging ---
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Application log level",
    )

    # --- Environment ---
    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


_settings_instance: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Return the singleton Settings instance (thread-safe)."""
    global _settings_instance
    if _settings_instance is None:
        with _settings_lock:
            if _settings_instance is None:
                _settings_instance = Settings()
    return _settings_instance

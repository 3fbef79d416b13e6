"""Worker configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"

_SUPPORTED_DATABASE_SCHEMES = ("postgresql", "sqlite")


class ConfigurationError(RuntimeError):
    """Raised when the environment does not describe a runnable worker."""


class Settings(BaseSettings):
    """Worker configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        description="SQLAlchemy URL of the database holding the queue and token tables",
        min_length=1,
    )
    firebase_project_id: str = Field(
        description="Firebase project that owns the messaging sender", min_length=1
    )
    firebase_client_email: str = Field(
        description="Service account client email", min_length=3
    )
    firebase_private_key: str = Field(
        description="Service account private key in PEM format", min_length=1
    )

    batch_size: int = Field(default=50, ge=1, le=1000)
    poll_interval_ms: int = Field(default=5000, ge=1000)
    claim_timeout_minutes: int = Field(default=30, gt=0)
    reclaim_interval_minutes: int = Field(default=10, gt=0)
    retention_days: int = Field(default=7, gt=0)
    cleanup_interval_minutes: int = Field(default=60, gt=0)
    token_freshness_days: int = Field(default=60, gt=0)
    shutdown_grace_seconds: float = Field(default=5.0, ge=0)

    payload_max_value_length: int = Field(default=4000, ge=4)
    payload_max_total_size: int = Field(default=4000, ge=1)

    android_channel_id: str = Field(default="push_notifications", min_length=1)
    android_priority: str = Field(default="high", pattern="^(high|normal)$")
    android_click_action: str | None = Field(default="FLUTTER_NOTIFICATION_CLICK")

    health_report_interval_seconds: int = Field(default=60, gt=0)
    backlog_warning_threshold: int = Field(default=1000, ge=0)
    stuck_warning_threshold: int = Field(default=100, ge=0)
    enable_health_server: bool = False
    health_host: str = "0.0.0.0"
    health_port: int = Field(default=3000, ge=1, le=65535)

    worker_id: str | None = None
    log_level: str = "INFO"

    @field_validator("database_url")
    @classmethod
    def _validate_database_url(cls, value: str) -> str:
        scheme = value.split("://", 1)[0].split("+", 1)[0].lower()
        if "://" not in value or scheme not in _SUPPORTED_DATABASE_SCHEMES:
            raise ValueError("DATABASE_URL must be a postgresql:// or sqlite:// URL")
        return value

    @field_validator("firebase_client_email")
    @classmethod
    def _validate_client_email(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError("FIREBASE_CLIENT_EMAIL must be a valid email address")
        return value

    @field_validator("firebase_private_key")
    @classmethod
    def _normalize_private_key(cls, value: str) -> str:
        key = value.replace("\\n", "\n")
        if "BEGIN PRIVATE KEY" not in key:
            raise ValueError("FIREBASE_PRIVATE_KEY must be a PEM encoded private key")
        return key

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return cached worker settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


def load_settings() -> Settings:
    """Return validated settings or raise :class:`ConfigurationError`."""

    try:
        return get_settings()
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']).upper() or 'SETTINGS'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ConfigurationError(f"Invalid worker configuration: {problems}") from exc


__all__ = [
    "ConfigurationError",
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings_cache",
]

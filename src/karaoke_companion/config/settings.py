"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.messages import ErrorMessages


class DatabaseSettings(BaseModel):
    """Database configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    url: str = Field(
        default="sqlite:///data/karaoke.db",
        validation_alias=AliasChoices("url", "database_url", "db_url"),
    )
    busy_timeout_ms: int = Field(
        default=5000,
        ge=1000,
        le=30000,
        validation_alias=AliasChoices("busy_timeout_ms", "busy_timeout"),
    )
    connection_timeout_s: int = Field(
        default=10,
        ge=1,
        le=60,
        validation_alias=AliasChoices("connection_timeout_s", "connection_timeout"),
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate database URL format."""
        if not v.startswith("sqlite://"):
            raise ValueError(ErrorMessages.INVALID_DATABASE_URL)
        return v


class RelaySettings(BaseModel):
    """Hosted-session relay configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    api_url: str = Field(
        default="https://homekaraoke.app",
        validation_alias=AliasChoices("api_url", "relay_url", "base_url"),
    )
    join_base_url: str = Field(
        default="https://homekaraoke.app",
        validation_alias=AliasChoices("join_base_url", "join_url"),
    )
    qr_code_base_url: str = Field(
        default="https://api.qrserver.com/v1/create-qr-code",
        validation_alias=AliasChoices("qr_code_base_url", "qr_url"),
    )
    request_timeout_s: float = Field(
        default=15.0,
        gt=0,
        le=120,
        validation_alias=AliasChoices("request_timeout_s", "timeout"),
    )

    @field_validator("api_url", "join_base_url", "qr_code_base_url")
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"URL must start with http:// or https://: {v}")
        return v.rstrip("/")


class AuthSettings(BaseModel):
    """Identity provider configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    refresh_url: str = Field(
        default="",
        validation_alias=AliasChoices("refresh_url", "token_url"),
    )
    api_key: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("api_key", "anon_key"),
    )
    request_timeout_s: float = Field(default=15.0, gt=0, le=120)
    token_expiry_buffer_seconds: int = Field(
        default=300,
        ge=0,
        validation_alias=AliasChoices("token_expiry_buffer_seconds", "expiry_buffer"),
    )
    user_profile_timeout_s: float = Field(default=5.0, gt=0, le=60)


class HostingSettings(BaseModel):
    """Hosted-session lifecycle configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    poll_interval_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias=AliasChoices("poll_interval_seconds", "poll_interval"),
    )
    # None keeps retrying transient restore failures forever
    max_consecutive_restore_failures: int | None = Field(default=None, ge=1)


class QueueSettings(BaseModel):
    """Queue behaviour configuration."""

    model_config = SettingsConfigDict(frozen=True)

    fair_queue_enabled: bool = False


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - DATABASE__URL, DATABASE__BUSY_TIMEOUT_MS (nested with ``__``)
    - RELAY__API_URL, RELAY__JOIN_BASE_URL
    - AUTH__REFRESH_URL, AUTH__API_KEY
    - HOSTING__POLL_INTERVAL_SECONDS, QUEUE__FAIR_QUEUE_ENABLED
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        strict=True,
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    relay: RelaySettings = Field(default_factory=RelaySettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    hosting: HostingSettings = Field(default_factory=HostingSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels))
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()

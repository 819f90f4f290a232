"""
Centralized configuration for the ERP sync core.

All settings are Pydantic models whose defaults come from environment
variables, assembled into a single ``AppConfig`` available through
``get_config()``. Database connection settings live in
``erp_sync_core.db.db_config``.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_DAILY_REQUEST_LIMIT,
    DEFAULT_INTEGRATION,
    DEFAULT_MIN_REQUEST_INTERVAL_SECONDS,
    DEFAULT_PAGE_SIZE,
    DEFAULT_TOKEN_URL,
    TOKEN_SAFETY_MARGIN_SECONDS,
    EnvironmentVariable,
    LogLevel,
)


class OAuthConfig(BaseModel):
    """OAuth client registration for the external ERP."""

    integration: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.ERP_INTEGRATION.value, DEFAULT_INTEGRATION
        ),
        description="Integration name the credential record is stored under",
    )
    client_id: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.ERP_CLIENT_ID.value, ""),
        description="OAuth client id",
    )
    client_secret: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.ERP_CLIENT_SECRET.value, ""),
        description="OAuth client secret",
    )
    token_url: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.ERP_TOKEN_URL.value, DEFAULT_TOKEN_URL
        ),
        description="OAuth token endpoint",
    )

    def __repr__(self) -> str:
        return (
            f"OAuthConfig(integration='{self.integration}', "
            f"client_id='{self.client_id}', client_secret='***', "
            f"token_url='{self.token_url}')"
        )


class ApiConfig(BaseModel):
    """External resource API settings."""

    base_url: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.ERP_API_BASE_URL.value, DEFAULT_API_BASE_URL
        ),
        validate_default=True,
        description="Base URL of the resource API",
    )
    timeout_seconds: float = Field(
        default_factory=lambda: float(
            os.getenv(EnvironmentVariable.ERP_TIMEOUT_SECONDS.value, "30")
        ),
        gt=0,
        validate_default=True,
        description="Timeout applied to every outbound call",
    )
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, gt=0, le=100, description="Records per page")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class RateLimitConfig(BaseModel):
    """Pacing and retry policy for outbound requests."""

    min_interval_seconds: float = Field(
        default=DEFAULT_MIN_REQUEST_INTERVAL_SECONDS,
        ge=0,
        description="Minimum spacing between two outbound requests",
    )
    daily_limit: Optional[int] = Field(
        default=DEFAULT_DAILY_REQUEST_LIMIT,
        gt=0,
        description="Requests allowed per UTC day (None disables the budget)",
    )
    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    base_delay_seconds: float = Field(default=1.0, gt=0, description="First backoff delay")
    max_delay_seconds: float = Field(default=10.0, gt=0, description="Backoff cap")
    backoff_multiplier: float = Field(default=2.0, ge=1, description="Backoff growth factor")
    jitter: bool = Field(default=False, description="Randomize backoff delays")


class SyncConfig(BaseModel):
    """Behavior of the sync orchestrator and token manager."""

    safety_margin_seconds: int = Field(
        default=TOKEN_SAFETY_MARGIN_SECONDS,
        ge=0,
        description="Refresh tokens this long before they expire",
    )
    initial_lookback_hours: int = Field(
        default=24, gt=0, description="Poll window used when no cursor exists yet"
    )
    fetch_detail: bool = Field(
        default=True, description="Re-fetch each listed record's full detail before reconciling"
    )
    webhook_secret: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.ERP_WEBHOOK_SECRET.value)
        or os.getenv(EnvironmentVariable.ERP_CLIENT_SECRET.value)
        or None,
        description="HMAC key for webhook signatures (defaults to the client secret)",
    )


class QueueConfig(BaseModel):
    """Azure Storage Queue used for shipping structured logs."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.AZURE_STORAGE_CONNECTION.value, ""),
        description="Azure Storage connection string",
    )
    logs_queue_name: str = Field(default="erp-sync-logs", description="Log queue name")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class FeatureFlags(BaseModel):
    """Feature flags for optional behavior."""

    enable_logs_queue: bool = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.ENABLE_LOGS_QUEUE.value, "false"
        ).lower()
        == "true",
        description="Ship log records to the Azure logs queue",
    )
    enable_sync_log: bool = Field(default=True, description="Write sync_log audit rows")
    verify_webhook_signature: bool = Field(
        default=True, description="Reject webhooks without a valid HMAC signature"
    )


class SecurityConfig(BaseModel):
    """Security-related configuration."""

    encryption_key: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.ERP_ENCRYPTION_KEY.value),
        description="Symmetric key for pgcrypto token encryption",
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    environment: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.APP_ENV.value, "development"),
        description="Application environment",
    )

    oauth: OAuthConfig = Field(default_factory=OAuthConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None

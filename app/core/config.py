"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_store_settings() -> "StoreSettings":
    """Build store settings from environment.

    Static type checkers treat BaseSettings fields as constructor arguments,
    which is not how BaseSettings is meant to be used, hence the ignore.
    """

    return StoreSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class StoreSettings(BaseSettings):
    """Key-value store connection configuration.

    The redis backend talks to Redis or Valkey; the memory backend keeps
    everything in-process and is meant for local runs and tests.
    """

    backend: Literal["redis", "memory"] = Field(
        "redis",
        description="Store backend to use (redis or memory)",
    )
    redis_url: str = Field(
        "redis://localhost:6380",
        validation_alias=AliasChoices("STORE_REDIS_URL", "REDIS_URL"),
        description="Redis/Valkey connection URL",
    )
    max_retries: int = Field(
        3,
        ge=0,
        description="Retries per command on connection/timeout errors",
    )
    retry_backoff_base_ms: int = Field(
        50,
        ge=1,
        description="Base delay for the exponential retry backoff",
    )
    retry_backoff_cap_ms: int = Field(
        2000,
        ge=1,
        description="Upper bound for a single retry delay",
    )
    socket_timeout_seconds: float = Field(
        5.0,
        gt=0,
        description="Socket read/connect timeout for store commands",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
        populate_by_name=True,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Log at DEBUG level regardless of LOG_LEVEL",
    )

    rate_limit_requests: int = Field(
        10,
        description="Maximum number of requests allowed per window (per client)",
        ge=1,
    )
    rate_limit_window_ms: int = Field(
        60_000,
        description="Sliding window length in milliseconds",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers in responses",
    )
    top_consumers_sample: int = Field(
        10,
        description="Number of rate limit keys inspected when ranking consumers",
        ge=1,
    )

    cache_ttl_seconds: int = Field(
        3600,
        description="Time-to-live of cached generation results",
        ge=1,
    )

    activity_max_len: int = Field(
        100,
        description="Maximum number of events retained in the activity log",
        ge=1,
    )
    activity_excerpt_chars: int = Field(
        50,
        description="Number of prompt characters stored with each activity event",
        ge=0,
    )
    activity_recent_count: int = Field(
        20,
        description="Number of activity events returned by the stats endpoint",
        ge=1,
    )

    simulate_max_requests: int = Field(
        100,
        description="Upper bound on requests issued by a single simulation burst",
        ge=1,
    )
    generator_latency_ms: int = Field(
        0,
        description="Artificial delay added to each simulated generation",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field(
        "json",
        description="Log line format",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Where log lines are written",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file",
    )
    max_bytes: int = Field(
        0,
        ge=0,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(
        5,
        ge=0,
        description="Number of rotated log files to keep",
    )
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    store: StoreSettings = Field(default_factory=_build_store_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()

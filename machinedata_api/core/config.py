"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file

The MongoDB connection URI (MONGO_DB_URI) is the only required value. Importing
this module without it raises a validation error, so the process stops before
it starts serving.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_mongo_settings() -> "MongoSettings":
    """Build MongoDB settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return MongoSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment."""

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()  # type: ignore[call-arg]


class MongoSettings(BaseSettings):
    """Document store connection configuration."""

    uri: str = Field(
        ...,
        min_length=1,
        description="MongoDB connection URI (e.g., mongodb://localhost:27017)",
    )
    database: str = Field(
        "machinedata",
        description="Database holding the machine data collection",
    )
    collection: str = Field(
        "machinedatas",
        description="Collection holding one document per machine",
    )
    server_selection_timeout_ms: int = Field(
        5000,
        description="How long the driver waits for a reachable server before failing",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="MONGO_DB_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    host: str = Field(
        "0.0.0.0",
        description="Interface the HTTP server binds to",
    )
    port: int = Field(
        3000,
        description="Port the HTTP server listens on",
        ge=1,
        le=65535,
    )
    store_backend: Literal["mongo", "memory"] = Field(
        "mongo",
        description="Machine data store implementation (memory is process-local)",
    )
    cors_allow_origins: str = Field(
        "*",
        description="Comma-separated list of allowed CORS origins ('*' allows all)",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable the daily and burst rate limits per client",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers",
    )
    daily_limit_requests: int = Field(
        1000,
        description="Maximum requests per client within the daily window",
        ge=1,
    )
    daily_limit_window_seconds: int = Field(
        24 * 60 * 60,
        description="Daily window size in seconds",
        ge=1,
    )
    daily_limit_message: str = Field(
        "You have exceeded the 1000 requests in 24 hours limit!",
        description="Plain-text body returned when the daily limit is exceeded",
    )
    burst_limit_requests: int = Field(
        1,
        description="Maximum mutating machine data requests per client within the burst window",
        ge=1,
    )
    burst_limit_window_seconds: int = Field(
        5,
        description="Burst window size in seconds",
        ge=1,
    )
    burst_limit_message: str = Field(
        "You have exceeded the 5 seconds rate limit!",
        description="Plain-text body returned when the burst limit is exceeded",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(
        "INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)",
    )
    format: Literal["json", "plain"] = Field(
        "json",
        description="json for one object per line, plain for human-readable lines",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Where log records are written",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (default logs/app.log)",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file at this size; 0 disables rotation",
        ge=0,
    )
    backup_count: int = Field(
        5,
        description="Number of rotated log files to keep",
        ge=0,
    )
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are missing.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    mongo: MongoSettings = Field(default_factory=_build_mongo_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()

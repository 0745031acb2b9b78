"""Client configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
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

# Deployments may inject everything through the environment instead
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_client_settings() -> "ClientSettings":
    """Build client settings from environment."""

    return ClientSettings()


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()


class ClientSettings(BaseSettings):
    """Transport and pipeline configuration for the fleet API client."""

    base_url: str = Field(
        "http://127.0.0.1:8082",
        description="Origin of the fleet backend (scheme, host and port)",
    )
    api_prefix: str = Field(
        "/api",
        description="Path prefix shared by legacy and versioned routes",
    )
    versioned_prefix: str = Field(
        "/v1",
        description="Prefix prepended to every versioned protocol path",
    )
    api_key: str | None = Field(
        None,
        description="API key sent as X-API-Key on auth-required calls",
    )
    auth_required: bool = Field(
        True,
        description="Fail auth-required calls locally when no API key is configured",
    )
    timeout_ms: int = Field(
        30000,
        description="Default wall-clock timeout per attempt, in milliseconds",
        ge=1,
    )
    capture_timeout_ms: int = Field(
        30000,
        description="Dedicated per-attempt timeout for camera capture calls",
        ge=1,
    )
    max_attempts: int = Field(
        3,
        description="Retry budget: maximum attempts for one logical call",
        ge=1,
    )
    base_delay_ms: int = Field(
        1000,
        description="Base backoff delay; doubles after every failed attempt",
        ge=0,
    )
    correlation_history_size: int = Field(
        32,
        description="How many recent correlation ids the diagnostic context keeps",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="FLEET_",
        case_sensitive=False,
    )

    @property
    def api_base_url(self) -> str:
        """Origin joined with the API prefix, without a trailing slash."""

        return self.base_url.rstrip("/") + "/" + self.api_prefix.strip("/")


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field(
        "json",
        description="Log format: 'json' for machine-friendly output or 'plain'",
    )
    output: str = Field("stdout", description="Log destination: 'stdout' or 'file'")
    file_path: str | None = Field(
        None,
        description="Log file path when output is 'file'",
    )
    max_bytes: int = Field(
        0,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(3, description="Rotated files to keep", ge=0)

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file. Every field
    has a default, so an empty environment yields a usable local setup.
    """

    app_env: str = APP_ENV
    client: ClientSettings = Field(default_factory=_build_client_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


settings = Settings()

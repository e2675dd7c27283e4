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
if _env_file and os.getenv("TESTING") != "true":
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_gate_settings() -> "GateSettings":
    """Build admission gate settings from environment."""

    return GateSettings()


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()


class GateSettings(BaseSettings):
    """Admission gate configuration: policy source and counter store."""

    policy_file: str | None = Field(
        None,
        description="Path to the JSON document mapping function names to quotas",
    )
    store_backend: Literal["memory", "redis"] = Field(
        "memory",
        description="Counter store backend (memory is per-process only)",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL used when store_backend is redis",
    )
    store_timeout_seconds: float = Field(
        1.0,
        description="Network timeout applied to every counter store call",
        gt=0,
    )
    key_prefix: str = Field(
        "ApiLimiter_",
        description="Prefix separating admission counters from other keys in a shared store",
        min_length=1,
    )
    forwarded_header: str = Field(
        "X-Forwarded-For",
        description="Proxy header carrying the client origin",
    )
    trust_forwarded_header: bool = Field(
        True,
        description="Prefer the forwarded header over the transport peer address",
    )

    model_config = SettingsConfigDict(
        env_prefix="GATE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field(
        "json",
        description="json for machine-friendly logs, plain for local development",
    )
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output is file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    gate: GateSettings = Field(default_factory=_build_gate_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()

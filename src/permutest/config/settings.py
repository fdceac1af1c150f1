"""Configuration settings and loading."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from permutest.errors import ConfigValidationError, ErrorContext

CACHE_BACKENDS = ("memory", "sqlite", "yaml")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class PermutestSettings(BaseSettings):
    """Configuration for permutest."""

    model_config = SettingsConfigDict(
        env_prefix="PERMUTEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    cache_backend: str = Field(default="sqlite", description="memory, sqlite or yaml")
    cache_url: str = "sqlite:///.permutest/runs.db"
    cache_dir: str = ".permutest/runs"
    default_format: str = "default"
    log_level: str = "WARNING"

    @field_validator("cache_backend", mode="before")
    @classmethod
    def validate_cache_backend(cls, v: str) -> str:
        v = str(v).lower()
        if v not in CACHE_BACKENDS:
            raise ConfigValidationError(
                message=f"Invalid cache backend: {v}. Valid: {', '.join(CACHE_BACKENDS)}",
                field="cache_backend",
                value=v,
                context=ErrorContext(extra={"valid_backends": list(CACHE_BACKENDS)}),
            )
        return v

    @field_validator("cache_url", mode="before")
    @classmethod
    def validate_cache_url(cls, v: str) -> str:
        if not str(v).startswith("sqlite://"):
            raise ConfigValidationError(
                message="cache_url must be a SQLite connection string",
                field="cache_url",
                value=v,
                context=ErrorContext(extra={"expected_prefix": "sqlite://"}),
            )
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = str(v).upper()
        if v not in LOG_LEVELS:
            raise ConfigValidationError(
                message=f"Invalid log level: {v}. Valid: {', '.join(LOG_LEVELS)}",
                field="log_level",
                value=v,
            )
        return v


def load_config(config_path: str | Path | None = None) -> PermutestSettings:
    """Load configuration from a YAML file and the environment.

    Priority: env vars > config file > defaults
    """
    config_data: dict[str, Any] = {}

    if config_path is not None:
        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path) as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                raise ConfigValidationError(
                    message=f"Configuration must be a YAML mapping, got {type(loaded).__name__}",
                    context=ErrorContext(extra={"path": str(config_path)}),
                )
            config_data = loaded

    config_data.update(_get_env_overrides())

    return PermutestSettings(**config_data)


def _get_env_overrides() -> dict[str, Any]:
    """Get configuration overrides from environment variables.

    Init kwargs win over the environment in pydantic-settings, so values
    read from a file must be overridden here explicitly.
    """
    overrides: dict[str, Any] = {}
    for name in PermutestSettings.model_fields:
        value = os.environ.get(f"PERMUTEST_{name.upper()}")
        if value is not None:
            overrides[name] = value
    return overrides


def configure_logging(level: str | int = "WARNING") -> None:
    """Apply ``level`` to the ``permutest`` logger hierarchy."""
    logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    logging.getLogger("permutest").setLevel(level)

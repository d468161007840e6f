# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific settings. Every field can be
set through a ``DAFTFLOW_``-prefixed environment variable
(e.g. ``DAFTFLOW_CONCURRENCY=8``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DAFTFLOW_",
        extra="ignore",
    )

    # === Engine ===
    concurrency: int = 4

    # === Telemetry ===
    emit_events: bool = True
    events_file: Path | None = None

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:  # noqa: N805
        return v.upper() if isinstance(v, str) else v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate value ranges and cross-field consistency."""
        errors: list[str] = []

        if self.concurrency < 1:
            errors.append("CONCURRENCY must be >= 1")

        if self.log_retention < 0:
            errors.append("LOG_RETENTION must be >= 0")

        if self.log_file is None and self.log_rotation != "10MB":
            errors.append("LOG_ROTATION requires LOG_FILE")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]

"""Pydantic settings for wiring the draft editor."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class EditorSettings(BaseSettings):
    """Runtime configuration loaded from ``NESTFORM_*`` variables or ``.env``."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="NESTFORM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    schema_path: Optional[Path] = Field(
        default=None,
        description="YAML document declaring the parent and child fields.",
    )
    store_dir: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("NESTFORM_STORE_DIR", "NESTFORM_DATA_DIR"),
        description="Directory for the JSON record store; unset keeps records in memory.",
    )
    diagnostics_dir: Optional[Path] = Field(
        default=None,
        description="Directory receiving JSON diagnostics for rejected intents and failed commits.",
    )
    durable_writes: bool = Field(
        default=True,
        description="fsync record files before the atomic rename.",
    )
    log_level: str = Field(default="INFO", description="Level for the nestform loggers.")
    json_logs: bool = Field(default=True, description="Emit structured JSON log lines.")

    @field_validator("schema_path", "store_dir", "diagnostics_dir", mode="before")
    @classmethod
    def _blank_path_as_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("schema_path")
    @classmethod
    def _ensure_schema_exists(cls, value: Optional[Path]) -> Optional[Path]:
        if value is not None and not value.is_file():
            raise ValueError(f"Form schema file does not exist: {value}")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            candidate = value.strip().upper()
            if candidate == "WARN":
                logger.warning("Log level 'WARN' is deprecated. Use 'WARNING'.")
                candidate = "WARNING"
            if candidate not in _LOG_LEVELS:
                raise ValueError(f"Unknown log level {value!r}.")
            return candidate
        return value


@lru_cache(maxsize=1)
def get_settings() -> EditorSettings:
    """Return a cached settings instance."""

    return EditorSettings()


__all__ = ["EditorSettings", "get_settings"]

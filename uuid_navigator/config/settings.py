"""
Configuration settings for UUID Navigator.
Uses pydantic-settings for environment variable management.
"""

import re
from functools import lru_cache
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.constants import (
    DEFAULT_BATCH_SIZE_THRESHOLD,
    DEFAULT_DEBOUNCE_WINDOW,
    DEFAULT_LOG_LEVEL,
    DEFAULT_SQL_GLOB,
    UUID_PATTERN,
)
from ..utils.exceptions import ConfigurationError

_UUID_RE = re.compile(f"^{UUID_PATTERN}$")


class AutoLinkedProperty(BaseModel):
    """A property attached to classes by rule instead of by explicit link rows."""

    name: str = Field(default="", description="Display name of the property")
    uuid: str = Field(..., description="Property definition id")
    class_id: Optional[str] = Field(
        default=None,
        description="Concrete target class; when unset every processable class gets the property",
    )


class NavigatorSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="UUID_NAVIGATOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    workspace_root: str = Field(default=".", description="Directory scanned for SQL files")
    sql_glob: str = Field(default=DEFAULT_SQL_GLOB, description="SQL file discovery pattern")

    # Linking
    ignore_status: bool = Field(
        default=False,
        description="Keep the catch-all class out of direct class_id linking",
    )
    ignore_uuid: str = Field(default="", description="Catch-all (ignored status) class id")
    auto_linked_properties: List[AutoLinkedProperty] = Field(
        default_factory=list, description="Properties linked by rule (JSON in env)"
    )

    # Watcher
    debounce_window: float = Field(
        default=DEFAULT_DEBOUNCE_WINDOW, description="Debounce window in seconds"
    )
    batch_size_threshold: int = Field(
        default=DEFAULT_BATCH_SIZE_THRESHOLD, description="Max queued files before flush"
    )

    log_level: str = Field(default=DEFAULT_LOG_LEVEL, description="Logging level")

    @field_validator("ignore_uuid")
    @classmethod
    def _check_ignore_uuid(cls, value: str) -> str:
        value = value.strip()
        if value and not _UUID_RE.match(value):
            raise ValueError(f"ignore_uuid must be empty or a UUID, got {value!r}")
        return value.lower()


def load_settings(**overrides) -> NavigatorSettings:
    """Build settings from the environment, wrapping validation failures."""
    try:
        return NavigatorSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid UUID Navigator configuration: {e}") from e


@lru_cache()
def get_settings() -> NavigatorSettings:
    """
    Get cached settings instance for command-line entry points.

    Linking does not use this; ModelLinker and SqlProcessor default to
    ``load_settings`` so every pass sees the current environment.
    """
    return load_settings()


def reload_settings() -> NavigatorSettings:
    """Drop the cached settings and load them again."""
    get_settings.cache_clear()
    return get_settings()

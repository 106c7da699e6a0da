"""
Utility modules for UUID Navigator.

This package provides common exceptions, constants, metrics and logging
configuration used throughout the application.
"""

from __future__ import annotations

from .constants import (
    CLASS_TABLE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_SQL_GLOB,
    LINK_TABLE,
    OBJECTS_TABLE,
    PROPERTY_TABLE,
    UUID_PATTERN,
)
from .exceptions import (
    CacheError,
    ConfigurationError,
    IngestionError,
    NavigatorError,
    ParsingError,
)
from .logging_config import get_logger, setup_logging

__all__ = [
    # Constants
    "CLASS_TABLE",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_SQL_GLOB",
    "LINK_TABLE",
    "OBJECTS_TABLE",
    "PROPERTY_TABLE",
    "UUID_PATTERN",
    # Exceptions
    "CacheError",
    "ConfigurationError",
    "IngestionError",
    "NavigatorError",
    "ParsingError",
    # Logging
    "get_logger",
    "setup_logging",
]

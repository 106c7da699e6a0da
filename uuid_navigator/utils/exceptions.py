"""
Custom exception hierarchy for UUID Navigator.

Malformed SQL never raises: the tokenizer and record parsers degrade to
fewer records plus a log line. These exceptions cover configuration
problems, per-file ingestion failures and misuse of disposed objects.
"""

from __future__ import annotations


class NavigatorError(Exception):
    """Base exception for all UUID Navigator errors."""

    pass


class ConfigurationError(NavigatorError):
    """Raised when configuration is invalid or missing."""

    pass


class IngestionError(NavigatorError):
    """Raised when a SQL file cannot be read or processed."""

    pass


class ParsingError(IngestionError):
    """Raised when a SQL file's content cannot be turned into records."""

    pass


class CacheError(NavigatorError):
    """Raised when a model cache is used after it has been disposed."""

    pass

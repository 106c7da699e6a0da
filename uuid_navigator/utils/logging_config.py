"""
Logging setup for UUID Navigator entry points.

Library modules only create ``logging.getLogger(__name__)`` loggers; the
watcher ``__main__`` and ``scripts/dump_model.py`` call ``setup_logging``
once at startup. Per-row parse problems are logged at WARNING with a
``file:line`` suffix, so WARNING is the quietest useful level for bulk runs.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Optional, Union

from .constants import DEFAULT_LOG_LEVEL, LOG_FORMAT

LOG_LEVEL_ENV = "UUID_NAVIGATOR_LOG_LEVEL"

# observer threads and the event loop are chatty at DEBUG
_NOISY_LOGGERS = ("watchdog", "asyncio")


def resolve_level(level: Union[str, int, None] = None) -> int:
    """
    Turn a level name or number into a logging constant.

    Falls back to ``UUID_NAVIGATOR_LOG_LEVEL``, then ``DEFAULT_LOG_LEVEL``.
    Unknown names resolve to INFO.
    """
    if isinstance(level, int):
        return level

    name = (level or os.getenv(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL).strip().upper()
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def setup_logging(
    level: Union[str, int, None] = None,
    format_string: Optional[str] = None,
    stream: Optional[IO[str]] = None,
) -> int:
    """
    Configure the root logger for a command-line run.

    Args:
        level: Level name or number; defaults to the environment
        format_string: Record format; defaults to LOG_FORMAT
        stream: Output stream; defaults to stdout

    Returns:
        The numeric level that was applied
    """
    numeric_level = resolve_level(level)

    logging.basicConfig(
        level=numeric_level,
        format=format_string or LOG_FORMAT,
        handlers=[logging.StreamHandler(stream or sys.stdout)],
        force=True,
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    logging.getLogger(__name__).debug(
        f"Logging configured with level: {logging.getLevelName(numeric_level)}"
    )
    return numeric_level


def get_logger(name: str) -> logging.Logger:
    """Module logger; same as ``logging.getLogger(name)``."""
    return logging.getLogger(name)

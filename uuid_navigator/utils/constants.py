"""
Application constants for UUID Navigator.

This module contains table names, patterns and default values used
throughout the parser, linker and cache layers.
"""

from __future__ import annotations

# Source tables recognised in INSERT statements
CLASS_TABLE = "classes"
PROPERTY_TABLE = "property_definitions"
LINK_TABLE = "classes_property_definitions"
OBJECTS_TABLE = "objects"

# File discovery
DEFAULT_SQL_GLOB = "**/*.sql"
HASH_CHUNK_SIZE = 8192  # bytes read per hashing step

# Identifier format (case-insensitive)
UUID_PATTERN = r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"

# Placeholder tokens rewritten before parsing
UTC_NOW_PARAM = ":my_utc_now"
ADMIN_ID_PARAM = ":my_admin_id"
UUID_GENERATOR_CALL = "gen_random_uuid()"

# Watcher defaults
DEFAULT_DEBOUNCE_WINDOW = 0.5  # seconds
DEFAULT_BATCH_SIZE_THRESHOLD = 50  # files

# Logging configuration
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

"""Services layer: model orchestration, alias overlay and UUID lookup."""

from __future__ import annotations

from .alias_service import AliasService
from .sql_processor import SqlProcessor, merge_parsed_files
from .uuid_finder import UuidFinder, UuidInfo

__all__ = [
    "AliasService",
    "SqlProcessor",
    "merge_parsed_files",
    "UuidFinder",
    "UuidInfo",
]

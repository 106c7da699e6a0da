"""
Ingestion module for SQL seed scripts.

This module handles comment stripping and placeholder rewriting, INSERT
statement tokenizing, typed record parsing, the per-file and aggregate
model cache, and change batching for the file watcher.
"""

from __future__ import annotations

__all__: list[str] = []

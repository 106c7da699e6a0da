"""
Model Cache - in-memory two-level cache for parsed SQL files and the linked model.

Level 1 (file cache) maps a file path to ``(content_hash, ParsedFile)``;
a hit requires the stored hash to equal the file's current SHA-256.

Level 2 (aggregate cache) stores the linked, sorted ModelSnapshot together
with the ``{path: hash}`` map it was computed from. It is valid only while
the current map is identical, since linking is cross-file.

All state is process-lifetime and owned by one SqlProcessor instance.
"""

import hashlib
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from ..models.records import ModelSnapshot, ParsedFile
from ..utils import metrics
from ..utils.constants import HASH_CHUNK_SIZE
from ..utils.exceptions import CacheError

logger = logging.getLogger(__name__)


class CacheState(Enum):
    EMPTY = "empty"
    POPULATED = "populated"


@dataclass
class AggregateEntry:
    file_hashes: Dict[str, str]
    snapshot: ModelSnapshot
    created_at: float = field(default_factory=time.time)


def compute_file_hash(file_path: str) -> str:
    """
    Compute SHA-256 hash of file content.

    Args:
        file_path: Path to file

    Returns:
        Hex digest of SHA-256 hash
    """
    sha256 = hashlib.sha256()

    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            sha256.update(chunk)

    return sha256.hexdigest()


class ModelCache:
    """
    Per-file and aggregate cache for one processor.

    Features:
    - Exact content-hash matching for per-file entries
    - Whole-set hash comparison for the aggregate snapshot
    - Explicit lifecycle: invalidate, invalidate_file, dispose
    - Hit/miss statistics for both levels
    """

    def __init__(self):
        self._files: Dict[str, Tuple[str, ParsedFile]] = {}
        self._aggregate: Optional[AggregateEntry] = None
        self._disposed = False

        # Statistics
        self._file_hits = 0
        self._file_misses = 0
        self._aggregate_hits = 0
        self._aggregate_misses = 0

    def _check_alive(self):
        if self._disposed:
            raise CacheError("ModelCache used after dispose()")

    @property
    def state(self) -> CacheState:
        if self._aggregate is None and not self._files:
            return CacheState.EMPTY
        return CacheState.POPULATED

    @property
    def disposed(self) -> bool:
        return self._disposed

    # ------------------------------------------------------------------
    # File level
    # ------------------------------------------------------------------

    def get_file(self, file_path: str, content_hash: str) -> Optional[ParsedFile]:
        """
        Get cached parse result for a file.

        Args:
            file_path: Absolute file path
            content_hash: Current hash of the file

        Returns:
            Cached ParsedFile, or None if missing or stale
        """
        self._check_alive()
        entry = self._files.get(file_path)

        if entry is None or entry[0] != content_hash:
            self._file_misses += 1
            metrics.FILE_CACHE_MISS_TOTAL.inc()
            return None

        self._file_hits += 1
        metrics.FILE_CACHE_HIT_TOTAL.inc()
        logger.debug(f"File cache hit for {file_path} (hash: {content_hash[:8]}...)")
        return entry[1]

    def set_file(self, file_path: str, content_hash: str, parsed: ParsedFile):
        """Store a file's parse result under its content hash."""
        self._check_alive()
        self._files[file_path] = (content_hash, parsed)
        metrics.FILE_CACHE_ENTRIES.set(len(self._files))

    def invalidate_file(self, file_path: str) -> bool:
        """
        Drop one file's entry and forget its hash in the aggregate map.

        The aggregate snapshot itself is kept; it will fail validation on
        the next read because its hash map no longer matches.

        Returns:
            True if a file entry was removed
        """
        self._check_alive()
        removed = self._files.pop(file_path, None) is not None
        if self._aggregate is not None:
            self._aggregate.file_hashes.pop(file_path, None)
        metrics.FILE_CACHE_ENTRIES.set(len(self._files))
        logger.debug(f"Invalidated cache for {file_path} (had entry: {removed})")
        return removed

    # ------------------------------------------------------------------
    # Aggregate level
    # ------------------------------------------------------------------

    def is_aggregate_valid(self, file_hashes: Mapping[str, str]) -> bool:
        """True if the stored snapshot was computed from exactly ``file_hashes``."""
        self._check_alive()
        if self._aggregate is None:
            return False

        stored = self._aggregate.file_hashes
        if len(stored) != len(file_hashes):
            return False

        return all(stored.get(path) == digest for path, digest in file_hashes.items())

    def get_aggregate(self, file_hashes: Mapping[str, str]) -> Optional[ModelSnapshot]:
        """Return the cached snapshot if it matches ``file_hashes``."""
        if self.is_aggregate_valid(file_hashes):
            self._aggregate_hits += 1
            metrics.AGGREGATE_CACHE_HIT_TOTAL.inc()
            return self._aggregate.snapshot

        self._aggregate_misses += 1
        metrics.AGGREGATE_CACHE_MISS_TOTAL.inc()
        return None

    def set_aggregate(self, file_hashes: Mapping[str, str], snapshot: ModelSnapshot):
        """Replace the aggregate snapshot; the hash map is copied."""
        self._check_alive()
        self._aggregate = AggregateEntry(file_hashes=dict(file_hashes), snapshot=snapshot)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def invalidate(self) -> int:
        """
        Clear both cache levels.

        Returns:
            Number of file entries deleted
        """
        self._check_alive()
        deleted = len(self._files)
        self._files.clear()
        self._aggregate = None
        metrics.FILE_CACHE_ENTRIES.set(0)
        logger.info(f"Cleared model cache ({deleted} file entries)")
        return deleted

    def dispose(self):
        """Release all entries; any later use raises CacheError."""
        if self._disposed:
            return
        self._files.clear()
        self._aggregate = None
        self._disposed = True
        metrics.FILE_CACHE_ENTRIES.set(0)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary with cache statistics
        """
        file_requests = self._file_hits + self._file_misses
        file_hit_rate = (self._file_hits / file_requests * 100) if file_requests > 0 else 0

        return {
            "state": self.state.value,
            "file_entries": len(self._files),
            "file_hits": self._file_hits,
            "file_misses": self._file_misses,
            "file_hit_rate_percent": round(file_hit_rate, 2),
            "aggregate_present": self._aggregate is not None,
            "aggregate_files": len(self._aggregate.file_hashes) if self._aggregate else 0,
            "aggregate_created_at": self._aggregate.created_at if self._aggregate else None,
            "aggregate_hits": self._aggregate_hits,
            "aggregate_misses": self._aggregate_misses,
            "disposed": self._disposed,
        }

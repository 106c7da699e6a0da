"""
SQL Processor - builds the linked object model from a directory of SQL files.

Public surface:
- ``parse_all_sql_files(force_refresh=False)``
- ``invalidate_cache()``
- ``invalidate_cache_for_file(path)``

Every call hashes the current file set concurrently, then either returns
the cached snapshot (same ``{path: hash}`` map) or parses changed files
one by one in sorted path order, merges them (first definition of an id
wins), links and sorts.

Overlapping calls are single-flight: a non-forced call made while a
computation for the current cache generation is running awaits that
computation. Invalidation and forced refreshes start a new generation;
a computation from an older generation, or one overtaken by dispose(),
still answers its own callers from freshly parsed files but never reads or
stores cache entries.
"""

import asyncio
import hashlib
import logging
import os
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from ..config.settings import NavigatorSettings, load_settings
from ..ingestion.parse_cache import ModelCache, compute_file_hash
from ..ingestion.record_parsers import parse_sql_content
from ..linking.model_linker import ModelLinker
from ..models.records import ModelSnapshot, ParsedFile
from ..utils import metrics
from ..utils.exceptions import CacheError, IngestionError, ParsingError
from .alias_service import AliasService

logger = logging.getLogger(__name__)


def _read_bytes(file_path: str) -> bytes:
    with open(file_path, "rb") as f:
        return f.read()


def merge_parsed_files(parsed_files: List[ParsedFile]) -> ParsedFile:
    """
    Merge per-file results; the first record seen for an id wins.

    Args:
        parsed_files: Results in deterministic (sorted path) order

    Returns:
        A single ParsedFile with de-duplicated records
    """
    merged = ParsedFile()
    seen_classes, seen_properties, seen_objects, seen_links = set(), set(), set(), set()

    for parsed in parsed_files:
        for cls in parsed.classes:
            if cls.id not in seen_classes:
                seen_classes.add(cls.id)
                merged.classes.append(cls)
        for prop in parsed.properties:
            if prop.id not in seen_properties:
                seen_properties.add(prop.id)
                merged.properties.append(prop)
        for obj in parsed.objects:
            if obj.id not in seen_objects:
                seen_objects.add(obj.id)
                merged.objects.append(obj)
        for link in parsed.links:
            if link not in seen_links:
                seen_links.add(link)
                merged.links.append(link)

    return merged


class SqlProcessor:
    """
    Orchestrates hashing, per-file parsing, linking and caching.

    Features:
    - Two-level cache (per-file and aggregate) owned by this instance
    - Concurrent file hashing, sequential deterministic parsing
    - Alias changes invalidate the cache automatically
    - Single-flight recomputation
    """

    def __init__(
        self,
        root_dir: Optional[str] = None,
        settings_provider: Callable[[], NavigatorSettings] = load_settings,
        alias_service: Optional[AliasService] = None,
        linker: Optional[ModelLinker] = None,
        cache: Optional[ModelCache] = None,
        sql_glob: Optional[str] = None,
    ):
        """
        Initialize processor.

        Args:
            root_dir: Directory to scan (default: settings.workspace_root)
            settings_provider: Callable returning current settings
            alias_service: Alias overlay; a private empty one if omitted
            linker: ModelLinker; built from the alias service if omitted
            cache: ModelCache; a fresh one if omitted
            sql_glob: File pattern (default: settings.sql_glob)
        """
        settings = settings_provider()
        self.root_dir = os.path.abspath(root_dir or settings.workspace_root)
        self.sql_glob = sql_glob or settings.sql_glob
        self.alias_service = alias_service or AliasService()
        self.linker = linker or ModelLinker(
            alias_lookup=self.alias_service.get_alias,
            settings_provider=settings_provider,
        )
        self.cache = cache or ModelCache()

        self._generation = 0
        self._inflight: Optional[Tuple[int, asyncio.Future]] = None
        self._disposed = False
        self._unsubscribe_aliases = self.alias_service.on_aliases_changed(self.invalidate_cache)

        logger.info(f"[INIT] SQL processor for {self.root_dir} ({self.sql_glob})")

    def _check_alive(self):
        if self._disposed:
            raise CacheError("SqlProcessor used after dispose()")

    @property
    def generation(self) -> int:
        return self._generation

    def _is_current(self, generation: int) -> bool:
        """False once the cache was invalidated or disposed after ``generation`` started."""
        return not self._disposed and generation == self._generation

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def parse_all_sql_files(self, force_refresh: bool = False) -> ModelSnapshot:
        """
        Return the linked model for the current file set.

        Args:
            force_refresh: Ignore the aggregate cache and re-link

        Returns:
            ModelSnapshot with classes, properties and objects sorted by name
        """
        self._check_alive()

        if force_refresh:
            self._generation += 1
        else:
            inflight = self._inflight
            if inflight is not None and inflight[0] == self._generation and not inflight[1].done():
                logger.debug(f"Joining in-flight model computation (generation {inflight[0]})")
                return await asyncio.shield(inflight[1])

        generation = self._generation
        task = asyncio.ensure_future(self._compute(generation, force_refresh))
        self._inflight = (generation, task)

        def _clear(done: asyncio.Future):
            if self._inflight is not None and self._inflight[1] is done:
                self._inflight = None

        task.add_done_callback(_clear)
        return await asyncio.shield(task)

    def invalidate_cache(self):
        """Drop both cache levels (file set or alias changes)."""
        if self._disposed:
            return
        self._generation += 1
        self.cache.invalidate()

    def invalidate_cache_for_file(self, file_path: str):
        """Drop one file's cached parse result."""
        if self._disposed:
            return
        self._generation += 1
        self.cache.invalidate_file(os.path.abspath(file_path))

    def dispose(self):
        """Unsubscribe from alias changes and release the cache."""
        if self._disposed:
            return
        self._unsubscribe_aliases()
        self._generation += 1
        self.cache.dispose()
        self._disposed = True
        logger.info("[OK] SQL processor disposed")

    # ------------------------------------------------------------------
    # Discovery and hashing
    # ------------------------------------------------------------------

    def discover_files(self) -> List[str]:
        """Absolute paths of all matching files, sorted."""
        root = Path(self.root_dir)
        if not root.is_dir():
            logger.warning(f"Workspace root {self.root_dir} does not exist")
            return []
        return sorted(os.path.abspath(p) for p in root.glob(self.sql_glob) if p.is_file())

    async def _hash_file(self, file_path: str) -> Optional[str]:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, compute_file_hash, file_path)
        except OSError as e:
            metrics.FILES_FAILED_TOTAL.inc()
            logger.error(f"Error hashing file {file_path}: {e}")
            return None

    async def get_file_hashes(self) -> Dict[str, str]:
        """
        Hash every discovered file concurrently.

        Files that cannot be read are left out of the map.
        """
        loop = asyncio.get_running_loop()
        files = await loop.run_in_executor(None, self.discover_files)
        digests = await asyncio.gather(*(self._hash_file(path) for path in files))
        return {path: digest for path, digest in zip(files, digests) if digest is not None}

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    async def _load_file(self, file_path: str) -> Tuple[str, str]:
        """
        Read a file and hash exactly the bytes that will be parsed.

        Raises:
            IngestionError: File could not be read
            ParsingError: File is not valid UTF-8
        """
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, _read_bytes, file_path)
        except OSError as e:
            raise IngestionError(f"Cannot read {file_path}: {e}") from e

        try:
            content = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ParsingError(f"{file_path} is not valid UTF-8: {e}") from e

        return hashlib.sha256(data).hexdigest(), content

    async def _parse_changed_file(self, file_path: str, generation: int) -> Optional[ParsedFile]:
        try:
            content_hash, content = await self._load_file(file_path)
        except IngestionError as e:
            metrics.FILES_FAILED_TOTAL.inc()
            logger.error(f"Skipping {file_path}: {e}")
            return None

        parsed = parse_sql_content(content, file_path, content_hash)
        metrics.FILES_PARSED_TOTAL.inc()

        if self._is_current(generation):
            self.cache.set_file(file_path, content_hash, parsed)
        return parsed

    async def _compute(self, generation: int, force_refresh: bool) -> ModelSnapshot:
        start_time = time.time()
        file_hashes = await self.get_file_hashes()

        if not force_refresh and self._is_current(generation):
            cached = self.cache.get_aggregate(file_hashes)
            if cached is not None:
                logger.debug(f"Aggregate cache hit for {len(file_hashes)} files")
                return cached

        parsed_files: List[ParsedFile] = []
        reparsed = 0

        for file_path, content_hash in file_hashes.items():
            parsed = None
            if self._is_current(generation):
                parsed = self.cache.get_file(file_path, content_hash)
            if parsed is None:
                parsed = await self._parse_changed_file(file_path, generation)
                if parsed is None:
                    continue
                reparsed += 1
                # the file may have changed since it was hashed
                file_hashes[file_path] = parsed.content_hash
            parsed_files.append(parsed)

        merged = merge_parsed_files(parsed_files)
        snapshot = self.linker.build_model(
            merged.classes, merged.properties, merged.links, merged.objects
        )

        if self._is_current(generation):
            self.cache.set_aggregate(file_hashes, snapshot)
        else:
            logger.debug(
                f"Discarding result of generation {generation} (current: {self._generation})"
            )

        duration = time.time() - start_time
        metrics.MODEL_REBUILD_DURATION_SECONDS.observe(duration)
        logger.info(
            f"Built model from {len(parsed_files)} files ({reparsed} parsed) in {duration:.2f}s: "
            f"{len(snapshot.classes)} classes, {len(snapshot.properties)} properties, "
            f"{len(snapshot.objects)} objects"
        )
        return snapshot

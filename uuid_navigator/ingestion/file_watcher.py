"""
SQL Model Watcher - keeps the object model in sync with files on disk.

watchdog callbacks run on the observer thread; they are forwarded to the
event loop with ``asyncio.run_coroutine_threadsafe`` and batched by
BatchProcessor. Per batch:
- modified files are invalidated one by one
- any create, delete or move invalidates both cache levels
then the model is rebuilt and passed to ``on_model_updated``.
"""

import asyncio
import logging
import os
import signal
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..models.records import ModelSnapshot
from ..services.sql_processor import SqlProcessor
from ..utils.constants import DEFAULT_BATCH_SIZE_THRESHOLD, DEFAULT_DEBOUNCE_WINDOW
from .batch_processor import BatchProcessor, ChangeBatch

logger = logging.getLogger(__name__)

ModelListener = Callable[[ModelSnapshot], Union[None, Awaitable[None]]]


class SqlChangeHandler(FileSystemEventHandler):
    """Forwards ``.sql`` file events to a BatchProcessor on the event loop."""

    def __init__(self, batch_processor: BatchProcessor, loop: asyncio.AbstractEventLoop):
        self.batch_processor = batch_processor
        self.loop = loop

    @staticmethod
    def _is_sql(path: Union[str, bytes]) -> bool:
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        return path.lower().endswith(".sql")

    def on_created(self, event: FileSystemEvent):
        if not event.is_directory and self._is_sql(event.src_path):
            logger.info(f"[NEW FILE] Detected: {event.src_path}")
            self._queue(event.src_path, structural=True)

    def on_deleted(self, event: FileSystemEvent):
        if not event.is_directory and self._is_sql(event.src_path):
            logger.info(f"[DELETED] Detected: {event.src_path}")
            self._queue(event.src_path, structural=True)

    def on_moved(self, event: FileSystemEvent):
        if event.is_directory:
            return
        if self._is_sql(event.src_path) or self._is_sql(event.dest_path):
            logger.info(f"[MOVED] Detected: {event.src_path} -> {event.dest_path}")
            self._queue(event.dest_path, structural=True)

    def on_modified(self, event: FileSystemEvent):
        if not event.is_directory and self._is_sql(event.src_path):
            logger.debug(f"[MODIFIED] Detected: {event.src_path}")
            self._queue(event.src_path, structural=False)

    def _queue(self, file_path: Union[str, bytes], structural: bool):
        if self.loop.is_closed():
            return
        path = os.path.abspath(os.fsdecode(file_path))
        asyncio.run_coroutine_threadsafe(
            self.batch_processor.add_event(path, structural=structural), self.loop
        )


class SqlModelWatcher:
    """
    Watches a workspace and republishes the model when SQL files change.

    Features:
    - Debounced change batching
    - Per-file invalidation for edits, full invalidation for file set changes
    - Graceful shutdown
    """

    def __init__(
        self,
        processor: SqlProcessor,
        on_model_updated: Optional[ModelListener] = None,
        debounce_window: float = DEFAULT_DEBOUNCE_WINDOW,
        batch_size_threshold: int = DEFAULT_BATCH_SIZE_THRESHOLD,
    ):
        """
        Initialize watcher.

        Args:
            processor: SqlProcessor whose root directory is watched
            on_model_updated: Called with each rebuilt snapshot
            debounce_window: Quiet period in seconds before a rebuild
            batch_size_threshold: Max queued files before a rebuild
        """
        self.processor = processor
        self.on_model_updated = on_model_updated
        self.batch_processor = BatchProcessor(
            process_callback=self.process_batch,
            debounce_window=debounce_window,
            batch_size_threshold=batch_size_threshold,
        )

        self.observer: Optional[Observer] = None
        self.event_handler: Optional[SqlChangeHandler] = None
        self._shutdown_event: Optional[asyncio.Event] = None
        self.last_snapshot: Optional[ModelSnapshot] = None

        logger.info(f"[INIT] Watching: {processor.root_dir}")

    async def process_batch(self, batch: ChangeBatch):
        """Invalidate what the batch touched, rebuild, and publish."""
        if batch.structural:
            self.processor.invalidate_cache()
        else:
            for path in batch.paths:
                self.processor.invalidate_cache_for_file(path)

        snapshot = await self.processor.parse_all_sql_files()
        await self._publish(snapshot)

    async def _publish(self, snapshot: ModelSnapshot):
        self.last_snapshot = snapshot
        if self.on_model_updated is None:
            return
        try:
            result = self.on_model_updated(snapshot)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.error(f"Model listener failed: {e}", exc_info=True)

    async def start(self, initial_build: bool = True):
        """
        Start the observer.

        Args:
            initial_build: Build and publish the model before watching
        """
        loop = asyncio.get_running_loop()
        self._shutdown_event = asyncio.Event()

        if initial_build:
            await self._publish(await self.processor.parse_all_sql_files())

        self.event_handler = SqlChangeHandler(self.batch_processor, loop)
        self.observer = Observer()
        self.observer.schedule(self.event_handler, self.processor.root_dir, recursive=True)
        self.observer.start()
        logger.info(f"[OK] Watching for changes in: {self.processor.root_dir}")

    async def run_forever(self):
        """Start, then block until ``stop()`` or SIGINT/SIGTERM."""
        await self.start()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, lambda: asyncio.ensure_future(self.stop()))
            except NotImplementedError:
                pass  # Windows
        await self._shutdown_event.wait()

    async def stop(self):
        """Stop watching and flush pending changes."""
        if self._shutdown_event is not None and self._shutdown_event.is_set():
            return

        logger.info("[INFO] Stopping file watcher...")

        if self.observer:
            self.observer.stop()
            self.observer.join()
            self.observer = None

        await self.batch_processor.shutdown()

        for key, value in self.batch_processor.get_stats().items():
            logger.info(f"  {key}: {value}")

        logger.info("[OK] File watcher stopped")
        if self._shutdown_event is not None:
            self._shutdown_event.set()


if __name__ == "__main__":
    import json
    import sys

    from ..config.settings import get_settings
    from ..utils.logging_config import setup_logging

    settings = get_settings()
    setup_logging(settings.log_level)

    root = sys.argv[1] if len(sys.argv) > 1 else settings.workspace_root

    def _print_summary(snapshot: ModelSnapshot):
        print(
            json.dumps(
                {
                    "classes": len(snapshot.classes),
                    "properties": len(snapshot.properties),
                    "objects": len(snapshot.objects),
                }
            )
        )

    print("SQL Model Watcher")
    print("=" * 70)
    print(f"Workspace: {Path(root).absolute()}")
    print(f"Debounce:  {settings.debounce_window}s")
    print("=" * 70)

    watcher = SqlModelWatcher(
        SqlProcessor(root_dir=root),
        on_model_updated=_print_summary,
        debounce_window=settings.debounce_window,
        batch_size_threshold=settings.batch_size_threshold,
    )
    asyncio.run(watcher.run_forever())

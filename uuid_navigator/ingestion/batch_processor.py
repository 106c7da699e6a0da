"""
Change Batching - debounced queue of SQL file change events.

Editors often write a file several times in quick succession; rebuilding
the model for every write is wasted work. Events are collected until no
new event arrived for ``debounce_window`` seconds (or the queue reaches
``batch_size_threshold``) and then handed to the callback as one
ChangeBatch.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..utils import metrics
from ..utils.constants import DEFAULT_BATCH_SIZE_THRESHOLD, DEFAULT_DEBOUNCE_WINDOW

logger = logging.getLogger(__name__)


@dataclass
class ChangeBatch:
    """
    Files changed within one debounce window.

    ``structural`` is set when any event added, removed or moved a file,
    which changes the file set and needs a full cache invalidation.
    """

    paths: List[str] = field(default_factory=list)
    structural: bool = False

    def __len__(self) -> int:
        return len(self.paths)


class BatchProcessor:
    """
    Batches file change events with debounce and size thresholds.

    Features:
    - Event deduplication (unique file paths within window)
    - Debounce timer
    - Batch size threshold
    - Manual flush support
    """

    def __init__(
        self,
        process_callback: Callable[[ChangeBatch], Awaitable[None]],
        debounce_window: float = DEFAULT_DEBOUNCE_WINDOW,
        batch_size_threshold: int = DEFAULT_BATCH_SIZE_THRESHOLD,
    ):
        """
        Initialize BatchProcessor.

        Args:
            process_callback: Async function receiving each ChangeBatch
            debounce_window: Quiet period in seconds before flushing
            batch_size_threshold: Max queued files before auto-flush
        """
        self.process_callback = process_callback
        self.debounce_window = debounce_window
        self.batch_size_threshold = batch_size_threshold

        # Insertion-ordered pending paths
        self._pending: Dict[str, None] = {}
        self._structural = False

        self._debounce_task: Optional[asyncio.Task] = None
        self._last_event_time: float = 0

        # Statistics
        self._events_received = 0
        self._events_deduplicated = 0
        self._batches_processed = 0

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def add_event(self, file_path: str, structural: bool = False):
        """
        Queue a change event.

        Args:
            file_path: Absolute path of the changed file
            structural: True for create/delete/move events
        """
        self._events_received += 1
        self._last_event_time = time.monotonic()
        self._structural = self._structural or structural

        if file_path in self._pending:
            self._events_deduplicated += 1
            logger.debug(f"Deduplicated event for {file_path}")
        else:
            self._pending[file_path] = None
            logger.debug(f"Event added: {file_path} (queue size: {len(self._pending)})")

        if len(self._pending) >= self.batch_size_threshold:
            logger.info(
                f"Batch size threshold reached ({self.batch_size_threshold}). "
                "Triggering immediate flush."
            )
            await self.flush_now()
            return

        if self._debounce_task is None or self._debounce_task.done():
            self._debounce_task = asyncio.create_task(self._debounce_timer())

    async def _debounce_timer(self):
        """Flush once no event arrived for a full debounce window."""
        try:
            while self._pending:
                elapsed = time.monotonic() - self._last_event_time
                if elapsed < self.debounce_window:
                    await asyncio.sleep(self.debounce_window - elapsed)
                    continue

                logger.debug(
                    f"Debounce window ({self.debounce_window}s) expired. "
                    f"Flushing {len(self._pending)} files."
                )
                try:
                    await self.flush_now()
                except Exception as e:
                    logger.error(f"Error processing change batch: {e}", exc_info=True)
        except asyncio.CancelledError:
            pass

    async def flush_now(self):
        """Hand all pending events to the callback immediately."""
        if not self._pending:
            return

        batch = ChangeBatch(paths=list(self._pending), structural=self._structural)
        self._pending.clear()
        self._structural = False

        self._batches_processed += 1
        metrics.BATCH_SIZE_HISTOGRAM.observe(len(batch))
        logger.info(
            f"Flushing batch of {len(batch)} files"
            + (" (file set changed)" if batch.structural else "")
        )

        await self.process_callback(batch)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get batch processor statistics.

        Returns:
            Dictionary with statistics
        """
        return {
            "events_received": self._events_received,
            "events_deduplicated": self._events_deduplicated,
            "pending_files": len(self._pending),
            "batches_processed": self._batches_processed,
            "deduplication_rate_percent": (
                round(self._events_deduplicated / self._events_received * 100, 2)
                if self._events_received > 0
                else 0
            ),
            "debounce_window_seconds": self.debounce_window,
            "batch_size_threshold": self.batch_size_threshold,
        }

    async def shutdown(self):
        """Flush remaining events and stop the timer."""
        logger.info("Shutting down batch processor")

        if self._debounce_task and not self._debounce_task.done():
            self._debounce_task.cancel()
            try:
                await self._debounce_task
            except asyncio.CancelledError:
                pass
        self._debounce_task = None

        await self.flush_now()
        logger.info("Batch processor shutdown complete")

"""Unit tests for BatchProcessor."""

import asyncio
import unittest
from unittest.mock import AsyncMock

from uuid_navigator.ingestion.batch_processor import BatchProcessor, ChangeBatch
from uuid_navigator.utils.constants import DEFAULT_BATCH_SIZE_THRESHOLD, DEFAULT_DEBOUNCE_WINDOW


class TestBatchProcessor(unittest.IsolatedAsyncioTestCase):
    """Test BatchProcessor functionality."""

    async def asyncSetUp(self):
        self.mock_callback = AsyncMock()

        # short timings for faster tests
        self.processor = BatchProcessor(
            process_callback=self.mock_callback,
            debounce_window=0.1,
            batch_size_threshold=3,
        )

    async def asyncTearDown(self):
        await self.processor.shutdown()

    async def test_defaults_come_from_constants(self):
        processor = BatchProcessor(process_callback=self.mock_callback)

        self.assertEqual(processor.debounce_window, DEFAULT_DEBOUNCE_WINDOW)
        self.assertEqual(processor.batch_size_threshold, DEFAULT_BATCH_SIZE_THRESHOLD)

    async def test_add_event_accumulates(self):
        await self.processor.add_event("file1.sql")
        await self.processor.add_event("file2.sql")

        self.assertEqual(self.processor.pending_count, 2)
        self.mock_callback.assert_not_called()

    async def test_event_deduplication(self):
        await self.processor.add_event("file1.sql")
        await self.processor.add_event("file1.sql")
        await self.processor.add_event("file1.sql")

        stats = self.processor.get_stats()
        self.assertEqual(stats["pending_files"], 1)
        self.assertEqual(stats["events_received"], 3)
        self.assertEqual(stats["events_deduplicated"], 2)

    async def test_debounce_timer_flush(self):
        await self.processor.add_event("file1.sql")
        await self.processor.add_event("file2.sql")

        await asyncio.sleep(self.processor.debounce_window * 3)

        self.mock_callback.assert_called_once()
        batch = self.mock_callback.call_args[0][0]
        self.assertIsInstance(batch, ChangeBatch)
        self.assertEqual(batch.paths, ["file1.sql", "file2.sql"])
        self.assertFalse(batch.structural)
        self.assertEqual(self.processor.pending_count, 0)

    async def test_batch_size_threshold_flushes_immediately(self):
        await self.processor.add_event("file1.sql")
        await self.processor.add_event("file2.sql")
        await self.processor.add_event("file3.sql")

        self.mock_callback.assert_called_once()
        self.assertEqual(len(self.mock_callback.call_args[0][0]), 3)

    async def test_structural_flag_sticks_for_the_batch(self):
        await self.processor.add_event("file1.sql")
        await self.processor.add_event("file2.sql", structural=True)
        await self.processor.flush_now()

        batch = self.mock_callback.call_args[0][0]
        self.assertTrue(batch.structural)

        # reset for the next batch
        await self.processor.add_event("file3.sql")
        await self.processor.flush_now()
        self.assertFalse(self.mock_callback.call_args[0][0].structural)

    async def test_flush_with_nothing_pending(self):
        await self.processor.flush_now()
        self.mock_callback.assert_not_called()

    async def test_shutdown_flushes_pending(self):
        await self.processor.add_event("file1.sql")
        await self.processor.shutdown()

        self.mock_callback.assert_called_once()
        self.assertEqual(self.processor.get_stats()["batches_processed"], 1)

    async def test_callback_error_does_not_kill_timer(self):
        self.mock_callback.side_effect = [RuntimeError("boom"), None]

        await self.processor.add_event("file1.sql")
        await asyncio.sleep(self.processor.debounce_window * 3)
        await self.processor.add_event("file2.sql")
        await asyncio.sleep(self.processor.debounce_window * 3)

        self.assertEqual(self.mock_callback.call_count, 2)


if __name__ == "__main__":
    unittest.main()

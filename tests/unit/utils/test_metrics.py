"""Unit tests for the metrics registry."""

import unittest

from uuid_navigator.utils.metrics import MetricsRegistry


class TestMetricsRegistry(unittest.TestCase):
    def setUp(self):
        self.registry = MetricsRegistry()

    def test_counter_get_or_create(self):
        counter = self.registry.counter("hits_total", "Hits")
        counter.inc()
        counter.inc(2)

        self.assertIs(self.registry.counter("hits_total", "Hits"), counter)
        self.assertEqual(counter.get(), 3)

    def test_histogram_buckets(self):
        hist = self.registry.histogram("size", "Sizes", buckets=[1, 10])
        hist.observe(0.5)
        hist.observe(5)
        hist.observe(50)

        self.assertEqual(hist.bucket_counts, {1: 1, 10: 2})
        self.assertEqual(hist.get_summary()["count"], 3)

    def test_export_prometheus(self):
        self.registry.counter("hits_total", "Hits").inc()
        self.registry.gauge("entries", "Entries").set(4)
        self.registry.histogram("size", "Sizes", buckets=[1]).observe(2)

        text = self.registry.export_prometheus()

        self.assertIn("# TYPE hits_total counter", text)
        self.assertIn("hits_total 1.0", text)
        self.assertIn("entries 4", text)
        self.assertIn('size_bucket{le="1"} 0', text)
        self.assertIn('size_bucket{le="+Inf"} 1', text)

    def test_reset(self):
        self.registry.counter("hits_total", "Hits").inc()
        self.registry.gauge("entries", "Entries").set(4)
        self.registry.reset()

        summary = self.registry.get_summary()
        self.assertEqual(summary["counters"]["hits_total"], 0.0)
        self.assertEqual(summary["gauges"]["entries"], 0.0)


if __name__ == "__main__":
    unittest.main()

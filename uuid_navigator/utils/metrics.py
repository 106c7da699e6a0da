"""
Model Metrics - Prometheus-compatible counters for the parse and link pipeline.

Tracks how often the two cache levels hit, how many files are re-parsed,
how many rows are dropped by validation, and how long a full model
rebuild takes. Values can be exported in Prometheus text format or read
as a plain summary dictionary.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class CounterMetric:
    """Counter metric - monotonically increasing value."""

    name: str
    help: str
    value: float = 0.0

    def inc(self, amount: float = 1.0):
        """Increment counter by amount."""
        self.value += amount

    def get(self) -> float:
        return self.value

    def reset(self):
        self.value = 0.0


@dataclass
class GaugeMetric:
    """Gauge metric - value that can go up or down."""

    name: str
    help: str
    value: float = 0.0

    def set(self, value: float):
        self.value = value

    def get(self) -> float:
        return self.value


@dataclass
class HistogramMetric:
    """Histogram metric - distribution of observed values."""

    name: str
    help: str
    buckets: List[float] = field(
        default_factory=lambda: [0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0]
    )
    sum: float = 0.0
    count: int = 0
    bucket_counts: Dict[float, int] = field(default_factory=dict)

    def __post_init__(self):
        for bucket in self.buckets:
            self.bucket_counts[bucket] = 0

    def observe(self, value: float):
        """Observe a value."""
        self.sum += value
        self.count += 1
        for bucket in self.buckets:
            if value <= bucket:
                self.bucket_counts[bucket] += 1

    def get_summary(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "sum": self.sum,
            "avg": self.sum / self.count if self.count > 0 else 0.0,
        }

    def reset(self):
        self.sum = 0.0
        self.count = 0
        for bucket in self.buckets:
            self.bucket_counts[bucket] = 0


class MetricsRegistry:
    """
    Central registry for all metrics.

    Thread-safe: watchdog callbacks run on the observer thread while the
    model is rebuilt on the event loop.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, CounterMetric] = {}
        self._gauges: Dict[str, GaugeMetric] = {}
        self._histograms: Dict[str, HistogramMetric] = {}
        self._start_time = time.time()

    def counter(self, name: str, help: str) -> CounterMetric:
        """Get or create a counter metric."""
        with self._lock:
            if name not in self._counters:
                self._counters[name] = CounterMetric(name=name, help=help)
            return self._counters[name]

    def gauge(self, name: str, help: str) -> GaugeMetric:
        """Get or create a gauge metric."""
        with self._lock:
            if name not in self._gauges:
                self._gauges[name] = GaugeMetric(name=name, help=help)
            return self._gauges[name]

    def histogram(
        self, name: str, help: str, buckets: Optional[List[float]] = None
    ) -> HistogramMetric:
        """Get or create a histogram metric."""
        with self._lock:
            if name not in self._histograms:
                if buckets:
                    hist = HistogramMetric(name=name, help=help, buckets=buckets)
                else:
                    hist = HistogramMetric(name=name, help=help)
                self._histograms[name] = hist
            return self._histograms[name]

    def export_prometheus(self) -> str:
        """
        Export all metrics in Prometheus text format.

        Returns:
            String in Prometheus exposition format
        """
        lines = []

        with self._lock:
            for counter in self._counters.values():
                lines.append(f"# HELP {counter.name} {counter.help}")
                lines.append(f"# TYPE {counter.name} counter")
                lines.append(f"{counter.name} {counter.value}")

            for gauge in self._gauges.values():
                lines.append(f"# HELP {gauge.name} {gauge.help}")
                lines.append(f"# TYPE {gauge.name} gauge")
                lines.append(f"{gauge.name} {gauge.value}")

            for hist in self._histograms.values():
                lines.append(f"# HELP {hist.name} {hist.help}")
                lines.append(f"# TYPE {hist.name} histogram")
                for bucket, count in sorted(hist.bucket_counts.items()):
                    lines.append(f'{hist.name}_bucket{{le="{bucket}"}} {count}')
                lines.append(f'{hist.name}_bucket{{le="+Inf"}} {hist.count}')
                lines.append(f"{hist.name}_sum {hist.sum}")
                lines.append(f"{hist.name}_count {hist.count}")

        return "\n".join(lines) + "\n"

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of all metric values."""
        with self._lock:
            return {
                "timestamp": datetime.now().isoformat(),
                "uptime_seconds": time.time() - self._start_time,
                "counters": {k: c.value for k, c in self._counters.items()},
                "gauges": {k: g.value for k, g in self._gauges.items()},
                "histograms": {
                    k: h.get_summary() for k, h in self._histograms.items()
                },
            }

    def reset(self):
        """Reset all metrics to initial state."""
        with self._lock:
            for counter in self._counters.values():
                counter.reset()
            for gauge in self._gauges.values():
                gauge.set(0.0)
            for hist in self._histograms.values():
                hist.reset()


# Global registry instance
_global_registry = MetricsRegistry()


def get_registry() -> MetricsRegistry:
    """Get the global metrics registry."""
    return _global_registry


# File cache
FILE_CACHE_HIT_TOTAL = _global_registry.counter(
    "file_cache_hit_total", "Files served from the per-file parse cache"
)

FILE_CACHE_MISS_TOTAL = _global_registry.counter(
    "file_cache_miss_total", "Files that had to be re-parsed"
)

FILE_CACHE_ENTRIES = _global_registry.gauge(
    "file_cache_entries", "Current number of entries in the per-file cache"
)

# Aggregate cache
AGGREGATE_CACHE_HIT_TOTAL = _global_registry.counter(
    "aggregate_cache_hit_total", "Model requests served from the aggregate cache"
)

AGGREGATE_CACHE_MISS_TOTAL = _global_registry.counter(
    "aggregate_cache_miss_total", "Model requests that required a full re-link"
)

MODEL_REBUILD_DURATION_SECONDS = _global_registry.histogram(
    "model_rebuild_duration_seconds", "Time taken to parse, link and sort the model"
)

# Parsing
FILES_PARSED_TOTAL = _global_registry.counter(
    "files_parsed_total", "Total number of SQL files parsed"
)

FILES_FAILED_TOTAL = _global_registry.counter(
    "files_failed_total", "SQL files skipped because they could not be read"
)

RECORDS_DROPPED_TOTAL = _global_registry.counter(
    "records_dropped_total", "Rows dropped by record validation"
)

# Change batching
BATCH_SIZE_HISTOGRAM = _global_registry.histogram(
    "change_batch_size",
    "Distribution of file change batch sizes",
    buckets=[1, 5, 10, 25, 50, 100, 200, 500],
)

"""
Metrics and Telemetry for the engine.

Tracks tick latency and event counters for monitoring and debugging.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class LatencyStats:
    """Statistics for a latency metric."""
    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float('inf')
    max_ms: float = 0.0
    last_ms: float = 0.0

    p50_ms: float = 0.0
    p99_ms: float = 0.0

    @property
    def mean_ms(self) -> float:
        return self.total_ms / self.count if self.count > 0 else 0.0


class LatencyTracker:
    """
    Latency statistics for one operation.

    Percentiles are approximated over a sliding window of samples.
    """

    def __init__(self, window_size: int = 1000):
        self._samples: deque[float] = deque(maxlen=window_size)
        self._stats = LatencyStats()
        self._lock = threading.Lock()

    def record(self, latency_ms: float) -> None:
        with self._lock:
            self._samples.append(latency_ms)
            self._stats.count += 1
            self._stats.total_ms += latency_ms
            self._stats.last_ms = latency_ms
            self._stats.min_ms = min(self._stats.min_ms, latency_ms)
            self._stats.max_ms = max(self._stats.max_ms, latency_ms)

    def get_stats(self) -> LatencyStats:
        with self._lock:
            stats = LatencyStats(
                count=self._stats.count,
                total_ms=self._stats.total_ms,
                min_ms=self._stats.min_ms if self._stats.count > 0 else 0.0,
                max_ms=self._stats.max_ms,
                last_ms=self._stats.last_ms,
            )
            if self._samples:
                ordered = sorted(self._samples)
                n = len(ordered)
                stats.p50_ms = ordered[int(n * 0.5)]
                stats.p99_ms = ordered[min(int(n * 0.99), n - 1)]
            return stats


class Timer:
    """Context manager feeding a LatencyTracker."""

    def __init__(self, tracker: LatencyTracker):
        self._tracker = tracker
        self._start = 0.0

    def __enter__(self) -> 'Timer':
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        self._tracker.record((time.perf_counter() - self._start) * 1000)


class MetricsCollector:
    """
    Metrics collector for one engine instance.

    Usage:
        metrics = MetricsCollector()

        with metrics.time("tick"):
            recompute()

        metrics.increment("dropped_messages")
    """

    COUNTERS = (
        "trades",
        "book_updates",
        "dropped_messages",
        "invariant_clamps",
        "subscriber_errors",
        "regime_changes",
    )

    def __init__(self):
        self._latencies: Dict[str, LatencyTracker] = {"tick": LatencyTracker()}
        self._counters: Dict[str, int] = {name: 0 for name in self.COUNTERS}
        self._lock = threading.Lock()
        self._start_time = time.time()

    def time(self, operation: str) -> Timer:
        if operation not in self._latencies:
            self._latencies[operation] = LatencyTracker()
        return Timer(self._latencies[operation])

    def increment(self, counter: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[counter] = self._counters.get(counter, 0) + amount

    def get_counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def get_summary(self) -> Dict[str, Any]:
        """Plain-dict summary for logging or export."""
        with self._lock:
            counters = dict(self._counters)
        latencies = {}
        for name, tracker in self._latencies.items():
            stats = tracker.get_stats()
            latencies[name] = {
                "count": stats.count,
                "mean_ms": round(stats.mean_ms, 3),
                "p50_ms": round(stats.p50_ms, 3),
                "p99_ms": round(stats.p99_ms, 3),
                "max_ms": round(stats.max_ms, 3),
            }
        return {
            "uptime_seconds": round(time.time() - self._start_time, 1),
            "counters": counters,
            "latency": latencies,
        }

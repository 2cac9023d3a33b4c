# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Limiter metrics for the throttled pager.

This module provides:
1. WaitTimeWindow - Fixed-size ring buffer of admission wait times
2. LimiterCounters - Mutable counters owned by a TokenBucketLimiter
3. LimiterMetrics - Immutable snapshot handed to callers
4. PrometheusLimiterMetrics - Optional Prometheus-style metrics for observability

The counters are only mutated by the limiter that owns them. Callers never
see them directly: ``TokenBucketLimiter.get_metrics()`` returns a
LimiterMetrics copy.

Usage:
    counters = LimiterCounters()
    counters.record_queued()
    counters.record_grant(wait_ms=12.5)
    snapshot = counters.snapshot(in_flight=0)
    print(snapshot.average_wait_ms)
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

logger = logging.getLogger(__name__)

# Number of completed acquisitions averaged for the wait-time metric
DEFAULT_WAIT_WINDOW_SIZE = 100

# Type declarations for optional prometheus_client imports
if TYPE_CHECKING:
    from prometheus_client import (
        Counter as CounterType,
        Gauge as GaugeType,
        Histogram as HistogramType,
    )
else:
    CounterType = object
    GaugeType = object
    HistogramType = object

# Try to import prometheus_client for optional Prometheus metrics
try:
    from prometheus_client import (
        Counter as _Counter,
        Gauge as _Gauge,
        Histogram as _Histogram,
    )

    Counter: type[CounterType] | None = _Counter
    Gauge: type[GaugeType] | None = _Gauge
    Histogram: type[HistogramType] | None = _Histogram
    PROMETHEUS_AVAILABLE = True
except ImportError:
    Counter = None
    Gauge = None
    Histogram = None
    PROMETHEUS_AVAILABLE = False


class WaitTimeWindow:
    """
    Rolling window of the most recent admission wait times.

    Oldest samples are evicted first once the window is full. The reported
    average is the plain mean of the samples currently in the window.

    Example:
        >>> window = WaitTimeWindow(size=3)
        >>> for ms in (10.0, 20.0, 30.0, 40.0):
        ...     window.record(ms)
        >>> window.average()
        30.0
    """

    __slots__ = ("_samples",)

    def __init__(self, size: int = DEFAULT_WAIT_WINDOW_SIZE) -> None:
        if size < 1:
            raise ValueError("size must be at least 1")
        self._samples: deque[float] = deque(maxlen=size)

    @property
    def size(self) -> int:
        return self._samples.maxlen or 0

    def record(self, wait_ms: float) -> None:
        self._samples.append(max(0.0, float(wait_ms)))

    def average(self) -> float:
        """Mean of the window, or 0.0 when no samples have been recorded."""
        if not self._samples:
            return 0.0
        return sum(self._samples) / len(self._samples)

    def clear(self) -> None:
        self._samples.clear()

    def __len__(self) -> int:
        return len(self._samples)


@dataclass(frozen=True)
class LimiterMetrics:
    """
    Read-only snapshot of limiter counters.

    Attributes:
        requests_made: Admissions granted since creation or last reset
        requests_queued: Callers currently waiting for admission
        requests_failed: Failures reported through record_failure()
        average_wait_ms: Mean wait of the last 100 granted admissions
        in_flight: Concurrency slots currently held
    """

    requests_made: int = 0
    requests_queued: int = 0
    requests_failed: int = 0
    average_wait_ms: float = 0.0
    in_flight: int = 0

    def as_dict(self) -> dict[str, Any]:
        """Return metrics as a dictionary for JSON serialization."""
        return {
            "requests_made": self.requests_made,
            "requests_queued": self.requests_queued,
            "requests_failed": self.requests_failed,
            "average_wait_ms": self.average_wait_ms,
            "in_flight": self.in_flight,
        }


class LimiterCounters:
    """
    Mutable counters owned by a single limiter.

    Thread Safety:
        None of its own. The owning limiter updates these counters from
        inside its admission critical section or from the event loop thread;
        everything else reads them through snapshot().
    """

    __slots__ = ("requests_failed", "requests_made", "requests_queued", "wait_window")

    def __init__(self, window_size: int = DEFAULT_WAIT_WINDOW_SIZE) -> None:
        self.requests_made = 0
        self.requests_queued = 0
        self.requests_failed = 0
        self.wait_window = WaitTimeWindow(window_size)

    def record_queued(self) -> None:
        self.requests_queued += 1

    def record_dequeued(self) -> None:
        """Caller left the queue without a grant (cancelled or discarded)."""
        if self.requests_queued > 0:
            self.requests_queued -= 1

    def record_grant(self, wait_ms: float) -> None:
        self.record_dequeued()
        self.requests_made += 1
        self.wait_window.record(wait_ms)

    def record_failure(self) -> None:
        self.requests_failed += 1

    def snapshot(self, in_flight: int = 0) -> LimiterMetrics:
        return LimiterMetrics(
            requests_made=self.requests_made,
            requests_queued=self.requests_queued,
            requests_failed=self.requests_failed,
            average_wait_ms=self.wait_window.average(),
            in_flight=in_flight,
        )

    def reset(self) -> None:
        """Reset all counters and the wait window to zero."""
        self.requests_made = 0
        self.requests_queued = 0
        self.requests_failed = 0
        self.wait_window.clear()


class PrometheusLimiterMetrics:
    """
    Optional Prometheus-style metrics for limiter observability.

    Only instantiated if prometheus_client is available.

    Metrics:
        - throttled_pager_admissions_total: Counter of granted admissions
        - throttled_pager_failures_total: Counter of reported failures
        - throttled_pager_queue_depth: Gauge of callers waiting for admission
        - throttled_pager_in_flight: Gauge of held concurrency slots
        - throttled_pager_admission_wait_seconds: Histogram of admission waits

    Usage:
        >>> if PROMETHEUS_AVAILABLE:
        ...     prom_metrics = PrometheusLimiterMetrics()
        ...     limiter = TokenBucketLimiter(budget, prometheus=prom_metrics)
    """

    def __init__(
        self,
        registry: Any | None = None,
        namespace: str = "throttled_pager",
    ) -> None:
        """
        Initialize Prometheus limiter metrics.

        Args:
            registry: Optional CollectorRegistry. If None, uses the default registry.
            namespace: Metric name prefix.

        Raises:
            ImportError: If prometheus_client is not available.
        """
        if (
            not PROMETHEUS_AVAILABLE
            or Counter is None
            or Gauge is None
            or Histogram is None
        ):
            raise ImportError(
                "prometheus_client is not available. "
                "Install with: pip install throttled-pager[metrics]"
            )

        self.admissions = Counter(
            f"{namespace}_admissions_total",
            "Total admissions granted by the limiter",
            registry=registry,
        )
        self.failures = Counter(
            f"{namespace}_failures_total",
            "Total failed requests reported to the limiter",
            registry=registry,
        )
        self.queue_depth = Gauge(
            f"{namespace}_queue_depth",
            "Callers currently waiting for admission",
            registry=registry,
        )
        self.in_flight = Gauge(
            f"{namespace}_in_flight",
            "Concurrency slots currently held",
            registry=registry,
        )
        self.admission_wait_seconds = Histogram(
            f"{namespace}_admission_wait_seconds",
            "Time spent waiting for admission",
            buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30],
            registry=registry,
        )

        logger.info("Prometheus limiter metrics initialized")

    def observe_grant(self, wait_ms: float) -> None:
        self.admissions.inc()
        self.admission_wait_seconds.observe(wait_ms / 1000.0)

    def observe_failure(self) -> None:
        self.failures.inc()

    def set_queue_depth(self, depth: int) -> None:
        self.queue_depth.set(depth)

    def set_in_flight(self, count: int) -> None:
        self.in_flight.set(count)


# Module-level singleton for Prometheus metrics (optional)
_prometheus_limiter_metrics: PrometheusLimiterMetrics | None = None
_prometheus_lock = threading.Lock()


def get_prometheus_limiter_metrics() -> PrometheusLimiterMetrics | None:
    """
    Get or create the Prometheus limiter metrics singleton.

    Uses double-checked locking so concurrent first calls cannot register
    the same metric names twice with the default registry.

    Returns:
        PrometheusLimiterMetrics instance if prometheus_client is available,
        None otherwise.
    """
    global _prometheus_limiter_metrics

    if not PROMETHEUS_AVAILABLE:
        return None

    if _prometheus_limiter_metrics is None:
        with _prometheus_lock:
            if _prometheus_limiter_metrics is None:
                try:
                    _prometheus_limiter_metrics = PrometheusLimiterMetrics()
                except Exception as e:
                    logger.warning(
                        f"Failed to initialize Prometheus limiter metrics: {e}"
                    )
                    return None

    return _prometheus_limiter_metrics


def reset_prometheus_limiter_metrics() -> None:
    """Reset the Prometheus limiter metrics singleton (mainly for testing)."""
    global _prometheus_limiter_metrics
    _prometheus_limiter_metrics = None


__all__ = [
    "DEFAULT_WAIT_WINDOW_SIZE",
    "PROMETHEUS_AVAILABLE",
    "LimiterCounters",
    "LimiterMetrics",
    "PrometheusLimiterMetrics",
    "WaitTimeWindow",
    "get_prometheus_limiter_metrics",
    "reset_prometheus_limiter_metrics",
]

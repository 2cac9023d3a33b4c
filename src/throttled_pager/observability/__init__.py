# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Observability for the throttled pager.

Classes:
    LimiterCounters: Mutable counters owned by a limiter.
    LimiterMetrics: Immutable snapshot returned by get_metrics().
    WaitTimeWindow: 100-entry ring buffer of admission waits.
    PrometheusLimiterMetrics: Optional Prometheus export.

Functions:
    get_prometheus_limiter_metrics: Get or create the Prometheus metrics singleton.
    reset_prometheus_limiter_metrics: Reset the Prometheus metrics singleton.

Constants:
    PROMETHEUS_AVAILABLE: Whether prometheus_client is available.
"""

from .metrics import (
    DEFAULT_WAIT_WINDOW_SIZE,
    PROMETHEUS_AVAILABLE,
    LimiterCounters,
    LimiterMetrics,
    PrometheusLimiterMetrics,
    WaitTimeWindow,
    get_prometheus_limiter_metrics,
    reset_prometheus_limiter_metrics,
)

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

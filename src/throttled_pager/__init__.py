# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Throttled Pager - Rate-limited, cursor-paginated extraction for API clients.

This library drives paginated remote APIs to completion under a shared
request budget, streaming records to the caller as they arrive.

Key Features:
    - Token bucket limiter with minimum spacing and bounded concurrency
    - Strict FIFO admission across any number of concurrent streams
    - Cursor pagination driven to completion with progress reporting
    - Transient-failure retry with capped exponential backoff
    - Lazy, cancellable streams whose memory is bounded by one page
    - Optional Prometheus export of limiter metrics

Quick Start:
    >>> from throttled_pager import PaginationEngine, PageResult, RateBudget, TokenBucketLimiter
    >>>
    >>> async def fetch(cursor, page_size_hint):
    ...     body = await api.list(token=cursor, limit=page_size_hint)
    ...     return PageResult(body["values"], continuation=body.get("next"))
    >>>
    >>> limiter = TokenBucketLimiter(RateBudget(rate_per_second=2, min_interval_ms=200))
    >>> engine = PaginationEngine(limiter)
    >>> async with engine.stream(fetch) as stream:
    ...     async for record in stream:
    ...         handle(record)

Main Exports:
    - TokenBucketLimiter, RateBudget: Admission control
    - RetryPolicy: Failure classification and backoff
    - PaginationEngine, PageStream, StreamOptions: Paginated traversal
    - PageFetcher, PageResult, OffsetPageFetcher: Fetcher boundary
    - RecordClient, ClientConfig: HTTP adapter (lazily imported)

Version: 1.0.0
"""

__version__ = "1.0.0"

from typing import TYPE_CHECKING, Any

from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    FailureClass,
    FetchFailure,
    LimiterClearedError,
    NetworkError,
    PagerError,
    PaginationStalledError,
    RateLimitedError,
    TerminalFailure,
    TransientFailure,
)
from .limiter import Admission, TokenBucketLimiter
from .observability import LimiterMetrics, PrometheusLimiterMetrics
from .pagination import (
    OffsetPage,
    OffsetPageFetcher,
    PageStream,
    PaginationEngine,
    StreamOptions,
    StreamState,
)
from .protocols import PageFetcher
from .retry import RetryPolicy, classify_failure
from .types import DEFAULT_RATE_BUDGET, PageResult, ProgressEvent, RateBudget

# Lazy import for the HTTP adapter (pulls in httpx and pydantic)
if TYPE_CHECKING:
    from .client import ClientConfig, RecordClient

__all__ = [
    # Types
    "DEFAULT_RATE_BUDGET",
    "PageResult",
    "ProgressEvent",
    "RateBudget",
    # Exceptions
    "AuthenticationError",
    "ConfigurationError",
    "FailureClass",
    "FetchFailure",
    "LimiterClearedError",
    "NetworkError",
    "PagerError",
    "PaginationStalledError",
    "RateLimitedError",
    "TerminalFailure",
    "TransientFailure",
    # Limiter
    "Admission",
    "LimiterMetrics",
    "PrometheusLimiterMetrics",
    "TokenBucketLimiter",
    # Retry
    "RetryPolicy",
    "classify_failure",
    # Fetcher boundary
    "PageFetcher",
    # Pagination
    "OffsetPage",
    "OffsetPageFetcher",
    "PageStream",
    "PaginationEngine",
    "StreamOptions",
    "StreamState",
    # Client (lazy loaded)
    "ClientConfig",
    "RecordClient",
]


def __getattr__(name: str) -> Any:
    """Lazy import for the HTTP adapter."""
    if name in ("ClientConfig", "RecordClient"):
        from . import client

        return getattr(client, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

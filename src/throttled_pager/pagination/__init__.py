# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Paginated traversal under a shared rate limiter.

- PaginationEngine: Drives a PageFetcher to completion as a lazy stream
- PageStream: The cancellable async iterator returned by stream()
- StreamState: Per-stream counters and timestamps
- OffsetPageFetcher: Adapts offset/total APIs to the cursor protocol
"""

from .engine import (
    DEFAULT_PAGE_SIZE,
    PaginationEngine,
    ProgressCallback,
    StreamOptions,
    estimate_total,
)
from .offset import (
    MAX_OFFSET_PAGE_SIZE,
    OffsetFetchFunction,
    OffsetPage,
    OffsetPageFetcher,
    total_pages,
)
from .state import StreamState
from .stream import PageStream

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "MAX_OFFSET_PAGE_SIZE",
    "OffsetFetchFunction",
    "OffsetPage",
    "OffsetPageFetcher",
    "PageStream",
    "PaginationEngine",
    "ProgressCallback",
    "StreamOptions",
    "StreamState",
    "estimate_total",
    "total_pages",
]

# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Per-stream traversal state.

This module provides the StreamState dataclass that tracks one paginated
traversal through its lifecycle. Every call to ``PaginationEngine.stream()``
gets a fresh StreamState; the engine itself keeps nothing between calls.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from ..types.page import Cursor


@dataclass
class StreamState:
    """
    State of a single paginated traversal.

    Attributes:
        page_size: Page size hint passed to the fetcher
        started_at: Monotonic timestamp when the stream was created

    Runtime tracking attributes:
        pages_fetched: Pages successfully fetched so far
        items_emitted: Items handed to the consumer so far
        cursor: Continuation returned by the latest page
        last_item_at: Monotonic timestamp of the latest emitted item
        finished: True once the last page has been fully emitted
        error: The failure that aborted the stream, if any
    """

    page_size: int
    started_at: float = field(default_factory=time.monotonic)

    pages_fetched: int = field(default=0, repr=False)
    items_emitted: int = field(default=0, repr=False)
    cursor: Cursor | None = field(default=None, repr=False)
    last_item_at: float | None = field(default=None, repr=False)
    finished: bool = field(default=False, repr=False)
    error: BaseException | None = field(default=None, repr=False)

    def record_page(self, continuation: Cursor | None) -> None:
        self.pages_fetched += 1
        self.cursor = continuation

    def record_item(self) -> None:
        self.items_emitted += 1
        self.last_item_at = time.monotonic()

    @property
    def duration_seconds(self) -> float:
        """Seconds since the stream was created."""
        return time.monotonic() - self.started_at


__all__ = ["StreamState"]

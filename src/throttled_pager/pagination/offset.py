# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Adapter from offset/total pagination to the cursor protocol."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from ..exceptions import ConfigurationError
from ..types.page import Cursor, PageResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Largest page most offset-style APIs will serve in one call
MAX_OFFSET_PAGE_SIZE = 100


@dataclass(frozen=True)
class OffsetPage(Generic[T]):
    """
    One page from an offset/total style API.

    Attributes:
        items: Items in server order
        total: Server-reported total item count
        start_at: Offset of the first item in this page
    """

    items: Sequence[T] = field(default_factory=tuple)
    total: int = 0
    start_at: int = 0


OffsetFetchFunction = Callable[[int, int], Awaitable[OffsetPage[Any]]]


class OffsetPageFetcher(Generic[T]):
    """
    PageFetcher over an ``(start_at, max_results)`` API.

    The cursor handed to the engine is the offset of the next page. There
    are more pages while the next offset is below the server total and the
    latest page was non-empty, so a server that under-reports items cannot
    cause an endless loop.

    Usage:
        async def fetch_offset(start_at: int, max_results: int) -> OffsetPage:
            body = await api.list(start=start_at, limit=max_results)
            return OffsetPage(body["values"], total=body["total"], start_at=start_at)

        records = await engine.collect(OffsetPageFetcher(fetch_offset))
    """

    def __init__(
        self, fetch_offset: OffsetFetchFunction, page_size: int = MAX_OFFSET_PAGE_SIZE
    ) -> None:
        if page_size < 1:
            raise ConfigurationError("page_size must be >= 1")
        self._fetch_offset = fetch_offset
        self._page_size = min(page_size, MAX_OFFSET_PAGE_SIZE)

    @property
    def page_size(self) -> int:
        return self._page_size

    async def fetch(self, cursor: Cursor | None, page_size_hint: int) -> PageResult[T]:
        start_at = 0 if cursor is None else int(cursor)  # type: ignore[call-overload]
        max_results = self._page_size
        if page_size_hint > 0:
            max_results = min(max_results, page_size_hint)

        page = await self._fetch_offset(start_at, max_results)
        next_start = start_at + len(page.items)
        has_more = next_start < page.total and len(page.items) > 0

        logger.debug(
            f"Offset page at {start_at}: {len(page.items)} of {page.total} items"
        )
        return PageResult(
            items=page.items,
            continuation=next_start if has_more else None,
            is_last=not has_more,
            total=page.total,
        )


def total_pages(total: int, page_size: int) -> int:
    """Number of pages needed for ``total`` items at ``page_size`` per page."""
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    return -(-max(0, total) // page_size)


__all__ = [
    "MAX_OFFSET_PAGE_SIZE",
    "OffsetFetchFunction",
    "OffsetPage",
    "OffsetPageFetcher",
    "total_pages",
]

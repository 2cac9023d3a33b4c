# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Pagination engine.

This module provides the PaginationEngine class that turns a page fetcher
into a lazy, ordered stream of items. Each page fetch goes through the
shared TokenBucketLimiter and the RetryPolicy; the engine itself holds no
per-stream state, so one engine may drive any number of concurrent streams.

Traversal of one stream:
1. Fetch the page at the current cursor (None for the first page) under a
   limiter admission, retrying transient failures. Every retry attempt takes
   its own admission.
2. Emit the page's items one by one in server order, reporting a progress
   event for each.
3. Stop after a page that is marked last or has no continuation; otherwise
   continue from the page's continuation.
4. Report one final progress event with ``percentage == 100``.

A failing page delivers none of its items: the page is only emitted once its
fetch has fully succeeded.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from ..exceptions import (
    ConfigurationError,
    LimiterClearedError,
    PaginationStalledError,
    TerminalFailure,
)
from ..limiter.token_bucket import TokenBucketLimiter
from ..protocols.fetcher import FetcherLike, FetchFunction, resolve_fetch
from ..retry import RetryPolicy
from ..types.page import Cursor, PageResult, ProgressEvent, percentage_of
from .state import StreamState
from .stream import PageStream

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 100

ProgressCallback = Callable[[ProgressEvent], None]


@dataclass(frozen=True)
class StreamOptions:
    """
    Per-stream options.

    Attributes:
        on_progress: Called synchronously with every ProgressEvent. Exceptions
            it raises are logged and ignored.
        page_size: Page size hint for this stream, overriding the engine
            default
    """

    on_progress: ProgressCallback | None = None
    page_size: int | None = None

    def __post_init__(self) -> None:
        if self.page_size is not None and self.page_size < 1:
            raise ConfigurationError("page_size must be >= 1")


def estimate_total(
    page: PageResult[Any], emitted_before: int, page_size: int
) -> tuple[int, bool]:
    """
    Estimate the stream total after seeing a page.

    Args:
        page: The page just fetched
        emitted_before: Items emitted before this page
        page_size: Page size hint in use for the stream

    Returns:
        ``(total, estimated)``. Exact once the last page is seen. Before
        that, a server-reported total wins; otherwise a full page adds one
        more page's worth as an optimistic guess.
    """
    delivered = emitted_before + len(page.items)
    if not page.has_more:
        return delivered, False
    if page.total is not None:
        return max(page.total, delivered), True
    if len(page.items) >= page_size:
        return delivered + page_size, True
    return delivered, True


class PaginationEngine:
    """
    Drives paginated fetches under a shared limiter and retry policy.

    Usage:
        limiter = TokenBucketLimiter(RateBudget(rate_per_second=2))
        engine = PaginationEngine(limiter)

        async with engine.stream(fetcher) as stream:
            async for record in stream:
                handle(record)

        records = await engine.collect(fetcher)

    Attributes:
        limiter: The shared TokenBucketLimiter
        retry_policy: Retry policy for page fetches
        page_size: Default page size hint
    """

    def __init__(
        self,
        limiter: TokenBucketLimiter,
        retry_policy: RetryPolicy | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        """
        Initialize the engine.

        Args:
            limiter: Limiter every page fetch is admitted through
            retry_policy: Retry policy; derived from the limiter's budget
                when omitted
            page_size: Default page size hint for streams

        Raises:
            ConfigurationError: If page_size is not positive
        """
        if page_size < 1:
            raise ConfigurationError("page_size must be >= 1")
        self._limiter = limiter
        self._retry_policy = retry_policy or RetryPolicy.from_budget(limiter.budget)
        self._page_size = page_size

    @property
    def limiter(self) -> TokenBucketLimiter:
        return self._limiter

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    @property
    def page_size(self) -> int:
        return self._page_size

    def stream(
        self, fetcher: FetcherLike, options: StreamOptions | None = None
    ) -> PageStream[Any]:
        """
        Create a lazy stream over every item the fetcher yields.

        No request is made until the first item is requested.

        Args:
            fetcher: A PageFetcher or an async ``(cursor, page_size_hint)``
                callable
            options: Per-stream options

        Returns:
            A PageStream. Iterate it, or use it as an async context manager
            to guarantee cleanup on early exit.
        """
        options = options or StreamOptions()
        fetch = resolve_fetch(fetcher)
        state = StreamState(page_size=options.page_size or self._page_size)
        return PageStream(self._traverse(fetch, state, options.on_progress), state)

    async def collect(
        self, fetcher: FetcherLike, options: StreamOptions | None = None
    ) -> list[Any]:
        """
        Drain a stream into a list.

        Raises:
            Exception: The failure that aborted the traversal; items emitted
                before it are discarded
        """
        async with self.stream(fetcher, options) as stream:
            return [item async for item in stream]

    async def fetch_page(
        self, fetch: FetchFunction, cursor: Cursor | None, page_size: int
    ) -> PageResult[Any]:
        """
        Fetch one page under limiter admission and the retry policy.

        Args:
            fetch: Async ``(cursor, page_size_hint)`` callable
            cursor: Cursor of the page to fetch
            page_size: Page size hint

        Returns:
            The fetched PageResult

        Raises:
            Exception: The terminal failure, or the last transient one once
                retries are exhausted
        """

        async def attempt() -> PageResult[Any]:
            async with self._limiter.admit():
                return await fetch(cursor, page_size)

        page = await self._retry_policy.call(attempt, on_failure=self._on_attempt_failed)
        if not isinstance(page, PageResult):
            raise TerminalFailure(
                f"Fetcher returned {type(page).__name__}, expected PageResult"
            )
        return page

    def _on_attempt_failed(self, error: BaseException) -> None:
        # Callers discarded by clear() never sent a request
        if isinstance(error, LimiterClearedError):
            return
        self._limiter.record_failure()

    async def _traverse(
        self,
        fetch: FetchFunction,
        state: StreamState,
        on_progress: ProgressCallback | None,
    ) -> AsyncGenerator[Any, None]:
        cursor: Cursor | None = None
        total = 0
        page_number = 0

        while True:
            page = await self.fetch_page(fetch, cursor, state.page_size)
            page_number += 1
            emitted_before = state.items_emitted
            total, estimated = estimate_total(page, emitted_before, state.page_size)
            state.record_page(page.continuation)

            logger.debug(
                f"Fetched page {page_number} with {len(page.items)} items "
                f"(total {'~' if estimated else ''}{total})"
            )

            for item in page.items:
                state.record_item()
                self._report(
                    on_progress,
                    ProgressEvent(
                        current=state.items_emitted,
                        total=total,
                        percentage=percentage_of(state.items_emitted, total),
                        page=page_number,
                        estimated=estimated,
                    ),
                )
                yield item

            if not page.has_more:
                break
            if not page.items and page.continuation == cursor:
                raise PaginationStalledError(
                    f"Empty page {page_number} returned the same cursor {cursor!r}"
                )
            cursor = page.continuation

        state.finished = True
        self._report(
            on_progress,
            ProgressEvent(
                current=state.items_emitted,
                total=state.items_emitted,
                percentage=100,
                page=page_number,
                final=True,
            ),
        )
        logger.debug(
            f"Stream finished: {state.items_emitted} items in "
            f"{state.pages_fetched} pages ({state.duration_seconds:.2f}s)"
        )

    @staticmethod
    def _report(callback: ProgressCallback | None, event: ProgressEvent) -> None:
        if callback is None:
            return
        try:
            callback(event)
        except Exception as e:
            logger.warning(f"Progress callback raised {type(e).__name__}: {e}")


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "PaginationEngine",
    "ProgressCallback",
    "StreamOptions",
    "estimate_total",
]

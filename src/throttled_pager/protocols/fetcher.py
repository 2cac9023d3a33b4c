# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Protocol for page fetchers."""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, Union, runtime_checkable

from ..types.page import Cursor, PageResult


@runtime_checkable
class PageFetcher(Protocol):
    """
    Protocol for a single page fetch.

    The pagination engine never builds network calls itself. Implementations
    own the request encoding, response decoding, and any network timeout.
    They report failures as FetchFailure subclasses so the retry policy can
    tell transient from terminal without inspecting status codes.
    """

    async def fetch(
        self, cursor: Cursor | None, page_size_hint: int
    ) -> PageResult[Any]:
        """
        Fetch one page.

        Args:
            cursor: Continuation from the previous page, None for the first
            page_size_hint: Preferred number of items per page

        Returns:
            PageResult with the items and continuation state
        """
        ...


FetchFunction = Callable[[Union[Cursor, None], int], Awaitable[PageResult[Any]]]
"""Plain async callable accepted wherever a PageFetcher is."""

FetcherLike = Union[PageFetcher, FetchFunction]


def resolve_fetch(fetcher: FetcherLike) -> FetchFunction:
    """Return the bound fetch coroutine function for a fetcher or callable."""
    if isinstance(fetcher, PageFetcher):
        return fetcher.fetch
    if callable(fetcher):
        return fetcher
    raise TypeError(
        f"Expected a PageFetcher or async callable, got {type(fetcher).__name__}"
    )


__all__ = ["FetchFunction", "FetcherLike", "PageFetcher", "resolve_fetch"]

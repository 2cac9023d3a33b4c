# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Async iterator returned by ``PaginationEngine.stream()``.

PageStream wraps the engine's traversal generator and:
1. Exposes the per-stream StreamState
2. Records the failure that aborted a traversal
3. Supports ``aclose()`` and ``async with`` for early exit

The stream is pull-based. Nothing is fetched until the consumer asks for the
next item, and once the consumer stops asking no further network call is
made. Closing the stream closes the inner generator so its suspended frame
is finalised immediately instead of at garbage collection.

Note:
    For early break from iteration, use a context manager pattern:
        async with engine.stream(fetcher) as stream:
            async for record in stream:
                if should_stop:
                    break  # __aexit__ calls aclose()
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from types import TracebackType
from typing import Generic, TypeVar

from typing_extensions import Self

from .state import StreamState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PageStream(AsyncIterator[T], Generic[T]):
    """
    Lazy, cancellable sequence of items from a paginated source.

    Usage:
        stream = engine.stream(fetcher)
        async for record in stream:
            handle(record)
        print(stream.state.items_emitted)
    """

    __slots__ = (
        "__weakref__",
        "_closed",
        "_inner",
        "_state",
    )

    def __init__(self, inner: AsyncGenerator[T, None], state: StreamState) -> None:
        """
        Initialize the stream wrapper.

        Args:
            inner: The engine's traversal generator
            state: The traversal state updated by that generator
        """
        self._inner = inner
        self._state = state
        self._closed = False

    async def __anext__(self) -> T:
        """
        Get the next item.

        Raises:
            StopAsyncIteration: When the last page has been fully emitted
            Exception: The failure that aborted the traversal, unwrapped
        """
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._inner.__anext__()
        except StopAsyncIteration:
            self._closed = True
            raise
        except Exception as e:
            self._state.error = e
            self._closed = True
            logger.debug(
                f"Stream aborted after {self._state.items_emitted} items "
                f"({self._state.pages_fetched} pages): {type(e).__name__}: {e}"
            )
            raise

    async def aclose(self) -> None:
        """
        Stop the traversal.

        Idempotent. A request already in flight is not interrupted by the
        engine; the stream simply never resumes to use its result.
        """
        if self._closed:
            await self._inner.aclose()
            return
        self._closed = True
        logger.debug(
            f"Stream closed by consumer after {self._state.items_emitted} items"
        )
        await self._inner.aclose()

    def __aiter__(self) -> PageStream[T]:
        """Return self as the async iterator."""
        return self

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    @property
    def state(self) -> StreamState:
        """
        Access the traversal state.

        Useful for reporting and testing.
        """
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed


__all__ = ["PageStream"]

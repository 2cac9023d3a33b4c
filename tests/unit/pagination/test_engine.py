"""
Unit tests for PaginationEngine.

Tests cover:
- Traversal across pages in order
- Progress events (per item, final, estimates)
- Stop conditions and stalled cursors
- Retry behavior through the limiter
- Abandoned and closed streams
- collect()
- estimate_total()
"""

from __future__ import annotations

import asyncio
import math
from typing import Any
from unittest.mock import Mock

import pytest

from throttled_pager.exceptions import (
    ConfigurationError,
    LimiterClearedError,
    NetworkError,
    PaginationStalledError,
    TerminalFailure,
    TransientFailure,
)
from throttled_pager.limiter.token_bucket import TokenBucketLimiter
from throttled_pager.pagination.engine import (
    PaginationEngine,
    StreamOptions,
    estimate_total,
)
from throttled_pager.retry import RetryPolicy
from throttled_pager.types.budget import RateBudget
from throttled_pager.types.page import PageResult, ProgressEvent


class ScriptedFetcher:
    """PageFetcher returning a scripted sequence of pages or errors."""

    def __init__(self, responses: list[Any]) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[Any, int]] = []

    async def fetch(self, cursor: Any, page_size_hint: int) -> PageResult[Any]:
        self.calls.append((cursor, page_size_hint))
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


def make_pages(item_count: int, page_size: int) -> list[PageResult[int]]:
    """Split range(item_count) into token-linked pages."""
    items = list(range(item_count))
    chunks = [items[i : i + page_size] for i in range(0, item_count, page_size)] or [[]]
    pages = []
    for index, chunk in enumerate(chunks):
        last = index == len(chunks) - 1
        pages.append(
            PageResult(
                items=chunk,
                continuation=None if last else f"t{index + 1}",
                is_last=last,
            )
        )
    return pages


@pytest.fixture
def limiter() -> TokenBucketLimiter:
    return TokenBucketLimiter(
        RateBudget(rate_per_second=math.inf, max_concurrent=2, min_interval_ms=0)
    )


@pytest.fixture
def engine(limiter: TokenBucketLimiter) -> PaginationEngine:
    return PaginationEngine(limiter, RetryPolicy(retry_attempts=3, base_delay_ms=1))


class TestEngineInit:
    """Tests for PaginationEngine construction."""

    def test_retry_policy_defaults_to_budget(self) -> None:
        limiter = TokenBucketLimiter(
            RateBudget(retry_attempts=5, retry_base_delay_ms=10)
        )
        engine = PaginationEngine(limiter)

        assert engine.retry_policy == RetryPolicy(retry_attempts=5, base_delay_ms=10)
        assert engine.page_size == 100
        assert engine.limiter is limiter

    def test_invalid_page_size(self, limiter: TokenBucketLimiter) -> None:
        with pytest.raises(ConfigurationError):
            PaginationEngine(limiter, page_size=0)

    def test_invalid_stream_page_size(self) -> None:
        with pytest.raises(ConfigurationError):
            StreamOptions(page_size=0)


class TestTraversal:
    """Tests for page-by-page traversal."""

    @pytest.mark.asyncio
    async def test_items_across_pages_in_order(self, engine: PaginationEngine) -> None:
        """Verify N items across P pages come out once each, in order."""
        fetcher = ScriptedFetcher(make_pages(23, 5))

        items = [item async for item in engine.stream(fetcher)]

        assert items == list(range(23))
        assert len(fetcher.calls) == 5

    @pytest.mark.asyncio
    async def test_cursor_passed_to_next_fetch(self, engine: PaginationEngine) -> None:
        fetcher = ScriptedFetcher(make_pages(6, 2))

        await engine.collect(fetcher)

        assert [cursor for cursor, _ in fetcher.calls] == [None, "t1", "t2"]

    @pytest.mark.asyncio
    async def test_page_size_hint(self, engine: PaginationEngine) -> None:
        fetcher = ScriptedFetcher(make_pages(1, 1))

        await engine.collect(fetcher, StreamOptions(page_size=25))

        assert fetcher.calls == [(None, 25)]

    @pytest.mark.asyncio
    async def test_plain_async_callable_accepted(self, engine: PaginationEngine) -> None:
        pages = make_pages(4, 2)

        async def fetch(cursor: Any, page_size_hint: int) -> PageResult[int]:
            return pages.pop(0)

        assert await engine.collect(fetch) == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_stops_on_missing_continuation(self, engine: PaginationEngine) -> None:
        fetcher = ScriptedFetcher([PageResult(items=[1, 2]), PageResult(items=[3])])

        assert await engine.collect(fetcher) == [1, 2]
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_is_last_wins_over_continuation(self, engine: PaginationEngine) -> None:
        fetcher = ScriptedFetcher(
            [PageResult(items=[1], continuation="more", is_last=True)]
        )

        assert await engine.collect(fetcher) == [1]
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_empty_first_page(self, engine: PaginationEngine) -> None:
        fetcher = ScriptedFetcher([PageResult(items=[], is_last=True)])

        assert await engine.collect(fetcher) == []

    @pytest.mark.asyncio
    async def test_empty_intermediate_page_advances(
        self, engine: PaginationEngine
    ) -> None:
        fetcher = ScriptedFetcher(
            [
                PageResult(items=[1], continuation="a"),
                PageResult(items=[], continuation="b"),
                PageResult(items=[2], is_last=True),
            ]
        )

        assert await engine.collect(fetcher) == [1, 2]

    @pytest.mark.asyncio
    async def test_stalled_cursor_raises(self, engine: PaginationEngine) -> None:
        fetcher = ScriptedFetcher(
            [
                PageResult(items=[1], continuation="a"),
                PageResult(items=[], continuation="a"),
            ]
        )

        with pytest.raises(PaginationStalledError):
            await engine.collect(fetcher)

    @pytest.mark.asyncio
    async def test_non_page_result_is_terminal(self, engine: PaginationEngine) -> None:
        fetcher = ScriptedFetcher([{"issues": []}])

        with pytest.raises(TerminalFailure, match="expected PageResult"):
            await engine.collect(fetcher)

    @pytest.mark.asyncio
    async def test_each_stream_is_independent(self, engine: PaginationEngine) -> None:
        first = engine.stream(ScriptedFetcher(make_pages(3, 2)))
        second = engine.stream(ScriptedFetcher(make_pages(5, 2)))

        assert [i async for i in first] == [0, 1, 2]
        assert [i async for i in second] == [0, 1, 2, 3, 4]
        assert first.state.items_emitted == 3
        assert second.state.items_emitted == 5

    @pytest.mark.asyncio
    async def test_each_fetch_takes_an_admission(
        self, engine: PaginationEngine, limiter: TokenBucketLimiter
    ) -> None:
        await engine.collect(ScriptedFetcher(make_pages(10, 3)))

        assert limiter.get_metrics().requests_made == 4
        assert limiter.in_flight == 0


class TestProgress:
    """Tests for progress reporting."""

    @pytest.mark.asyncio
    async def test_two_two_one_pages_with_total(self, engine: PaginationEngine) -> None:
        """Verify events for pages of 2, 2 and 1 items with a server total."""
        fetcher = ScriptedFetcher(
            [
                PageResult(items=["a", "b"], continuation="t1", total=5),
                PageResult(items=["c", "d"], continuation="t2", total=5),
                PageResult(items=["e"], is_last=True, total=5),
            ]
        )
        events: list[ProgressEvent] = []

        items = await engine.collect(fetcher, StreamOptions(on_progress=events.append))

        assert items == ["a", "b", "c", "d", "e"]
        assert [e.current for e in events] == [1, 2, 3, 4, 5, 5]
        assert [e.percentage for e in events] == [20, 40, 60, 80, 100, 100]
        assert [e.page for e in events] == [1, 1, 2, 2, 3, 3]
        assert all(e.total == 5 for e in events)
        assert [e.final for e in events] == [False] * 5 + [True]

    @pytest.mark.asyncio
    async def test_final_event_exact(self, engine: PaginationEngine) -> None:
        events: list[ProgressEvent] = []

        await engine.collect(
            ScriptedFetcher(make_pages(7, 3)),
            StreamOptions(on_progress=events.append),
        )

        final = events[-1]
        assert final.final is True
        assert final.current == final.total == 7
        assert final.percentage == 100
        assert final.estimated is False

    @pytest.mark.asyncio
    async def test_percentage_never_exceeds_100(self, engine: PaginationEngine) -> None:
        events: list[ProgressEvent] = []

        await engine.collect(
            ScriptedFetcher(make_pages(250, 100)),
            StreamOptions(on_progress=events.append, page_size=100),
        )

        assert all(0 <= e.percentage <= 100 for e in events)
        assert [e.current for e in events[:-1]] == list(range(1, 251))

    @pytest.mark.asyncio
    async def test_full_page_estimate_adds_one_page(
        self, engine: PaginationEngine
    ) -> None:
        events: list[ProgressEvent] = []

        await engine.collect(
            ScriptedFetcher(make_pages(4, 2)),
            StreamOptions(on_progress=events.append, page_size=2),
        )

        # Page 1 full and not last: estimate 2 + 2
        assert events[0].total == 4
        assert events[0].estimated is True
        # Last page: exact
        assert events[2].total == 4
        assert events[2].estimated is False

    @pytest.mark.asyncio
    async def test_empty_stream_emits_final_event(
        self, engine: PaginationEngine
    ) -> None:
        events: list[ProgressEvent] = []

        await engine.collect(
            ScriptedFetcher([PageResult(is_last=True)]),
            StreamOptions(on_progress=events.append),
        )

        assert len(events) == 1
        assert events[0].final is True
        assert events[0].current == events[0].total == 0
        assert events[0].percentage == 100

    @pytest.mark.asyncio
    async def test_callback_errors_are_ignored(self, engine: PaginationEngine) -> None:
        callback = Mock(side_effect=RuntimeError("broken reporter"))

        items = await engine.collect(
            ScriptedFetcher(make_pages(3, 2)), StreamOptions(on_progress=callback)
        )

        assert items == [0, 1, 2]
        assert callback.call_count == 4


class TestFailures:
    """Tests for failure handling during traversal."""

    @pytest.mark.asyncio
    async def test_transient_failure_retried(
        self, engine: PaginationEngine, limiter: TokenBucketLimiter
    ) -> None:
        pages = make_pages(4, 2)
        fetcher = ScriptedFetcher(
            [pages[0], NetworkError("reset"), TransientFailure("503"), pages[1]]
        )

        assert await engine.collect(fetcher) == [0, 1, 2, 3]
        # Each attempt took its own admission
        assert len(fetcher.calls) == 4
        assert fetcher.calls[1][0] == fetcher.calls[2][0] == fetcher.calls[3][0] == "t1"
        metrics = limiter.get_metrics()
        assert metrics.requests_made == 4
        assert metrics.requests_failed == 2

    @pytest.mark.asyncio
    async def test_transient_exhaustion(
        self, limiter: TokenBucketLimiter
    ) -> None:
        """Verify k transient failures allowed means k + 1 fetch invocations."""
        engine = PaginationEngine(limiter, RetryPolicy(retry_attempts=2, base_delay_ms=1))
        errors = [TransientFailure(f"503 #{i}", status_code=503) for i in range(3)]
        fetcher = ScriptedFetcher(errors)

        with pytest.raises(TransientFailure) as exc_info:
            await engine.collect(fetcher)

        assert len(fetcher.calls) == 3
        assert exc_info.value is errors[-1]
        assert limiter.get_metrics().requests_failed == 3

    @pytest.mark.asyncio
    async def test_terminal_failure_single_invocation(
        self, engine: PaginationEngine, limiter: TokenBucketLimiter
    ) -> None:
        error = TerminalFailure("not found", status_code=404)
        fetcher = ScriptedFetcher([error])

        with pytest.raises(TerminalFailure) as exc_info:
            await engine.collect(fetcher)

        assert len(fetcher.calls) == 1
        assert exc_info.value is error
        assert limiter.get_metrics().requests_failed == 1

    @pytest.mark.asyncio
    async def test_cleared_callers_not_counted_as_failures(self) -> None:
        """Verify clear() leaves requests_failed at zero for discarded streams."""
        limiter = TokenBucketLimiter(
            RateBudget(rate_per_second=1, max_concurrent=3, min_interval_ms=0)
        )
        engine = PaginationEngine(limiter, RetryPolicy(retry_attempts=3, base_delay_ms=1))
        await limiter.acquire()
        fetchers = [ScriptedFetcher(make_pages(2, 2)) for _ in range(3)]
        tasks = [asyncio.create_task(engine.collect(f)) for f in fetchers]
        await asyncio.sleep(0.05)

        limiter.clear()
        results = await asyncio.wait_for(
            asyncio.gather(*tasks, return_exceptions=True), timeout=0.5
        )

        assert all(isinstance(r, LimiterClearedError) for r in results)
        assert all(f.calls == [] for f in fetchers)
        metrics = limiter.get_metrics()
        assert metrics.requests_failed == 0
        assert metrics.requests_made == 0
        assert metrics.requests_queued == 0

    @pytest.mark.asyncio
    async def test_failed_page_items_never_delivered(
        self, engine: PaginationEngine
    ) -> None:
        """Verify items before a failure arrive and none after it."""
        pages = make_pages(6, 2)
        fetcher = ScriptedFetcher([pages[0], TerminalFailure("bad request")])
        received: list[int] = []

        stream = engine.stream(fetcher)
        with pytest.raises(TerminalFailure):
            async for item in stream:
                received.append(item)

        assert received == [0, 1]
        assert stream.state.error is not None
        assert stream.state.finished is False

    @pytest.mark.asyncio
    async def test_stream_ends_after_failure(self, engine: PaginationEngine) -> None:
        stream = engine.stream(ScriptedFetcher([TerminalFailure("x")]))

        with pytest.raises(TerminalFailure):
            await stream.__anext__()
        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()


class TestAbandonedStream:
    """Tests for early exit from a stream."""

    @pytest.mark.asyncio
    async def test_no_fetch_before_first_item(self, engine: PaginationEngine) -> None:
        fetcher = ScriptedFetcher(make_pages(4, 2))

        engine.stream(fetcher)

        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_break_after_first_item_makes_one_fetch(
        self, engine: PaginationEngine
    ) -> None:
        fetcher = ScriptedFetcher(make_pages(10, 2))

        async with engine.stream(fetcher) as stream:
            async for _ in stream:
                break

        assert len(fetcher.calls) == 1
        assert stream.closed is True
        assert stream.state.items_emitted == 1

    @pytest.mark.asyncio
    async def test_aclose_stops_further_fetches(self, engine: PaginationEngine) -> None:
        fetcher = ScriptedFetcher(make_pages(10, 2))
        stream = engine.stream(fetcher)

        assert await stream.__anext__() == 0
        assert await stream.__anext__() == 1
        await stream.aclose()

        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_aclose_is_idempotent(self, engine: PaginationEngine) -> None:
        stream = engine.stream(ScriptedFetcher(make_pages(4, 2)))
        await stream.__anext__()

        await stream.aclose()
        await stream.aclose()

        assert stream.closed is True

    @pytest.mark.asyncio
    async def test_aclose_before_start(self, engine: PaginationEngine) -> None:
        fetcher = ScriptedFetcher(make_pages(4, 2))
        stream = engine.stream(fetcher)

        await stream.aclose()

        assert [i async for i in stream] == []
        assert fetcher.calls == []


class TestStreamState:
    """Tests for StreamState tracking."""

    @pytest.mark.asyncio
    async def test_state_after_full_traversal(self, engine: PaginationEngine) -> None:
        stream = engine.stream(ScriptedFetcher(make_pages(5, 2)))

        async for _ in stream:
            pass

        state = stream.state
        assert state.pages_fetched == 3
        assert state.items_emitted == 5
        assert state.cursor is None
        assert state.finished is True
        assert state.error is None
        assert state.last_item_at is not None
        assert state.last_item_at >= state.started_at
        assert state.duration_seconds >= 0


class TestEstimateTotal:
    """Tests for estimate_total()."""

    def test_last_page_is_exact(self) -> None:
        page = PageResult(items=[1, 2], is_last=True, total=50)
        assert estimate_total(page, 10, 2) == (12, False)

    def test_server_total_hint(self) -> None:
        page = PageResult(items=[1, 2], continuation="t", total=50)
        assert estimate_total(page, 10, 2) == (50, True)

    def test_server_total_never_below_delivered(self) -> None:
        page = PageResult(items=[1, 2], continuation="t", total=5)
        assert estimate_total(page, 10, 2) == (12, True)

    def test_full_page_adds_page_size(self) -> None:
        page = PageResult(items=list(range(100)), continuation="t")
        assert estimate_total(page, 100, 100) == (300, True)

    def test_short_page_without_hint(self) -> None:
        page = PageResult(items=[1, 2, 3], continuation="t")
        assert estimate_total(page, 100, 100) == (103, True)

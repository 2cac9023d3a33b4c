# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Token bucket limiter with minimum spacing and bounded concurrency.

This module provides the TokenBucketLimiter class that owns the shared
request budget of one process-wide or per-client limiter. Callers wait for
admission; the limiter decides when each one may go.

Admission runs three gates, in order, for the caller at the head of the
queue:
1. Token gate: tokens refill lazily from elapsed monotonic time at
   ``rate_per_second`` up to the burst capacity. The caller sleeps for the
   shortfall (never less than MIN_TOKEN_WAIT_SECONDS) until one token exists.
2. Interval gate: at least ``min_interval_ms`` must separate this grant from
   the previous granted acquisition.
3. Consume: one token is taken and the grant instant recorded.

Key Design Decisions:
- One FIFO asyncio.Lock wraps the slot wait and all three gates, so admission
  is granted strictly in request order and refill + consume are a single
  critical section. No background refill task is needed.
- Concurrency is a separate asyncio.Semaphore of ``max_concurrent`` slots.
  ``acquire()`` returns its slot as soon as the grant is made; ``admit()``
  holds it until the caller's request finishes.
- ``clear()`` bumps a generation counter and wakes every sleeping waiter.
  Callers queued under an older generation raise LimiterClearedError instead
  of consuming tokens from the fresh bucket. A caller blocked on a slot held
  by an in-flight admit() block raises once that slot is released.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from ..exceptions import LimiterClearedError
from ..observability.metrics import (
    LimiterCounters,
    LimiterMetrics,
    PrometheusLimiterMetrics,
)
from ..types.budget import DEFAULT_RATE_BUDGET, RateBudget

logger = logging.getLogger(__name__)

# Floor for token-wait sleeps so a tiny shortfall cannot spin the loop
MIN_TOKEN_WAIT_SECONDS = 0.01


@dataclass(frozen=True)
class Admission:
    """
    A granted slot.

    Attributes:
        sequence: 1-based grant number within the current limiter generation
        waited_ms: Time between entering the queue and the grant
        granted_at: ``time.monotonic()`` value at the grant
    """

    sequence: int
    waited_ms: float
    granted_at: float


class TokenBucketLimiter:
    """
    Shared request budget: sustained rate, burst, spacing, and concurrency.

    One instance may guard any number of concurrent paginated streams and
    single-record calls; the gates apply globally across all of them.

    Usage:
        limiter = TokenBucketLimiter(RateBudget(rate_per_second=2, min_interval_ms=200))

        # Pacing only
        await limiter.acquire()

        # Pacing plus an in-flight slot held for the request duration
        async with limiter.admit():
            response = await http.get(url)

    Attributes:
        budget: The immutable RateBudget this limiter enforces
    """

    def __init__(
        self,
        budget: RateBudget = DEFAULT_RATE_BUDGET,
        *,
        prometheus: PrometheusLimiterMetrics | None = None,
    ) -> None:
        """
        Initialize the limiter with a full bucket.

        Args:
            budget: Rate budget to enforce
            prometheus: Optional Prometheus metrics to mirror counters into
        """
        self._budget = budget
        self._rate = float(budget.rate_per_second)
        self._burst = budget.effective_burst
        self._unthrottled = budget.is_unthrottled
        self._min_interval = budget.min_interval_ms / 1000.0

        # Token state - mutated only while holding _gate
        self._tokens = math.inf if self._unthrottled else self._burst
        self._last_refill = time.monotonic()
        self._last_request: float | None = None

        self._gate = asyncio.Lock()
        self._cleared = asyncio.Event()
        self._slots = asyncio.Semaphore(budget.max_concurrent)
        self._in_flight = 0
        self._generation = 0
        self._sequence = 0

        self._counters = LimiterCounters()
        self._prometheus = prometheus

        logger.debug(
            f"Initialized TokenBucketLimiter: rate={budget.rate_per_second}/s, "
            f"burst={self._burst}, max_concurrent={budget.max_concurrent}, "
            f"min_interval={budget.min_interval_ms}ms"
        )

    @property
    def budget(self) -> RateBudget:
        return self._budget

    @property
    def queue_size(self) -> int:
        """Number of callers currently waiting for admission."""
        return self._counters.requests_queued

    @property
    def in_flight(self) -> int:
        """Number of concurrency slots held through admit()."""
        return self._in_flight

    async def acquire(self) -> Admission:
        """
        Wait until a request may be made.

        Blocks the calling task until the token, interval, and concurrency
        gates all pass. The concurrency slot is returned immediately after
        the grant; use admit() to hold it for the duration of a request.

        Returns:
            The Admission describing the grant

        Raises:
            LimiterClearedError: If clear() discarded this caller while queued
        """
        admission = await self._grant()
        self._slots.release()
        return admission

    @asynccontextmanager
    async def admit(self) -> AsyncIterator[Admission]:
        """
        Acquire admission and hold a concurrency slot until the block exits.

        Yields:
            The Admission describing the grant

        Raises:
            LimiterClearedError: If clear() discarded this caller while queued
        """
        admission = await self._grant()
        self._in_flight += 1
        self._publish_in_flight()
        try:
            yield admission
        finally:
            self._in_flight -= 1
            self._slots.release()
            self._publish_in_flight()

    def record_failure(self) -> None:
        """
        Count a failed request.

        Token accounting is untouched: a failed request still consumed
        network capacity and its token.
        """
        self._counters.record_failure()
        if self._prometheus is not None:
            self._prometheus.observe_failure()

    def get_metrics(self) -> LimiterMetrics:
        """Return an immutable snapshot of the limiter counters."""
        return self._counters.snapshot(in_flight=self._in_flight)

    def reset_metrics(self) -> None:
        """Zero the counters without touching tokens or queued callers."""
        queued = self._counters.requests_queued
        self._counters.reset()
        # Callers still waiting are real; keep them counted
        self._counters.requests_queued = queued

    def is_limiting(self) -> bool:
        """Whether a caller arriving now would have to wait."""
        if self._counters.requests_queued > 0:
            return True
        if self._unthrottled:
            return False
        elapsed = max(0.0, time.monotonic() - self._last_refill)
        return min(self._burst, self._tokens + elapsed * self._rate) < 1.0

    def clear(self) -> None:
        """
        Discard queued work and restart from a full bucket.

        Every caller still waiting for admission raises LimiterClearedError.
        Slots held by in-flight admit() blocks stay held until those blocks
        exit. Counters and the wait window are reset to zero.
        """
        self._generation += 1
        self._sequence = 0
        self._tokens = math.inf if self._unthrottled else self._burst
        self._last_refill = time.monotonic()
        self._last_request = None
        self._counters.reset()
        self._publish_queue_depth()
        # Wake sleepers now; later callers wait on a fresh event
        self._cleared.set()
        self._cleared = asyncio.Event()
        logger.debug(f"Limiter cleared (generation {self._generation})")

    async def _grant(self) -> Admission:
        """Queue for admission and return holding one concurrency slot."""
        generation = self._generation
        entered_at = time.monotonic()
        self._counters.record_queued()
        self._publish_queue_depth()
        granted = False

        try:
            async with self._gate:
                self._check_generation(generation)
                await self._slots.acquire()
                try:
                    self._check_generation(generation)
                    await self._wait_for_token(generation)
                    await self._enforce_min_interval(generation)

                    granted_at = time.monotonic()
                    if not self._unthrottled:
                        self._tokens -= 1.0
                    self._last_request = granted_at
                    self._sequence += 1
                    sequence = self._sequence
                except BaseException:
                    self._slots.release()
                    raise
                granted = True
        finally:
            if not granted and generation == self._generation:
                self._counters.record_dequeued()
                self._publish_queue_depth()

        waited_ms = (granted_at - entered_at) * 1000.0
        self._counters.record_grant(waited_ms)
        if self._prometheus is not None:
            self._prometheus.observe_grant(waited_ms)
        self._publish_queue_depth()

        logger.debug(f"Admission {sequence} granted after {waited_ms:.1f}ms")
        return Admission(sequence=sequence, waited_ms=waited_ms, granted_at=granted_at)

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(self._burst, self._tokens + elapsed * self._rate)
        self._last_refill = now

    async def _wait_for_token(self, generation: int) -> None:
        if self._unthrottled:
            return
        while True:
            self._refill()
            if self._tokens >= 1.0:
                return
            shortfall = 1.0 - self._tokens
            delay = max(MIN_TOKEN_WAIT_SECONDS, shortfall / self._rate)
            await self._sleep(delay, generation)

    async def _enforce_min_interval(self, generation: int) -> None:
        if self._min_interval <= 0 or self._last_request is None:
            return
        # Loop: the event loop may wake a timer marginally early
        while True:
            remaining = self._last_request + self._min_interval - time.monotonic()
            if remaining <= 0:
                return
            await self._sleep(remaining, generation)

    async def _sleep(self, seconds: float, generation: int) -> None:
        """Sleep, returning early with LimiterClearedError if clear() is called."""
        cleared = self._cleared
        try:
            await asyncio.wait_for(cleared.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        self._check_generation(generation)

    def _check_generation(self, generation: int) -> None:
        if generation != self._generation:
            raise LimiterClearedError("Limiter was cleared while waiting for admission")

    def _publish_queue_depth(self) -> None:
        if self._prometheus is not None:
            self._prometheus.set_queue_depth(self._counters.requests_queued)

    def _publish_in_flight(self) -> None:
        if self._prometheus is not None:
            self._prometheus.set_in_flight(self._in_flight)


__all__ = ["MIN_TOKEN_WAIT_SECONDS", "Admission", "TokenBucketLimiter"]

# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Retry policy with exponential backoff.

This module classifies failures as retryable or terminal and runs an async
operation under an attempt budget. Classification is decided by the
FailureClass each FetchFailure carries; builtin timeout and connection errors
count as "no response received" and are transient. Anything else is
terminal and propagates unmodified on its first occurrence.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from .exceptions import ConfigurationError, FailureClass
from .types.budget import RateBudget

logger = logging.getLogger(__name__)

T = TypeVar("T")

BACKOFF_FACTOR = 2
MAX_DELAY_MULTIPLIER = 4


def classify_failure(error: BaseException) -> FailureClass:
    """
    Decide the FailureClass of an exception.

    Args:
        error: The exception raised by a fetch attempt

    Returns:
        The class carried by the error if it has one, TRANSIENT for builtin
        timeout/connection errors, TERMINAL otherwise
    """
    failure_class = getattr(error, "failure_class", None)
    if isinstance(failure_class, FailureClass):
        return failure_class
    if isinstance(error, (TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return FailureClass.TRANSIENT
    return FailureClass.TERMINAL


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attempt budget and backoff schedule for fetch operations.

    Attributes:
        retry_attempts: Retries allowed after the first failed attempt
        base_delay_ms: Delay before the first retry

    Example:
        >>> policy = RetryPolicy(retry_attempts=3, base_delay_ms=1000)
        >>> [policy.next_delay(n) for n in (1, 2, 3, 4)]
        [1000, 2000, 4000, 4000]
    """

    retry_attempts: int = 3
    base_delay_ms: int = 1000

    def __post_init__(self) -> None:
        if self.retry_attempts < 0:
            raise ConfigurationError("retry_attempts must be >= 0")
        if self.base_delay_ms < 0:
            raise ConfigurationError("base_delay_ms must be >= 0")

    @classmethod
    def from_budget(cls, budget: RateBudget) -> "RetryPolicy":
        return cls(
            retry_attempts=budget.retry_attempts,
            base_delay_ms=budget.retry_base_delay_ms,
        )

    @property
    def max_delay_ms(self) -> int:
        return self.base_delay_ms * MAX_DELAY_MULTIPLIER

    def is_retryable(self, error: BaseException) -> bool:
        return classify_failure(error) is FailureClass.TRANSIENT

    def should_retry(self, error: BaseException, attempts_so_far: int) -> bool:
        """
        Decide whether another attempt should be made.

        Args:
            error: The failure from the latest attempt
            attempts_so_far: Failed attempts observed so far, including this one

        Returns:
            True if the failure is transient and the budget allows a retry
        """
        return self.is_retryable(error) and attempts_so_far <= self.retry_attempts

    def next_delay(self, attempt_number: int) -> int:
        """
        Backoff before the given retry, in milliseconds.

        Args:
            attempt_number: 1-based retry number

        Returns:
            ``base * 2 ** (n - 1)`` capped at four times the base delay
        """
        exponent = max(0, attempt_number - 1)
        delay = self.base_delay_ms * (BACKOFF_FACTOR**exponent)
        return int(min(delay, self.max_delay_ms))

    async def call(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        on_failure: Callable[[BaseException], None] | None = None,
    ) -> T:
        """
        Run an operation under this policy.

        Args:
            operation: Zero-argument async callable performing one attempt
            on_failure: Called with every failed attempt's exception

        Returns:
            The result of the first successful attempt

        Raises:
            Exception: The first terminal failure, or the last transient
                failure once the attempt budget is spent. Never wrapped.
        """
        attempts = 0
        while True:
            try:
                return await operation()
            except asyncio.CancelledError:
                raise  # Always re-raise for graceful shutdown
            except Exception as e:
                attempts += 1
                if on_failure is not None:
                    on_failure(e)

                if not self.is_retryable(e):
                    logger.debug(
                        f"Non-retryable failure on attempt {attempts}: "
                        f"{type(e).__name__}: {e}"
                    )
                    raise

                if not self.should_retry(e, attempts):
                    logger.warning(
                        f"Retry budget ({self.retry_attempts}) exhausted: "
                        f"{type(e).__name__}: {e}"
                    )
                    raise

                delay_ms = self._delay_for(e, attempts)
                logger.warning(
                    f"Attempt {attempts} failed with {type(e).__name__}: {e}. "
                    f"Retrying in {delay_ms}ms"
                )
                if delay_ms > 0:
                    await asyncio.sleep(delay_ms / 1000.0)

    def _delay_for(self, error: BaseException, attempt_number: int) -> int:
        delay = self.next_delay(attempt_number)
        # Honour a server-suggested wait, still within the backoff cap
        retry_after = getattr(error, "retry_after", None)
        if isinstance(retry_after, (int, float)) and retry_after > 0:
            delay = min(max(delay, int(retry_after * 1000)), self.max_delay_ms)
        return delay


__all__ = ["RetryPolicy", "classify_failure"]

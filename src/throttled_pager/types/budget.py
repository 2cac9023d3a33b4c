# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Rate budget configuration.

This module defines the immutable RateBudget consumed by the token bucket
limiter and the retry policy. A budget is validated once, at construction,
and never changes afterwards.
"""

import math
from dataclasses import dataclass

from ..exceptions import ConfigurationError


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class RateBudget:
    """
    Shared request budget for one limiter.

    Attributes:
        rate_per_second: Sustained request rate. ``math.inf`` disables token
            accounting while still enforcing interval and concurrency.
        burst_capacity: Maximum tokens the bucket holds. ``None`` means the
            same value as rate_per_second, but at least one token.
        max_concurrent: Maximum admissions in flight at the same time.
        min_interval_ms: Minimum spacing between consecutive grants.
        retry_attempts: Retries after the first failed attempt (0 = none).
        retry_base_delay_ms: First backoff delay; doubles per retry, capped
            at four times this value.

    Raises:
        ConfigurationError: If any field is out of range.
    """

    rate_per_second: float = 2.0
    burst_capacity: float | None = None
    max_concurrent: int = 2
    min_interval_ms: int = 200
    retry_attempts: int = 3
    retry_base_delay_ms: int = 1000

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        rate = self.rate_per_second
        if not _is_number(rate) or math.isnan(rate) or rate <= 0:
            raise ConfigurationError(
                f"rate_per_second must be a positive number, got {rate!r}"
            )
        burst = self.burst_capacity
        if burst is not None:
            if not _is_number(burst) or math.isnan(burst):
                raise ConfigurationError(
                    f"burst_capacity must be a number, got {burst!r}"
                )
            if burst < rate or burst < 1:
                raise ConfigurationError(
                    f"burst_capacity ({burst}) must be >= rate_per_second ({rate}) and >= 1"
                )
        if not _is_int(self.max_concurrent) or self.max_concurrent < 1:
            raise ConfigurationError("max_concurrent must be an integer >= 1")
        if not _is_int(self.min_interval_ms) or self.min_interval_ms < 0:
            raise ConfigurationError("min_interval_ms must be an integer >= 0")
        if not _is_int(self.retry_attempts) or self.retry_attempts < 0:
            raise ConfigurationError("retry_attempts must be an integer >= 0")
        if not _is_int(self.retry_base_delay_ms) or self.retry_base_delay_ms < 0:
            raise ConfigurationError("retry_base_delay_ms must be an integer >= 0")

    @property
    def effective_burst(self) -> float:
        """Burst capacity with the ``None`` default resolved, never below one token."""
        if self.burst_capacity is None:
            return max(1.0, float(self.rate_per_second))
        return float(self.burst_capacity)

    @property
    def is_unthrottled(self) -> bool:
        return math.isinf(self.rate_per_second)


DEFAULT_RATE_BUDGET = RateBudget()


__all__ = ["DEFAULT_RATE_BUDGET", "RateBudget"]

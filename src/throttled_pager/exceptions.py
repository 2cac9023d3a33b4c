# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Exception classes for the throttled pager library.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from PagerError, making it easy to catch every
pager-related exception with a single except clause.

Fetch failures carry a FailureClass decided once, at the boundary where a
network result is interpreted. The retry policy only ever looks at that
class, never at status codes or exception names.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class FailureClass(Enum):
    """Closed classification of a failure for retry decisions.

    - TRANSIENT: no response received, 5xx, or an explicit rate-limit/overload
      signal. Retried with backoff until the attempt budget runs out.
    - TERMINAL: client-side errors (bad request, unauthorized, forbidden,
      not found) and application-level validation failures. Never retried.
    - CONFIG: invalid configuration detected before any network activity.
    """

    TRANSIENT = "transient"
    TERMINAL = "terminal"
    CONFIG = "config"


_STATUS_MESSAGES: dict[int, str] = {
    400: "Bad Request: The request was invalid. Please check your query.",
    401: "Unauthorized: Invalid credentials. Please check your email and API token.",
    403: "Forbidden: You do not have permission to access this resource.",
    404: "Not Found: The requested resource was not found.",
    429: "Too Many Requests: Rate limit exceeded. Please try again later.",
    500: "Internal Server Error: The server encountered an error.",
    502: "Bad Gateway: The server is temporarily unavailable.",
    503: "Service Unavailable: The service is temporarily unavailable.",
    504: "Gateway Timeout: Request to the server timed out.",
}


class PagerError(Exception):
    """Base exception for all throttled pager errors.

    Example:
        try:
            async for record in engine.stream(fetcher):
                ...
        except PagerError as e:
            logger.error(f"Extraction failed: {e}")
    """

    pass


class ConfigurationError(PagerError):
    """Raised when configuration is invalid.

    Raised while constructing a RateBudget or a client configuration, before
    any network activity happens. Objects are never left half-built.

    Common causes include:
    - Non-positive request rate
    - Burst capacity smaller than the sustained rate
    - Negative intervals, retry counts or delays
    - Non-HTTPS base URLs or missing credentials

    Example:
        try:
            budget = RateBudget(rate_per_second=0)
        except ConfigurationError as e:
            logger.error(f"Invalid configuration: {e}")
            raise SystemExit(1)
    """

    failure_class = FailureClass.CONFIG


class LimiterClearedError(PagerError):
    """Raised to callers still waiting for admission when the limiter is cleared.

    ``TokenBucketLimiter.clear()`` discards queued work; every caller that had
    not yet been granted a slot is woken with this exception.
    """

    pass


class FetchFailure(PagerError):
    """A failed page or record fetch.

    Attributes:
        status_code: HTTP-like status code, or None when no response arrived.
        payload: Structured error body returned by the server, if any.
            ``errorMessages`` (list of str) and ``errors`` (field -> message)
            are rendered by detailed_message().
        cause: The underlying exception, if this failure wraps one.
    """

    failure_class: FailureClass = FailureClass.TERMINAL

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload
        self.cause = cause

    @property
    def is_transient(self) -> bool:
        return self.failure_class is FailureClass.TRANSIENT

    def detailed_message(self) -> str:
        """Render the message plus any structured error details from the payload."""
        parts = [self.message]
        payload = self.payload or {}

        error_messages = payload.get("errorMessages") or []
        if error_messages:
            parts.append("Error messages:")
            parts.extend(f"  - {msg}" for msg in error_messages)

        field_errors = payload.get("errors") or {}
        if field_errors:
            parts.append("Field errors:")
            parts.extend(f"  - {name}: {err}" for name, err in field_errors.items())

        return "\n".join(parts)


class TransientFailure(FetchFailure):
    """A failure that is likely to succeed if retried later."""

    failure_class = FailureClass.TRANSIENT


class TerminalFailure(FetchFailure):
    """A failure that will not succeed without a different input."""

    failure_class = FailureClass.TERMINAL


class NetworkError(TransientFailure):
    """No response was received (connection refused, DNS, timeout)."""

    pass


class RateLimitedError(TransientFailure):
    """The server signalled rate limiting or overload (HTTP 429).

    Attributes:
        retry_after: Server-suggested wait in seconds, if it sent one.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = 429,
        payload: dict[str, Any] | None = None,
        cause: BaseException | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message, status_code, payload, cause)
        self.retry_after = retry_after


class AuthenticationError(TerminalFailure):
    """Credentials are missing, malformed, or rejected (HTTP 401/403)."""

    pass


class PaginationStalledError(TerminalFailure):
    """A non-final page returned no items and did not advance the cursor."""

    pass


def message_for_status(status_code: int) -> str:
    """Map an HTTP status code to a user-facing message."""
    return _STATUS_MESSAGES.get(
        status_code, f"HTTP Error {status_code}: Request failed."
    )


def classify_status(status_code: int) -> FailureClass:
    """Classify an error status code.

    5xx and 429 are transient; every other error status is terminal.
    """
    if status_code >= 500 or status_code == 429:
        return FailureClass.TRANSIENT
    return FailureClass.TERMINAL


def failure_for_status(
    status_code: int,
    payload: dict[str, Any] | None = None,
    retry_after: float | None = None,
) -> FetchFailure:
    """Build the typed failure for an error response."""
    message = message_for_status(status_code)
    if status_code == 429:
        return RateLimitedError(
            message, status_code, payload, retry_after=retry_after
        )
    if status_code in (401, 403):
        return AuthenticationError(message, status_code, payload)
    if classify_status(status_code) is FailureClass.TRANSIENT:
        return TransientFailure(message, status_code, payload)
    return TerminalFailure(message, status_code, payload)


def extract_error_message(error: object) -> str:
    """Best-effort diagnostic text for any error value."""
    if isinstance(error, FetchFailure):
        return error.detailed_message()
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    if isinstance(error, str):
        return error
    return "An unknown error occurred"


__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "FailureClass",
    "FetchFailure",
    "LimiterClearedError",
    "NetworkError",
    "PagerError",
    "PaginationStalledError",
    "RateLimitedError",
    "TerminalFailure",
    "TransientFailure",
    "classify_status",
    "extract_error_message",
    "failure_for_status",
    "message_for_status",
]

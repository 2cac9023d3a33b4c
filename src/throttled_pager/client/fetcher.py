# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
HTTP boundary: request execution, failure classification, and the cursor
page fetcher for token-paginated search endpoints.

Every httpx outcome is mapped to a typed FetchFailure here, once. Nothing
above this module inspects status codes or httpx exception types.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from ..exceptions import (
    FetchFailure,
    NetworkError,
    TerminalFailure,
    failure_for_status,
)
from ..types.page import Cursor, PageResult

logger = logging.getLogger(__name__)

DEFAULT_ITEMS_KEY = "issues"
MAX_RESULTS_PER_PAGE = 100


def _json_or_none(response: httpx.Response) -> dict[str, Any] | None:
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def parse_retry_after(value: str | None) -> float | None:
    """
    Parse a Retry-After header into seconds.

    Accepts both the delta-seconds and the HTTP-date forms. Returns None for
    a missing or unparseable value.
    """
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def failure_from_response(response: httpx.Response) -> FetchFailure:
    """Build the typed failure for an HTTP error response."""
    return failure_for_status(
        response.status_code,
        payload=_json_or_none(response),
        retry_after=parse_retry_after(response.headers.get("Retry-After")),
    )


def failure_from_transport(exc: httpx.HTTPError) -> FetchFailure:
    """Build the typed failure for a request that produced no response."""
    if isinstance(exc, httpx.TimeoutException):
        return NetworkError(f"Request timed out: {exc}", cause=exc)
    if isinstance(exc, httpx.TransportError):
        return NetworkError(
            "No response from server. Please check your network connection.",
            cause=exc,
        )
    return TerminalFailure(f"Failed to make request: {exc}", cause=exc)


async def request_json(
    http: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> Any:
    """
    Perform one request and decode the JSON body.

    Raises:
        FetchFailure: Typed failure for transport errors, error statuses,
            and undecodable bodies
    """
    try:
        response = await http.request(
            method, url, params=dict(params or {}), headers=dict(headers or {})
        )
    except httpx.HTTPError as e:
        raise failure_from_transport(e) from e

    if response.is_error:
        failure = failure_from_response(response)
        logger.debug(f"{method} {url} failed with {response.status_code}")
        raise failure

    try:
        return response.json()
    except ValueError as e:
        raise TerminalFailure(
            "Response body is not valid JSON",
            status_code=response.status_code,
            cause=e,
        ) from e


class CursorPageFetcher:
    """
    PageFetcher for token-paginated search endpoints.

    Issues ``GET url`` with the fixed query params plus ``maxResults`` and,
    after the first page, ``nextPageToken``. The response must carry a list
    under ``items_key``; ``nextPageToken``, ``isLast`` and ``total`` are
    read when present.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        url: str,
        params: Mapping[str, Any] | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        items_key: str = DEFAULT_ITEMS_KEY,
        page_size: int = MAX_RESULTS_PER_PAGE,
    ) -> None:
        self._http = http
        self._url = url
        self._params = dict(params or {})
        self._headers = dict(headers or {})
        self._items_key = items_key
        self._page_size = max(1, min(page_size, MAX_RESULTS_PER_PAGE))

    async def fetch(
        self, cursor: Cursor | None, page_size_hint: int
    ) -> PageResult[dict[str, Any]]:
        params = dict(self._params)
        params["maxResults"] = (
            min(self._page_size, page_size_hint) if page_size_hint > 0 else self._page_size
        )
        if cursor is not None:
            params["nextPageToken"] = cursor

        body = await request_json(
            self._http, "GET", self._url, params=params, headers=self._headers
        )
        if not isinstance(body, dict) or not isinstance(body.get(self._items_key), list):
            raise TerminalFailure(
                f"Malformed page response: expected a '{self._items_key}' list"
            )

        token = body.get("nextPageToken") or None
        is_last = bool(body.get("isLast", token is None))
        total = body.get("total")
        return PageResult(
            items=body[self._items_key],
            continuation=token,
            is_last=is_last,
            total=total if isinstance(total, int) and not isinstance(total, bool) else None,
        )


__all__ = [
    "DEFAULT_ITEMS_KEY",
    "MAX_RESULTS_PER_PAGE",
    "CursorPageFetcher",
    "failure_from_response",
    "failure_from_transport",
    "parse_retry_after",
    "request_json",
]

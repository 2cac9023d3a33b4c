# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Record client for a token-paginated REST API.

RecordClient wires one ClientConfig to a TokenBucketLimiter, a RetryPolicy
and a PaginationEngine, and exposes search and single-record operations.
Every request, paginated or not, is admitted through the same limiter.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx
from typing_extensions import Self

from ..exceptions import LimiterClearedError
from ..limiter.token_bucket import TokenBucketLimiter
from ..observability.metrics import LimiterMetrics
from ..pagination.engine import PaginationEngine, ProgressCallback, StreamOptions
from ..pagination.stream import PageStream
from ..retry import RetryPolicy
from .auth import auth_headers
from .config import ClientConfig
from .fetcher import MAX_RESULTS_PER_PAGE, CursorPageFetcher, request_json

logger = logging.getLogger(__name__)

SEARCH_PATH = "/rest/api/3/search/jql"
RECORD_PATH = "/rest/api/3/issue/{key}"
CURRENT_USER_PATH = "/rest/api/3/myself"


class RecordClient:
    """
    Client for searching and fetching records.

    Usage:
        config = ClientConfig.parse({
            "base_url": "https://company.example.net",
            "auth": {"type": "basic", "email": "me@example.com", "api_token": "..."},
        })
        async with RecordClient(config) as client:
            await client.test_connection()
            async with client.search("project = PROJ") as stream:
                async for record in stream:
                    print(record["key"])

    When an ``http`` client is supplied the caller keeps ownership of it and
    it is not closed by aclose().
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        http: httpx.AsyncClient | None = None,
        limiter: TokenBucketLimiter | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Validated client configuration
            http: Optional shared httpx.AsyncClient
            limiter: Optional shared limiter; one is built from the config's
                rate limit settings when omitted
        """
        self._config = config
        self._limiter = limiter or TokenBucketLimiter(config.budget)
        self._retry_policy = RetryPolicy.from_budget(config.budget)
        self._engine = PaginationEngine(self._limiter, self._retry_policy)
        self._headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            **auth_headers(config.auth),
        }
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=config.timeout_seconds)
        self._closed = False

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def limiter(self) -> TokenBucketLimiter:
        return self._limiter

    @property
    def engine(self) -> PaginationEngine:
        return self._engine

    def search(
        self,
        query: str,
        *,
        fields: Sequence[str] | None = None,
        expand: Sequence[str] | None = None,
        on_progress: ProgressCallback | None = None,
        page_size: int = MAX_RESULTS_PER_PAGE,
    ) -> PageStream[dict[str, Any]]:
        """
        Stream every record matching a query.

        Records are fetched page by page as the stream is consumed, so memory
        stays bounded by one page.

        Args:
            query: Search query string
            fields: Fields to include in each record
            expand: Expansions to request
            on_progress: Called with a ProgressEvent per record and at the end
            page_size: Records per page, at most 100

        Returns:
            A PageStream of decoded record dicts
        """
        params: dict[str, Any] = {"jql": query}
        if fields:
            params["fields"] = ",".join(fields)
        if expand:
            params["expand"] = ",".join(expand)

        fetcher = CursorPageFetcher(
            self._http,
            self._url(SEARCH_PATH),
            params,
            headers=self._headers,
            page_size=page_size,
        )
        options = StreamOptions(
            on_progress=on_progress,
            page_size=min(page_size, MAX_RESULTS_PER_PAGE),
        )
        return self._engine.stream(fetcher, options)

    async def search_all(
        self,
        query: str,
        *,
        fields: Sequence[str] | None = None,
        expand: Sequence[str] | None = None,
        on_progress: ProgressCallback | None = None,
        page_size: int = MAX_RESULTS_PER_PAGE,
    ) -> list[dict[str, Any]]:
        """
        Collect every record matching a query into a list.

        Loads all results into memory. Prefer search() for large result sets.
        """
        stream = self.search(
            query,
            fields=fields,
            expand=expand,
            on_progress=on_progress,
            page_size=page_size,
        )
        async with stream:
            return [record async for record in stream]

    async def get_record(
        self, key: str, fields: Sequence[str] | None = None
    ) -> dict[str, Any]:
        """Fetch a single record by key."""
        params: dict[str, Any] = {}
        if fields:
            params["fields"] = ",".join(fields)
        path = RECORD_PATH.format(key=quote(key, safe=""))
        result: dict[str, Any] = await self._call("GET", path, params)
        return result

    async def get_current_user(self) -> Any:
        """Fetch the authenticated user."""
        return await self._call("GET", CURRENT_USER_PATH)

    async def test_connection(self) -> bool:
        """
        Verify credentials and connectivity.

        Returns:
            True when the current-user endpoint answers

        Raises:
            AuthenticationError: If the credentials are rejected
            NetworkError: If the server cannot be reached
        """
        await self.get_current_user()
        logger.info(f"Connected to {self.base_url}")
        return True

    def get_limiter_metrics(self) -> LimiterMetrics:
        return self._limiter.get_metrics()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    def _url(self, path: str) -> str:
        return f"{self._config.base_url}{path}"

    async def _call(
        self, method: str, path: str, params: dict[str, Any] | None = None
    ) -> Any:
        url = self._url(path)

        async def attempt() -> Any:
            async with self._limiter.admit():
                return await request_json(
                    self._http, method, url, params=params, headers=self._headers
                )

        return await self._retry_policy.call(attempt, on_failure=self._on_attempt_failed)

    def _on_attempt_failed(self, error: BaseException) -> None:
        # Callers discarded by clear() never sent a request
        if isinstance(error, LimiterClearedError):
            return
        self._limiter.record_failure()


__all__ = ["CURRENT_USER_PATH", "RECORD_PATH", "SEARCH_PATH", "RecordClient"]

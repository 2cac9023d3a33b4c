# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
HTTP adapter for token-paginated REST APIs.

Classes:
    RecordClient: Search and single-record operations behind one limiter.
    ClientConfig: Validated client configuration.
    RateLimitSettings: User-facing rate limit settings.
    BasicAuth, BearerAuth: Credential models.
    CursorPageFetcher: PageFetcher for ``nextPageToken`` style endpoints.

Functions:
    auth_headers: Authorization header for a credential set.
    failure_from_response, failure_from_transport: Map httpx outcomes to
        typed failures.
"""

from .auth import AuthConfig, BasicAuth, BearerAuth, auth_headers
from .config import ClientConfig, RateLimitSettings
from .fetcher import (
    CursorPageFetcher,
    failure_from_response,
    failure_from_transport,
    parse_retry_after,
    request_json,
)
from .records import RecordClient

__all__ = [
    "AuthConfig",
    "BasicAuth",
    "BearerAuth",
    "ClientConfig",
    "CursorPageFetcher",
    "RateLimitSettings",
    "RecordClient",
    "auth_headers",
    "failure_from_response",
    "failure_from_transport",
    "parse_retry_after",
    "request_json",
]

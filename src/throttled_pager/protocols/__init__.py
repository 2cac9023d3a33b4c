# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Protocol definitions for pager components.

This module provides Protocol classes that define the interfaces for
injected collaborators of the pagination engine.

Available protocols:
- PageFetcher: Interface for one page fetch given a cursor

Supporting types:
- FetchFunction: Plain async callable with the same signature as PageFetcher.fetch
"""

from .fetcher import FetcherLike, FetchFunction, PageFetcher, resolve_fetch

__all__ = [
    "FetchFunction",
    "FetcherLike",
    "PageFetcher",
    "resolve_fetch",
]

# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Type definitions and constants."""

from .budget import DEFAULT_RATE_BUDGET, RateBudget
from .page import Cursor, PageResult, ProgressEvent, percentage_of

__all__ = [
    # Budget
    "DEFAULT_RATE_BUDGET",
    # Page types
    "Cursor",
    "PageResult",
    "ProgressEvent",
    "RateBudget",
    "percentage_of",
]

# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Request admission control.

Classes:
    TokenBucketLimiter: Token bucket + minimum interval + bounded concurrency
        limiter with FIFO admission.
    Admission: Record of one granted slot.
"""

from .token_bucket import MIN_TOKEN_WAIT_SECONDS, Admission, TokenBucketLimiter

__all__ = [
    "MIN_TOKEN_WAIT_SECONDS",
    "Admission",
    "TokenBucketLimiter",
]

# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Client configuration models.

ClientConfig validates everything the HTTP adapter needs before any network
activity happens. Use ``ClientConfig.parse()`` on untrusted input such as a
decoded JSON file: it converts pydantic validation errors into the library's
ConfigurationError.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import ConfigurationError
from ..types.budget import RateBudget
from .auth import AuthConfig


class RateLimitSettings(BaseModel):
    """User-facing rate limit settings, bounded to sane values for a hosted API."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    requests_per_second: float = Field(default=2.0, ge=0.1, le=100)
    max_concurrent: int = Field(default=2, ge=1, le=10)
    min_delay_ms: int = Field(default=200, ge=0)
    retry_attempts: int = Field(default=3, ge=0, le=10)
    retry_delay_ms: int = Field(default=1000, ge=0)

    def to_budget(self) -> RateBudget:
        return RateBudget(
            rate_per_second=self.requests_per_second,
            max_concurrent=self.max_concurrent,
            min_interval_ms=self.min_delay_ms,
            retry_attempts=self.retry_attempts,
            retry_base_delay_ms=self.retry_delay_ms,
        )


class ClientConfig(BaseModel):
    """
    Configuration for RecordClient.

    Attributes:
        base_url: HTTPS origin of the API, without a trailing slash
        auth: Basic or bearer credentials
        rate_limiting: Rate limit settings; defaults apply when omitted
        timeout_ms: Per-request network timeout
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str
    auth: AuthConfig
    rate_limiting: RateLimitSettings | None = None
    timeout_ms: int = Field(default=30000, ge=1000)

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, v: str) -> str:
        v = v.strip()
        try:
            url = httpx.URL(v)
        except httpx.InvalidURL as e:
            raise ValueError(f"base_url is not a valid URL: {e}") from e
        if url.scheme != "https":
            raise ValueError("base_url must use HTTPS")
        if not url.host:
            raise ValueError("base_url must include a host")
        return v.rstrip("/")

    @property
    def budget(self) -> RateBudget:
        """RateBudget for the configured (or default) rate limit settings."""
        return (self.rate_limiting or RateLimitSettings()).to_budget()

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @classmethod
    def parse(cls, data: Mapping[str, Any]) -> ClientConfig:
        """
        Validate a mapping into a ClientConfig.

        Raises:
            ConfigurationError: Listing every invalid field
        """
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigurationError(f"Invalid client configuration: {problems}") from e


__all__ = ["ClientConfig", "RateLimitSettings"]

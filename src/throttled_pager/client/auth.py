# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Credentials for the HTTP adapter.

Two schemes are supported:
- BasicAuth: account email plus API token, sent as ``Basic base64(email:token)``
- BearerAuth: a personal access token, sent as ``Bearer <token>``

Secrets are held as pydantic SecretStr so they never show up in reprs or
log lines.
"""

from __future__ import annotations

import base64
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from ..exceptions import AuthenticationError


class BasicAuth(BaseModel):
    """Email + API token credentials."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["basic"] = "basic"
    email: str
    api_token: SecretStr

    @field_validator("email")
    @classmethod
    def _validate_email(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Basic auth requires an email")
        return v

    @field_validator("api_token")
    @classmethod
    def _validate_api_token(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("Basic auth requires an API token")
        return v


class BearerAuth(BaseModel):
    """Bearer token credentials."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["bearer"] = "bearer"
    token: SecretStr

    @field_validator("token")
    @classmethod
    def _validate_token(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("Bearer auth requires a token")
        return v


AuthConfig = Annotated[Union[BasicAuth, BearerAuth], Field(discriminator="type")]


def auth_headers(auth: BasicAuth | BearerAuth) -> dict[str, str]:
    """
    Build the Authorization header for a credential set.

    Raises:
        AuthenticationError: For an unsupported credential type
    """
    if isinstance(auth, BasicAuth):
        raw = f"{auth.email}:{auth.api_token.get_secret_value()}"
        credentials = base64.b64encode(raw.encode("utf-8")).decode("ascii")
        return {"Authorization": f"Basic {credentials}"}
    if isinstance(auth, BearerAuth):
        return {"Authorization": f"Bearer {auth.token.get_secret_value()}"}
    raise AuthenticationError(f"Unsupported auth type: {type(auth).__name__}")


__all__ = ["AuthConfig", "BasicAuth", "BearerAuth", "auth_headers"]

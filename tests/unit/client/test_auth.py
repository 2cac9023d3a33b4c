"""Unit tests for client credential models and auth headers."""

from __future__ import annotations

import base64

import pytest
from pydantic import TypeAdapter, ValidationError

from throttled_pager.client.auth import AuthConfig, BasicAuth, BearerAuth, auth_headers
from throttled_pager.exceptions import AuthenticationError


class TestBasicAuth:
    """Tests for BasicAuth."""

    def test_header_is_base64_email_and_token(self) -> None:
        auth = BasicAuth(email="user@example.com", api_token="secret-token")

        headers = auth_headers(auth)

        expected = base64.b64encode(b"user@example.com:secret-token").decode("ascii")
        assert headers == {"Authorization": f"Basic {expected}"}

    def test_token_hidden_in_repr(self) -> None:
        auth = BasicAuth(email="user@example.com", api_token="secret-token")
        assert "secret-token" not in repr(auth)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"email": "", "api_token": "t"},
            {"email": "   ", "api_token": "t"},
            {"email": "user@example.com", "api_token": ""},
        ],
    )
    def test_missing_credentials_rejected(self, kwargs: dict[str, str]) -> None:
        with pytest.raises(ValidationError):
            BasicAuth(**kwargs)

    def test_email_stripped(self) -> None:
        assert BasicAuth(email=" a@b.c ", api_token="t").email == "a@b.c"


class TestBearerAuth:
    """Tests for BearerAuth."""

    def test_header(self) -> None:
        assert auth_headers(BearerAuth(token="pat-123")) == {
            "Authorization": "Bearer pat-123"
        }

    def test_empty_token_rejected(self) -> None:
        with pytest.raises(ValidationError):
            BearerAuth(token="")


class TestAuthConfig:
    """Tests for the discriminated AuthConfig union."""

    @pytest.fixture
    def adapter(self) -> TypeAdapter:
        return TypeAdapter(AuthConfig)

    def test_basic_selected_by_type(self, adapter: TypeAdapter) -> None:
        auth = adapter.validate_python(
            {"type": "basic", "email": "a@b.c", "api_token": "t"}
        )
        assert isinstance(auth, BasicAuth)

    def test_bearer_selected_by_type(self, adapter: TypeAdapter) -> None:
        auth = adapter.validate_python({"type": "bearer", "token": "t"})
        assert isinstance(auth, BearerAuth)

    def test_unknown_type_rejected(self, adapter: TypeAdapter) -> None:
        with pytest.raises(ValidationError):
            adapter.validate_python({"type": "oauth", "token": "t"})


def test_unsupported_auth_object() -> None:
    with pytest.raises(AuthenticationError, match="Unsupported auth type"):
        auth_headers(object())  # type: ignore[arg-type]

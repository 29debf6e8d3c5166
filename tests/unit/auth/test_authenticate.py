"""Unit tests for session authentication.

Tests the authenticate() dependency: signed session tokens from the
Authorization header or cookie, and the development identity header.
"""

from __future__ import annotations

import time
from unittest.mock import MagicMock, patch

import jwt
import pytest
from fastapi import Request

from dandi.api.dependencies import authenticate
from dandi.config import SecurityConfig, Settings
from dandi.errors import UnauthorizedError

SESSION_SECRET = "test-session-secret-with-enough-bytes"


def create_mock_request(
    headers: dict[str, str] | None = None,
    cookies: dict[str, str] | None = None,
) -> Request:
    """Create a mock FastAPI Request with given headers and cookies."""
    mock_request = MagicMock(spec=Request)
    mock_request.headers = headers or {}
    mock_request.cookies = cookies or {}
    return mock_request


def create_mock_settings(
    session_secret: str | None = SESSION_SECRET,
    trust_identity_header: bool = False,
) -> Settings:
    """Create mock settings with security configuration."""
    settings = MagicMock(spec=Settings)
    settings.security = SecurityConfig(
        session_secret=session_secret,
        trust_identity_header=trust_identity_header,
    )
    return settings


def make_token(
    email: str | None = "alice@example.com",
    expires_in: int = 3600,
    secret: str = SESSION_SECRET,
) -> str:
    payload: dict = {"exp": int(time.time()) + expires_in}
    if email is not None:
        payload["email"] = email
    return jwt.encode(payload, secret, algorithm="HS256")


class TestSessionToken:
    """Signed session tokens."""

    def test_bearer_token(self):
        request = create_mock_request(headers={"Authorization": f"Bearer {make_token()}"})

        with patch("dandi.api.dependencies.get_settings", return_value=create_mock_settings()):
            assert authenticate(request) == "alice@example.com"

    def test_session_cookie(self):
        request = create_mock_request(cookies={"dandi_session": make_token("bob@example.com")})

        with patch("dandi.api.dependencies.get_settings", return_value=create_mock_settings()):
            assert authenticate(request) == "bob@example.com"

    def test_header_takes_priority_over_cookie(self):
        request = create_mock_request(
            headers={"Authorization": f"Bearer {make_token('header@example.com')}"},
            cookies={"dandi_session": make_token("cookie@example.com")},
        )

        with patch("dandi.api.dependencies.get_settings", return_value=create_mock_settings()):
            assert authenticate(request) == "header@example.com"

    def test_expired_token(self):
        request = create_mock_request(
            headers={"Authorization": f"Bearer {make_token(expires_in=-60)}"}
        )

        with patch("dandi.api.dependencies.get_settings", return_value=create_mock_settings()):
            with pytest.raises(UnauthorizedError) as exc_info:
                authenticate(request)

        assert exc_info.value.message == "Session expired"

    def test_wrong_signature(self):
        token = make_token(secret="some-other-secret-with-enough-bytes")
        request = create_mock_request(headers={"Authorization": f"Bearer {token}"})

        with patch("dandi.api.dependencies.get_settings", return_value=create_mock_settings()):
            with pytest.raises(UnauthorizedError) as exc_info:
                authenticate(request)

        assert exc_info.value.message == "Invalid session"

    def test_garbage_token(self):
        request = create_mock_request(headers={"Authorization": "Bearer not-a-jwt"})

        with patch("dandi.api.dependencies.get_settings", return_value=create_mock_settings()):
            with pytest.raises(UnauthorizedError):
                authenticate(request)

    def test_token_without_exp_rejected(self):
        token = jwt.encode({"email": "alice@example.com"}, SESSION_SECRET, algorithm="HS256")
        request = create_mock_request(headers={"Authorization": f"Bearer {token}"})

        with patch("dandi.api.dependencies.get_settings", return_value=create_mock_settings()):
            with pytest.raises(UnauthorizedError):
                authenticate(request)

    def test_token_without_email(self):
        request = create_mock_request(
            headers={"Authorization": f"Bearer {make_token(email=None)}"}
        )

        with patch("dandi.api.dependencies.get_settings", return_value=create_mock_settings()):
            with pytest.raises(UnauthorizedError) as exc_info:
                authenticate(request)

        assert exc_info.value.message == "No email in session"

    def test_token_ignored_without_session_secret(self):
        """With no secret configured tokens cannot be verified and are not trusted."""
        request = create_mock_request(headers={"Authorization": f"Bearer {make_token()}"})
        settings = create_mock_settings(session_secret=None)

        with patch("dandi.api.dependencies.get_settings", return_value=settings):
            with pytest.raises(UnauthorizedError):
                authenticate(request)


class TestIdentityHeader:
    """Development identity header."""

    def test_header_trusted_when_enabled(self):
        request = create_mock_request(headers={"X-User-Email": "dev@example.com"})
        settings = create_mock_settings(session_secret=None, trust_identity_header=True)

        with patch("dandi.api.dependencies.get_settings", return_value=settings):
            assert authenticate(request) == "dev@example.com"

    def test_header_ignored_when_disabled(self):
        request = create_mock_request(headers={"X-User-Email": "dev@example.com"})

        with patch("dandi.api.dependencies.get_settings", return_value=create_mock_settings()):
            with pytest.raises(UnauthorizedError):
                authenticate(request)

    def test_invalid_token_does_not_fall_back_to_header(self):
        request = create_mock_request(
            headers={
                "Authorization": "Bearer not-a-jwt",
                "X-User-Email": "dev@example.com",
            }
        )
        settings = create_mock_settings(trust_identity_header=True)

        with patch("dandi.api.dependencies.get_settings", return_value=settings):
            with pytest.raises(UnauthorizedError):
                authenticate(request)


class TestNoIdentity:
    def test_no_credentials(self):
        request = create_mock_request()

        with patch("dandi.api.dependencies.get_settings", return_value=create_mock_settings()):
            with pytest.raises(UnauthorizedError) as exc_info:
                authenticate(request)

        assert exc_info.value.status_code == 401
        assert exc_info.value.code == "unauthorized"

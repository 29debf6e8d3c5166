"""Dandi error types.

Every error carries a stable ``code`` for programmatic handling and the
HTTP status it maps to. The FastAPI exception handler in ``dandi.main``
renders them with ``to_dict``.
"""

from __future__ import annotations

from typing import Any


class DandiError(Exception):
    """Base error for all Dandi exceptions."""

    code: str = "internal_error"
    message: str = "An internal error occurred"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.message = message or self.__class__.message
        self.details = details or {}
        self.headers = headers or {}
        super().__init__(self.message)

    def to_dict(self, request_id: str | None = None) -> dict[str, Any]:
        """Render as a flat JSON error body.

        Details are merged at top level so callers see e.g. ``usage`` and
        ``limit`` next to ``error``.
        """
        body: dict[str, Any] = {"error": self.code, "message": self.message}
        if request_id:
            body["request_id"] = request_id
        body.update(self.details)
        return body


class UnauthorizedError(DandiError):
    """No authenticated session identity (401)."""

    code = "unauthorized"
    message = "Authentication required"
    status_code = 401


class MissingKeyError(DandiError):
    """No API key presented on a metered call (401)."""

    code = "missing_api_key"
    message = "API key is required"
    status_code = 401


class InvalidKeyError(DandiError):
    """Presented API key does not exist (401)."""

    code = "invalid_api_key"
    message = "Invalid API key"
    status_code = 401


class RateLimitExceededError(DandiError):
    """Key usage has reached its rate limit (429)."""

    code = "rate_limit_exceeded"
    message = "Rate limit exceeded"
    status_code = 429


class StorageUnavailableError(DandiError):
    """Key store could not be reached (500).

    The message is intentionally generic; storage detail stays in logs.
    """

    code = "storage_unavailable"
    message = "Error validating API key"
    status_code = 500


class NotFoundError(DandiError):
    """Resource not found or not owned by the caller (404)."""

    code = "not_found"
    message = "Resource not found"
    status_code = 404


class ValidationError(DandiError):
    """Request validation error (400)."""

    code = "validation_error"
    message = "Validation error"
    status_code = 400


class UpstreamError(DandiError):
    """GitHub or the summarization model failed (502)."""

    code = "upstream_error"
    message = "Failed to summarize repository"
    status_code = 502

"""FastAPI dependencies for Dandi API.

Provides dependency injection for:
- Key store (SQL session per request, or the process-wide memory store)
- Services (KeyLifecycleService, RateLimitGate)
- Summarization pipeline
- Session authentication
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Annotated

import jwt
import structlog
from fastapi import Depends, Request

from dandi.config import get_settings
from dandi.db.session import get_async_session
from dandi.errors import UnauthorizedError
from dandi.services.http import get_http_client
from dandi.services.lifecycle import KeyLifecycleService
from dandi.services.rate_limit import RateLimitGate
from dandi.services.summarizer import (
    GitHubClient,
    OpenAISummarizer,
    SummarizationPipeline,
)
from dandi.stores import InMemoryKeyStore, KeyStore, SqlKeyStore

logger = structlog.get_logger()


@lru_cache
def get_memory_store() -> InMemoryKeyStore:
    """Get the process-wide in-memory store.

    Uses lru_cache so every request sees the same rows.
    """
    return InMemoryKeyStore()


async def get_key_store() -> AsyncGenerator[KeyStore, None]:
    """Yield the configured key store for one request."""
    settings = get_settings()
    if settings.store.type == "memory":
        yield get_memory_store()
        return

    async with get_async_session() as session:
        yield SqlKeyStore(session)


KeyStoreDep = Annotated[KeyStore, Depends(get_key_store)]


async def get_lifecycle_service(store: KeyStoreDep) -> KeyLifecycleService:
    """Get KeyLifecycleService with injected dependencies."""
    return KeyLifecycleService(store=store, config=get_settings().rate_limit)


async def get_rate_limit_gate(store: KeyStoreDep) -> RateLimitGate:
    """Get RateLimitGate with injected dependencies."""
    return RateLimitGate(store=store)


def get_summarization_pipeline() -> SummarizationPipeline:
    """Get SummarizationPipeline bound to the shared HTTP client."""
    settings = get_settings()
    client = get_http_client()
    return SummarizationPipeline(
        github=GitHubClient(client, settings.github),
        summarizer=OpenAISummarizer(client, settings.llm),
    )


def _extract_session_token(request: Request, cookie_name: str) -> str | None:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]
    return request.cookies.get(cookie_name)


def authenticate(request: Request) -> str:
    """Authenticate the session and return the owner's email.

    Authentication flow:
    1. If a session token is present (Bearer header or session cookie) and a
       session secret is configured → verify the JWT and use its ``email``
    2. Else if trust_identity_header → use the identity header (development)
    3. Otherwise → 401 Unauthorized

    Raises:
        UnauthorizedError: If no valid identity can be resolved
    """
    security = get_settings().security

    token = _extract_session_token(request, security.session_cookie)
    if token and security.session_secret:
        try:
            payload = jwt.decode(
                token,
                security.session_secret,
                algorithms=[security.session_algorithm],
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise UnauthorizedError("Session expired")
        except jwt.PyJWTError:
            raise UnauthorizedError("Invalid session")

        email = payload.get("email")
        if not email:
            raise UnauthorizedError("No email in session")
        logger.debug("auth.success", source="session")
        return email

    if security.trust_identity_header:
        email = request.headers.get(security.identity_header)
        if email:
            logger.debug("auth.success", source="header")
            return email

    raise UnauthorizedError("Authentication required")


# Type aliases for cleaner dependency injection
AuthDep = Annotated[str, Depends(authenticate)]
KeyLifecycleServiceDep = Annotated[KeyLifecycleService, Depends(get_lifecycle_service)]
RateLimitGateDep = Annotated[RateLimitGate, Depends(get_rate_limit_gate)]
SummarizationPipelineDep = Annotated[
    SummarizationPipeline, Depends(get_summarization_pipeline)
]

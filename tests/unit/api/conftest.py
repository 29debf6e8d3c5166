"""Shared fixtures for HTTP-level API tests.

The app runs in-process over httpx.ASGITransport with the key store and
summarization pipeline overridden, and the development identity header
enabled so tests can act as any owner.
"""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest

from dandi.api.dependencies import get_key_store, get_summarization_pipeline
from dandi.config import RateLimitConfig, SecurityConfig, Settings, StoreConfig
from dandi.main import create_app
from dandi.services.summarizer import SummarizationPipeline
from dandi.stores.memory import InMemoryKeyStore
from tests.fakes import FakeGitHubClient, FakeSummarizer


@pytest.fixture
def settings() -> Settings:
    return Settings(
        store=StoreConfig(type="memory"),
        rate_limit=RateLimitConfig(default_limit=1000, max_limit=10_000),
        security=SecurityConfig(trust_identity_header=True),
    )


@pytest.fixture
def store() -> InMemoryKeyStore:
    return InMemoryKeyStore()


@pytest.fixture
def github() -> FakeGitHubClient:
    return FakeGitHubClient()


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
async def client(settings, store, github, summarizer):
    app = create_app()
    app.dependency_overrides[get_key_store] = lambda: store
    app.dependency_overrides[get_summarization_pipeline] = lambda: SummarizationPipeline(
        github=github, summarizer=summarizer
    )

    with patch("dandi.api.dependencies.get_settings", return_value=settings):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
            yield c

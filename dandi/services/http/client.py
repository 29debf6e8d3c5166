"""Shared outbound HTTP client.

GitHub fetches and model calls reuse one pooled httpx.AsyncClient, opened
in the app lifespan from the ``http`` settings section and closed on
shutdown.
"""

from __future__ import annotations

import httpx
import structlog

from dandi.config import HttpConfig

logger = structlog.get_logger()


class HTTPClientManager:
    """Owns the pooled client between lifespan startup and shutdown."""

    def __init__(self) -> None:
        self._client: httpx.AsyncClient | None = None
        self._log = logger.bind(component="http_client")

    @property
    def client(self) -> httpx.AsyncClient:
        """The shared client.

        Raises:
            RuntimeError: If startup() has not run yet
        """
        if self._client is None:
            raise RuntimeError("HTTP client not initialized. Call startup() first.")
        return self._client

    @property
    def is_started(self) -> bool:
        return self._client is not None

    async def startup(self, config: HttpConfig) -> None:
        if self._client is not None:
            self._log.warning("http_client.already_started")
            return

        self._client = httpx.AsyncClient(
            limits=httpx.Limits(
                max_connections=config.max_connections,
                max_keepalive_connections=config.max_keepalive_connections,
                keepalive_expiry=config.keepalive_expiry,
            ),
            timeout=httpx.Timeout(config.read_timeout, connect=config.connect_timeout),
            headers={"User-Agent": config.user_agent},
            follow_redirects=True,
        )
        self._log.info(
            "http_client.started",
            max_connections=config.max_connections,
            read_timeout=config.read_timeout,
        )

    async def shutdown(self) -> None:
        if self._client is None:
            return

        await self._client.aclose()
        self._client = None
        self._log.info("http_client.shutdown")


http_client_manager = HTTPClientManager()


def get_http_client() -> httpx.AsyncClient:
    """Dependency helper returning the started shared client."""
    return http_client_manager.client

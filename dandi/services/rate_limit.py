"""RateLimitGate - admit/reject decisions for metered calls.

The gate authenticates a presented secret and charges one unit of usage per
admitted call. Usage is incremented with a conditional update guarded by the
ceiling itself, so concurrent callers can never push a key past its rate
limit and never reject each other while budget remains:

    UPDATE api_keys SET usage = usage + 1
    WHERE id = :id AND usage < rate_limit
    RETURNING usage

An update that matches no row is classified by re-reading the key: a row
deleted in the meantime is an invalid key (never recreated), otherwise the
limit was reached by another caller.

Usage counts admitted attempts: it is charged before any downstream work and
is not refunded when that work fails.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from dandi.errors import (
    DandiError,
    InvalidKeyError,
    MissingKeyError,
    RateLimitExceededError,
    StorageUnavailableError,
)
from dandi.models.api_key import ApiKey
from dandi.stores.base import KeyStore, KeyStoreError

logger = structlog.get_logger()


@dataclass(frozen=True)
class GateDecision:
    """Outcome of a single check_and_consume call.

    ``usage`` and ``rate_limit`` are None when no key row was read
    (missing key, unknown key, storage failure).
    """

    is_admitted: bool
    usage: int | None = None
    rate_limit: int | None = None
    key_id: str | None = None
    error: DandiError | None = None

    # False when the call was admitted but the increment could not be written
    usage_recorded: bool = True

    @property
    def limit(self) -> int | None:
        return self.rate_limit

    @property
    def remaining(self) -> int | None:
        if self.rate_limit is None or self.usage is None:
            return None
        return max(self.rate_limit - self.usage, 0)

    def headers(self) -> dict[str, str]:
        """X-RateLimit-* response headers, empty if no key was read."""
        if self.rate_limit is None:
            return {}
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
        }


class RateLimitGate:
    """Validates API keys and meters their usage."""

    def __init__(self, store: KeyStore) -> None:
        self._store = store
        self._log = logger.bind(component="rate_limit_gate")

    @staticmethod
    def _reject(error: DandiError, api_key: ApiKey | None = None) -> GateDecision:
        if api_key is None:
            return GateDecision(is_admitted=False, error=error)
        error.details.setdefault("usage", api_key.usage)
        error.details.setdefault("limit", api_key.rate_limit)
        return GateDecision(
            is_admitted=False,
            usage=api_key.usage,
            rate_limit=api_key.rate_limit,
            key_id=api_key.id,
            error=error,
        )

    def _reject_exhausted(self, api_key: ApiKey) -> GateDecision:
        self._log.info(
            "gate.reject",
            reason=RateLimitExceededError.code,
            key_id=api_key.id,
            usage=api_key.usage,
            rate_limit=api_key.rate_limit,
        )
        return self._reject(RateLimitExceededError(), api_key)

    async def _lookup(self, secret: str) -> ApiKey | None:
        return await self._store.get_by_secret(secret)

    async def check_and_consume(self, secret: str | None) -> GateDecision:
        """Decide whether a metered call may proceed and charge it if so.

        Args:
            secret: Presented API key (may be None or empty)

        Returns:
            GateDecision; rejections carry the error to report
        """
        if not secret:
            self._log.info("gate.reject", reason=MissingKeyError.code)
            return self._reject(MissingKeyError())

        try:
            api_key = await self._lookup(secret)
        except KeyStoreError as exc:
            self._log.error("gate.lookup_failed", error=str(exc), exc_info=True)
            return self._reject(StorageUnavailableError())

        if api_key is None:
            self._log.info("gate.reject", reason=InvalidKeyError.code)
            return self._reject(InvalidKeyError())

        if api_key.usage >= api_key.rate_limit:
            return self._reject_exhausted(api_key)

        try:
            new_usage = await self._store.try_increment_usage(api_key.id)
        except KeyStoreError as exc:
            # Fail open: the decision was already made on a consistent read.
            # Repeated failures here mean the ceiling is not being enforced.
            self._log.error(
                "gate.increment_failed",
                key_id=api_key.id,
                usage=api_key.usage,
                rate_limit=api_key.rate_limit,
                error=str(exc),
                exc_info=True,
            )
            return GateDecision(
                is_admitted=True,
                usage=api_key.usage + 1,
                rate_limit=api_key.rate_limit,
                key_id=api_key.id,
                usage_recorded=False,
            )

        if new_usage is not None:
            self._log.info(
                "gate.admit",
                key_id=api_key.id,
                usage=new_usage,
                rate_limit=api_key.rate_limit,
            )
            return GateDecision(
                is_admitted=True,
                usage=new_usage,
                rate_limit=api_key.rate_limit,
                key_id=api_key.id,
            )

        # The guarded update only misses once the ceiling is reached or the
        # row is gone. Usage never decreases, so the re-read tells which.
        try:
            current = await self._lookup(secret)
        except KeyStoreError as exc:
            self._log.error("gate.lookup_failed", error=str(exc), exc_info=True)
            return self._reject(StorageUnavailableError())

        if current is None:
            self._log.info("gate.reject", reason=InvalidKeyError.code, key_id=api_key.id)
            return self._reject(InvalidKeyError())
        return self._reject_exhausted(current)

    async def validate(self, secret: str | None) -> bool:
        """Check that a key exists without charging usage.

        Limit state is ignored: an exhausted key is still a valid key.

        Raises:
            StorageUnavailableError: If the store cannot be reached
        """
        if not secret:
            return False
        try:
            api_key = await self._lookup(secret)
        except KeyStoreError as exc:
            self._log.error("gate.validate_failed", error=str(exc), exc_info=True)
            raise StorageUnavailableError() from exc
        return api_key is not None

"""KeyLifecycleService - owner-scoped management of API keys.

Every operation is constrained to rows whose owner matches the caller.
A key owned by someone else is reported exactly like a missing one.
"""

from __future__ import annotations

import uuid

import structlog

from dandi.config import RateLimitConfig
from dandi.errors import NotFoundError, ValidationError
from dandi.models.api_key import ApiKey
from dandi.services.keygen import generate_secret, mask_secret
from dandi.stores.base import DuplicateSecretError, KeyStore
from dandi.utils.datetime import utcnow

logger = structlog.get_logger()

# Secret collisions are astronomically unlikely; a handful of retries is plenty
_MAX_SECRET_ATTEMPTS = 3


class KeyLifecycleService:
    """Create, list, get, rename and delete keys for one owner at a time."""

    def __init__(self, store: KeyStore, config: RateLimitConfig) -> None:
        self._store = store
        self._config = config
        self._log = logger.bind(service="api_key")

    @staticmethod
    def _clean_name(name: str | None) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError("Name is required", details={"field": "name"})
        return cleaned

    def _resolve_rate_limit(self, rate_limit: int | None) -> int:
        if rate_limit is None:
            return self._config.default_limit
        if rate_limit < 1 or rate_limit > self._config.max_limit:
            raise ValidationError(
                f"rateLimit must be between 1 and {self._config.max_limit}",
                details={"field": "rateLimit"},
            )
        return rate_limit

    async def list(self, owner_email: str) -> list[ApiKey]:
        """List the owner's keys, newest first."""
        return await self._store.list_by_owner(owner_email)

    async def create(
        self,
        owner_email: str,
        name: str,
        rate_limit: int | None = None,
    ) -> ApiKey:
        """Create a new key.

        Args:
            owner_email: Owning account
            name: Display name (must not be blank)
            rate_limit: Usage ceiling (defaults to config)

        Returns:
            Created key including its secret

        Raises:
            ValidationError: On blank name or out-of-range rate limit
        """
        clean_name = self._clean_name(name)
        limit = self._resolve_rate_limit(rate_limit)

        for attempt in range(1, _MAX_SECRET_ATTEMPTS + 1):
            secret = generate_secret()
            api_key = ApiKey(
                id=str(uuid.uuid4()),
                owner_email=owner_email,
                name=clean_name,
                secret=secret,
                masked_secret=mask_secret(secret),
                usage=0,
                rate_limit=limit,
                created_at=utcnow(),
            )
            try:
                created = await self._store.insert(api_key)
            except DuplicateSecretError:
                self._log.error(
                    "api_key.secret_collision",
                    owner=owner_email,
                    attempt=attempt,
                )
                continue

            self._log.info(
                "api_key.create",
                key_id=created.id,
                owner=owner_email,
                masked_secret=created.masked_secret,
                rate_limit=limit,
            )
            return created

        raise DuplicateSecretError(
            f"Could not generate a unique secret after {_MAX_SECRET_ATTEMPTS} attempts"
        )

    async def get(self, owner_email: str, key_id: str) -> ApiKey:
        """Get one of the owner's keys.

        Raises:
            NotFoundError: If no key matches both id and owner
        """
        api_key = await self._store.get(key_id, owner_email)
        if api_key is None:
            raise NotFoundError(f"API key not found: {key_id}")
        return api_key

    async def rename(self, owner_email: str, key_id: str, new_name: str) -> ApiKey:
        """Rename one of the owner's keys.

        Raises:
            ValidationError: If the new name is blank
            NotFoundError: If no key matches both id and owner
        """
        clean_name = self._clean_name(new_name)
        api_key = await self._store.rename(key_id, owner_email, clean_name)
        if api_key is None:
            raise NotFoundError(f"API key not found: {key_id}")

        self._log.info("api_key.rename", key_id=key_id, owner=owner_email)
        return api_key

    async def delete(self, owner_email: str, key_id: str) -> None:
        """Hard delete one of the owner's keys.

        Raises:
            NotFoundError: If no key matches both id and owner
        """
        deleted = await self._store.delete(key_id, owner_email)
        if not deleted:
            raise NotFoundError(f"API key not found: {key_id}")

        self._log.info("api_key.delete", key_id=key_id, owner=owner_email)

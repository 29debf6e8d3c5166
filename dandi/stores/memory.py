"""In-memory key store.

Process-local and lost on restart. Rows are copied on the way in and out so
callers never share mutable state with the store.
"""

from __future__ import annotations

import asyncio

from dandi.models.api_key import ApiKey
from dandi.stores.base import DuplicateSecretError, KeyStore


def _copy(api_key: ApiKey) -> ApiKey:
    return ApiKey(**api_key.model_dump())


class InMemoryKeyStore(KeyStore):
    """KeyStore keeping rows in a dict, safe for concurrent asyncio tasks."""

    def __init__(self) -> None:
        self._rows: dict[str, ApiKey] = {}
        self._lock = asyncio.Lock()

    async def get_by_secret(self, secret: str) -> ApiKey | None:
        for row in self._rows.values():
            if row.secret == secret:
                return _copy(row)
        return None

    async def get(self, key_id: str, owner_email: str) -> ApiKey | None:
        row = self._rows.get(key_id)
        if row is None or row.owner_email != owner_email:
            return None
        return _copy(row)

    async def list_by_owner(self, owner_email: str) -> list[ApiKey]:
        rows = [r for r in self._rows.values() if r.owner_email == owner_email]
        # Insertion order breaks created_at ties, newest first
        rows = list(reversed(rows))
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return [_copy(r) for r in rows]

    async def insert(self, api_key: ApiKey) -> ApiKey:
        async with self._lock:
            if any(r.secret == api_key.secret for r in self._rows.values()):
                raise DuplicateSecretError("secret already in use")
            if api_key.id in self._rows:
                raise DuplicateSecretError(f"id already in use: {api_key.id}")
            self._rows[api_key.id] = _copy(api_key)
        return _copy(api_key)

    async def rename(self, key_id: str, owner_email: str, name: str) -> ApiKey | None:
        async with self._lock:
            row = self._rows.get(key_id)
            if row is None or row.owner_email != owner_email:
                return None
            row.name = name
            return _copy(row)

    async def delete(self, key_id: str, owner_email: str) -> bool:
        async with self._lock:
            row = self._rows.get(key_id)
            if row is None or row.owner_email != owner_email:
                return False
            del self._rows[key_id]
            return True

    async def try_increment_usage(self, key_id: str) -> int | None:
        async with self._lock:
            row = self._rows.get(key_id)
            if row is None or row.usage >= row.rate_limit:
                return None
            row.usage += 1
            return row.usage

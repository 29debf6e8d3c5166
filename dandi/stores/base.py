"""KeyStore base class - storage abstraction for API key rows.

KeyStore is responsible ONLY for row persistence. It does NOT handle:
- Key generation or masking
- Rate-limit decisions
- Ownership policy beyond the predicates it is given

Owner-scoped operations take the owner email as part of the predicate; a row
that exists under another owner is indistinguishable from a missing row.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dandi.models.api_key import ApiKey


class KeyStoreError(Exception):
    """The backing store failed (connection, driver or constraint error)."""


class DuplicateSecretError(KeyStoreError):
    """Insert rejected because the secret is already in use."""


class KeyStore(ABC):
    """Abstract key store interface."""

    @abstractmethod
    async def get_by_secret(self, secret: str) -> ApiKey | None:
        """Look up a key by exact secret match (no owner scope)."""

    @abstractmethod
    async def get(self, key_id: str, owner_email: str) -> ApiKey | None:
        """Get a key matching both id and owner."""

    @abstractmethod
    async def list_by_owner(self, owner_email: str) -> list[ApiKey]:
        """List an owner's keys, newest first."""

    @abstractmethod
    async def insert(self, api_key: ApiKey) -> ApiKey:
        """Persist a new key row.

        Raises:
            DuplicateSecretError: If the secret collides with an existing row
        """

    @abstractmethod
    async def rename(self, key_id: str, owner_email: str, name: str) -> ApiKey | None:
        """Set the name of a key matching both id and owner.

        Returns:
            Updated key, or None if no row matched
        """

    @abstractmethod
    async def delete(self, key_id: str, owner_email: str) -> bool:
        """Hard delete a key matching both id and owner.

        Returns:
            True if a row was deleted
        """

    @abstractmethod
    async def try_increment_usage(self, key_id: str) -> int | None:
        """Atomically increment usage by one while ``usage < rate_limit``.

        A deleted row never matches.

        Returns:
            Usage after the increment, or None if no row was updated
        """

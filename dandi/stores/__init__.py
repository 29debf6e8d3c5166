"""Key store implementations."""

from dandi.stores.base import DuplicateSecretError, KeyStore, KeyStoreError
from dandi.stores.memory import InMemoryKeyStore
from dandi.stores.sql import SqlKeyStore

__all__ = [
    "KeyStore",
    "KeyStoreError",
    "DuplicateSecretError",
    "InMemoryKeyStore",
    "SqlKeyStore",
]

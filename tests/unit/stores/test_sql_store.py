"""Unit tests for SqlKeyStore.

Uses in-memory SQLite database for testing.
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from dandi.stores.base import DuplicateSecretError, KeyStoreError
from dandi.stores.sql import SqlKeyStore
from dandi.utils.datetime import utcnow
from tests.fakes import make_key

ALICE = "alice@example.com"
BOB = "bob@example.com"


@pytest.fixture
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Create in-memory SQLite database session for testing."""
    session_factory = sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session: AsyncSession) -> SqlKeyStore:
    return SqlKeyStore(db_session)


class TestInsertAndLookup:
    async def test_insert_then_get_by_secret(self, store: SqlKeyStore):
        await store.insert(make_key())

        row = await store.get_by_secret("dandi-aaaaaaaaa-bbbbbbbbb")

        assert row is not None
        assert row.id == "key-1"
        assert row.owner_email == ALICE

    async def test_unknown_secret(self, store: SqlKeyStore):
        assert await store.get_by_secret("dandi-zzzzzzzzz-zzzzzzzzz") is None

    async def test_duplicate_secret_rejected(self, store: SqlKeyStore):
        await store.insert(make_key(key_id="key-1"))

        with pytest.raises(DuplicateSecretError):
            await store.insert(make_key(key_id="key-2"))

        # Session is still usable after the rollback
        assert await store.get_by_secret("dandi-aaaaaaaaa-bbbbbbbbb") is not None
        assert await store.get("key-2", ALICE) is None

    async def test_get_is_owner_scoped(self, store: SqlKeyStore):
        await store.insert(make_key())

        assert await store.get("key-1", ALICE) is not None
        assert await store.get("key-1", BOB) is None


class TestListByOwner:
    async def test_newest_first(self, store: SqlKeyStore):
        now = utcnow()
        for i, name in enumerate(["old", "mid", "new"]):
            api_key = make_key(key_id=f"key-{i}", name=name, secret=f"dandi-{i:09d}-aaaaaaaaa")
            api_key.created_at = now + timedelta(seconds=i)
            await store.insert(api_key)
        await store.insert(
            make_key(key_id="bob-1", owner_email=BOB, secret="dandi-bbbbbbbbb-ccccccccc")
        )

        rows = await store.list_by_owner(ALICE)

        assert [r.name for r in rows] == ["new", "mid", "old"]


class TestRenameAndDelete:
    async def test_rename(self, store: SqlKeyStore):
        await store.insert(make_key(name="before"))

        renamed = await store.rename("key-1", ALICE, "after")

        assert renamed is not None
        assert renamed.name == "after"
        assert (await store.get("key-1", ALICE)).name == "after"

    async def test_rename_other_owner(self, store: SqlKeyStore):
        await store.insert(make_key(name="before"))

        assert await store.rename("key-1", BOB, "after") is None
        assert (await store.get("key-1", ALICE)).name == "before"

    async def test_delete(self, store: SqlKeyStore):
        await store.insert(make_key())

        assert await store.delete("key-1", ALICE) is True
        assert await store.delete("key-1", ALICE) is False
        assert await store.get_by_secret("dandi-aaaaaaaaa-bbbbbbbbb") is None

    async def test_delete_other_owner(self, store: SqlKeyStore):
        await store.insert(make_key())

        assert await store.delete("key-1", BOB) is False
        assert await store.get("key-1", ALICE) is not None


class TestTryIncrementUsage:
    """Increment guarded only by the key's rate limit."""

    async def test_increment_returns_new_usage(self, store: SqlKeyStore):
        await store.insert(make_key(usage=3, rate_limit=10))

        assert await store.try_increment_usage("key-1") == 4
        assert (await store.get("key-1", ALICE)).usage == 4

    async def test_never_exceeds_limit(self, store: SqlKeyStore):
        await store.insert(make_key(usage=4, rate_limit=5))

        assert await store.try_increment_usage("key-1") == 5
        assert await store.try_increment_usage("key-1") is None
        assert (await store.get("key-1", ALICE)).usage == 5

    async def test_missing_row_not_recreated(self, store: SqlKeyStore):
        assert await store.try_increment_usage("ghost") is None
        assert await store.get("ghost", ALICE) is None

    async def test_lookup_sees_increment_after_earlier_read(self, store: SqlKeyStore):
        """The increment bypasses the identity map; the next lookup still sees it."""
        await store.insert(make_key(usage=0, rate_limit=10))
        first = await store.get_by_secret("dandi-aaaaaaaaa-bbbbbbbbb")
        assert first.usage == 0

        assert await store.try_increment_usage("key-1") == 1

        again = await store.get_by_secret("dandi-aaaaaaaaa-bbbbbbbbb")
        assert again.usage == 1


class TestErrorTranslation:
    """SQLAlchemy failures surface as KeyStoreError."""

    async def test_lookup_failure(self, db_session: AsyncSession, store: SqlKeyStore):
        error = OperationalError("SELECT", {}, Exception("database is locked"))
        with patch.object(db_session, "execute", AsyncMock(side_effect=error)):
            with pytest.raises(KeyStoreError):
                await store.get_by_secret("dandi-aaaaaaaaa-bbbbbbbbb")

    async def test_increment_failure(self, db_session: AsyncSession, store: SqlKeyStore):
        error = OperationalError("UPDATE", {}, Exception("disk I/O error"))
        with patch.object(db_session, "execute", AsyncMock(side_effect=error)):
            with pytest.raises(KeyStoreError):
                await store.try_increment_usage("key-1")

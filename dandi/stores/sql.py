"""SQL key store backed by an async SQLAlchemy session."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from dandi.models.api_key import ApiKey
from dandi.stores.base import DuplicateSecretError, KeyStore, KeyStoreError

logger = structlog.get_logger()


@contextmanager
def _store_errors() -> Iterator[None]:
    """Translate SQLAlchemy failures into KeyStoreError."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise KeyStoreError(str(exc)) from exc


class SqlKeyStore(KeyStore):
    """KeyStore over one AsyncSession.

    A session must not be shared by concurrent tasks, so one store instance
    is created per request.
    """

    def __init__(self, db_session: AsyncSession) -> None:
        self._db = db_session
        self._log = logger.bind(store="sql")

    async def get_by_secret(self, secret: str) -> ApiKey | None:
        # populate_existing: usage may have changed since this session last saw the row
        with _store_errors():
            result = await self._db.execute(
                select(ApiKey)
                .where(ApiKey.secret == secret)
                .execution_options(populate_existing=True)
            )
            return result.scalars().first()

    async def get(self, key_id: str, owner_email: str) -> ApiKey | None:
        with _store_errors():
            result = await self._db.execute(
                select(ApiKey)
                .where(
                    ApiKey.id == key_id,
                    ApiKey.owner_email == owner_email,
                )
                .execution_options(populate_existing=True)
            )
            return result.scalars().first()

    async def list_by_owner(self, owner_email: str) -> list[ApiKey]:
        with _store_errors():
            result = await self._db.execute(
                select(ApiKey)
                .where(ApiKey.owner_email == owner_email)
                .order_by(ApiKey.created_at.desc(), ApiKey.id)
                .execution_options(populate_existing=True)
            )
            return list(result.scalars().all())

    async def insert(self, api_key: ApiKey) -> ApiKey:
        self._db.add(api_key)
        try:
            await self._db.commit()
        except IntegrityError as exc:
            await self._db.rollback()
            raise DuplicateSecretError(str(exc)) from exc
        except SQLAlchemyError as exc:
            await self._db.rollback()
            raise KeyStoreError(str(exc)) from exc
        await self._db.refresh(api_key)
        return api_key

    async def rename(self, key_id: str, owner_email: str, name: str) -> ApiKey | None:
        api_key = await self.get(key_id, owner_email)
        if api_key is None:
            return None

        with _store_errors():
            api_key.name = name
            await self._db.commit()
            await self._db.refresh(api_key)
        return api_key

    async def delete(self, key_id: str, owner_email: str) -> bool:
        with _store_errors():
            result = await self._db.execute(
                delete(ApiKey).where(
                    ApiKey.id == key_id,
                    ApiKey.owner_email == owner_email,
                )
            )
            await self._db.commit()
        return result.rowcount == 1

    async def try_increment_usage(self, key_id: str) -> int | None:
        # Single guarded statement; concurrent callers serialize on the row
        with _store_errors():
            result = await self._db.execute(
                update(ApiKey)
                .where(
                    ApiKey.id == key_id,
                    ApiKey.usage < ApiKey.rate_limit,
                )
                .values(usage=ApiKey.usage + 1)
                .returning(ApiKey.usage)
                .execution_options(synchronize_session=False)
            )
            new_usage = result.scalar_one_or_none()
            await self._db.commit()

        if new_usage is None:
            self._log.debug("store.increment_miss", key_id=key_id)
        return new_usage

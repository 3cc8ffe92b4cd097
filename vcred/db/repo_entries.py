"""Storage adapter persisting entries in a SQL table."""

from __future__ import annotations

from datetime import UTC, datetime

import structlog
from sqlalchemy import ColumnElement, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vcred.core.errors import StorageEntryAlreadyExistsError, StorageEntryNotFoundError
from vcred.db.models_entries import StorageEntryEntity

logger = structlog.get_logger(__name__)


class SqlStorageAdapter:
    """StorageAdapter backed by the ``storage_entries`` table.

    Each call runs in its own session and commits on success. Entries are
    scoped by ``store_name`` so several stores can share one database.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store_name: str,
    ) -> None:
        self._factory = session_factory
        self._store_name = store_name

    def _where(self, name: str) -> tuple[ColumnElement[bool], ColumnElement[bool]]:
        return (
            StorageEntryEntity.store_name == self._store_name,
            StorageEntryEntity.name == name,
        )

    async def _get(self, session: AsyncSession, name: str) -> StorageEntryEntity | None:
        stmt = select(StorageEntryEntity).where(*self._where(name))
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def exists(self, name: str) -> bool:
        """Return True if the store holds a row for ``name``."""
        async with self._factory() as session:
            return await self._get(session, name) is not None

    async def load(self, name: str) -> bytes | None:
        """Return the stored bytes, or None if there is no row."""
        async with self._factory() as session:
            entity = await self._get(session, name)
            return entity.data if entity is not None else None

    async def store(self, name: str, data: bytes) -> None:
        """Insert a new row for ``name``."""
        async with self._factory() as session:
            session.add(
                StorageEntryEntity(store_name=self._store_name, name=name, data=data)
            )
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise StorageEntryAlreadyExistsError(name) from exc

    async def update(self, name: str, data: bytes) -> None:
        """Replace the bytes of an existing row."""
        async with self._factory() as session:
            entity = await self._get(session, name)
            if entity is None:
                raise StorageEntryNotFoundError(name)
            entity.data = data
            entity.updated_at = datetime.now(UTC)
            await session.commit()

    async def remove(self, name: str) -> bool:
        """Delete the row for ``name`` and return whether it existed."""
        async with self._factory() as session:
            result = await session.execute(
                delete(StorageEntryEntity).where(*self._where(name))
            )
            await session.commit()
            return result.rowcount > 0

    async def list(self) -> list[bytes]:
        """Return all entries of this store, oldest first."""
        async with self._factory() as session:
            stmt = (
                select(StorageEntryEntity.data)
                .where(StorageEntryEntity.store_name == self._store_name)
                .order_by(StorageEntryEntity.created_at, StorageEntryEntity.name)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def clear(self) -> None:
        """Delete every row of this store."""
        async with self._factory() as session:
            result = await session.execute(
                delete(StorageEntryEntity).where(
                    StorageEntryEntity.store_name == self._store_name
                )
            )
            await session.commit()
        logger.debug(
            "sql_storage.cleared", store_name=self._store_name, count=result.rowcount
        )

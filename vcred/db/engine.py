"""Async SQLAlchemy engine and session factory for the SQL storage backend."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from vcred.core.settings import DatabaseSettings
from vcred.db.base import BaseEntity


def create_engine(settings: DatabaseSettings | None = None) -> AsyncEngine:
    """Create an async engine from ``VCRED_DB_*`` settings."""
    db = settings or DatabaseSettings()
    return create_async_engine(db.url, echo=db.echo)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create the storage tables if they do not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)

"""Shared test fixtures for vcred."""

import time
from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vcred.auth.jwt import Jwt
from vcred.auth.types import JwtBody, JwtHeader
from vcred.db.engine import create_schema, create_session_factory
from vcred.storage.adapters import (
    FileSystemStorageAdapter,
    MemoryStorageAdapter,
    StorageAdapterConfig,
)


@pytest.fixture(autouse=True)
def _set_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Point default storage at a temporary directory."""
    monkeypatch.setenv("VCRED_STORAGE_DIR", str(tmp_path / "default_store"))
    monkeypatch.delenv("VCRED_TOKEN_EXPIRATION_MARGIN", raising=False)


@pytest.fixture
def make_jwt():
    """Build a signed token expiring ``ttl`` seconds from now."""

    def _make(
        ttl: int = 3600,
        identity: str = "alice",
        app_id: str = "app-1",
        signature: bytes | None = b"\x01\x02\x03signature",
        exp: int | None = None,
    ) -> Jwt:
        now = int(time.time())
        header = JwtHeader(alg="VEDS512", kid="key-1")
        body = JwtBody(
            iss=f"virgil-{app_id}",
            sub=f"identity-{identity}",
            iat=now,
            exp=exp if exp is not None else now + ttl,
        )
        return Jwt(header, body, signature)

    return _make


@pytest.fixture
def memory_adapter() -> MemoryStorageAdapter:
    return MemoryStorageAdapter()


@pytest.fixture
def fs_adapter(tmp_path: Path) -> FileSystemStorageAdapter:
    return FileSystemStorageAdapter(
        StorageAdapterConfig(dir=str(tmp_path / "keys"), name="TestEntries")
    )


@pytest.fixture
async def session_factory(tmp_path: Path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Create a file-backed SQLite async session factory for tests."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'vcred.db'}", echo=False)
    await create_schema(engine)

    yield create_session_factory(engine)

    await engine.dispose()

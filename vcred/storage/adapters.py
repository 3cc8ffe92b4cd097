"""Byte-level storage adapters used by the key entry storage."""

from __future__ import annotations

import asyncio
import hashlib
import os
import shutil
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

import structlog
from pydantic import BaseModel

from vcred.core.errors import StorageEntryAlreadyExistsError, StorageEntryNotFoundError

logger = structlog.get_logger(__name__)

ENTRY_FILE_SUFFIX = ".entry"


@runtime_checkable
class StorageAdapter(Protocol):
    """Port for persisting opaque bytes under a name.

    ``store`` must raise StorageEntryAlreadyExistsError when the name is taken
    and ``update`` must raise StorageEntryNotFoundError when it is absent.
    """

    async def exists(self, name: str) -> bool: ...

    async def load(self, name: str) -> bytes | None: ...

    async def store(self, name: str, data: bytes) -> None: ...

    async def update(self, name: str, data: bytes) -> None: ...

    async def remove(self, name: str) -> bool: ...

    async def list(self) -> list[bytes]: ...

    async def clear(self) -> None: ...


class StorageAdapterConfig(BaseModel):
    """Directory and logical store name for the file-system adapter."""

    dir: str
    name: str


class MemoryStorageAdapter:
    """Keeps entries in an insertion-ordered dict for the process lifetime."""

    def __init__(self) -> None:
        self._entries: dict[str, bytes] = {}

    async def exists(self, name: str) -> bool:
        """Return True if ``name`` is stored."""
        return name in self._entries

    async def load(self, name: str) -> bytes | None:
        return self._entries.get(name)

    async def store(self, name: str, data: bytes) -> None:
        """Add a new entry; the name must be free."""
        if name in self._entries:
            raise StorageEntryAlreadyExistsError(name)
        self._entries[name] = bytes(data)

    async def update(self, name: str, data: bytes) -> None:
        """Replace an existing entry."""
        if name not in self._entries:
            raise StorageEntryNotFoundError(name)
        self._entries[name] = bytes(data)

    async def remove(self, name: str) -> bool:
        return self._entries.pop(name, None) is not None

    async def list(self) -> list[bytes]:
        """Return every entry in insertion order."""
        return list(self._entries.values())

    async def clear(self) -> None:
        self._entries.clear()


class FileSystemStorageAdapter:
    """Stores each entry as a file under ``<dir>/<name>/``.

    File names are the SHA-256 hex digest of the entry name, so arbitrary
    names are safe to use. Blocking I/O runs in worker threads.
    """

    def __init__(self, config: StorageAdapterConfig) -> None:
        self._root = Path(config.dir) / config.name

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, name: str) -> Path:
        digest = hashlib.sha256(name.encode()).hexdigest()
        return self._root / f"{digest}{ENTRY_FILE_SUFFIX}"

    async def exists(self, name: str) -> bool:
        """Return True if an entry file exists for ``name``."""
        return await asyncio.to_thread(self._path(name).is_file)

    async def load(self, name: str) -> bytes | None:
        """Return the entry bytes, or None if there is no entry."""
        return await asyncio.to_thread(self._load, self._path(name))

    async def store(self, name: str, data: bytes) -> None:
        """Create a new entry file."""
        await asyncio.to_thread(self._store, name, data)

    async def update(self, name: str, data: bytes) -> None:
        """Atomically replace an existing entry file."""
        await asyncio.to_thread(self._update, name, data)

    async def remove(self, name: str) -> bool:
        """Delete the entry file and return whether it existed."""
        return await asyncio.to_thread(self._remove, self._path(name))

    async def list(self) -> list[bytes]:
        """Return the bytes of every entry, in file name order."""
        return await asyncio.to_thread(self._list)

    async def clear(self) -> None:
        """Delete the store directory with every entry in it."""
        await asyncio.to_thread(self._clear)
        logger.debug("fs_storage.cleared", root=str(self._root))

    @staticmethod
    def _load(path: Path) -> bytes | None:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def _write_temp(self, data: bytes) -> str:
        """Write ``data`` to a new temporary file in the store directory."""
        fd, tmp_name = tempfile.mkstemp(dir=self._root, suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return tmp_name

    def _store(self, name: str, data: bytes) -> None:
        self._root.mkdir(parents=True, exist_ok=True)
        tmp_name = self._write_temp(data)
        try:
            # link fails with FileExistsError when the name is taken
            os.link(tmp_name, self._path(name))
        except FileExistsError as exc:
            raise StorageEntryAlreadyExistsError(name) from exc
        finally:
            Path(tmp_name).unlink(missing_ok=True)

    def _update(self, name: str, data: bytes) -> None:
        path = self._path(name)
        if not path.is_file():
            raise StorageEntryNotFoundError(name)
        tmp_name = self._write_temp(data)
        try:
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _clear(self) -> None:
        try:
            shutil.rmtree(self._root)
        except FileNotFoundError:
            return

    @staticmethod
    def _remove(path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def _list(self) -> list[bytes]:
        if not self._root.is_dir():
            return []
        paths = sorted(self._root.glob(f"*{ENTRY_FILE_SUFFIX}"))
        return [p.read_bytes() for p in paths]

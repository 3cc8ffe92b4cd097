"""Fernet encryption of key entry records at rest."""

from __future__ import annotations

from cryptography.fernet import Fernet

from vcred.storage.adapters import StorageAdapter


def generate_encryption_key() -> str:
    """Generate a new urlsafe base64 Fernet key."""
    return Fernet.generate_key().decode()


class EncryptedStorageAdapter:
    """Wraps a StorageAdapter and encrypts every record it writes.

    Reads raise ``cryptography.fernet.InvalidToken`` for records that were not
    written with the same key.
    """

    def __init__(self, inner: StorageAdapter, encryption_key: str) -> None:
        self._inner = inner
        self._cipher = Fernet(encryption_key.encode())

    async def exists(self, name: str) -> bool:
        return await self._inner.exists(name)

    async def load(self, name: str) -> bytes | None:
        data = await self._inner.load(name)
        if data is None:
            return None
        return self._cipher.decrypt(data)

    async def store(self, name: str, data: bytes) -> None:
        await self._inner.store(name, self._cipher.encrypt(data))

    async def update(self, name: str, data: bytes) -> None:
        await self._inner.update(name, self._cipher.encrypt(data))

    async def remove(self, name: str) -> bool:
        return await self._inner.remove(name)

    async def list(self) -> list[bytes]:
        return [self._cipher.decrypt(data) for data in await self._inner.list()]

    async def clear(self) -> None:
        await self._inner.clear()

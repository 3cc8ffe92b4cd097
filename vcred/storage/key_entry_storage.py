"""Persistence of private key bytes with optional metadata, keyed by name."""

from __future__ import annotations

import base64
import binascii

import structlog
from pydantic import BaseModel, ConfigDict

from vcred.core.errors import (
    EntryAlreadyExistsError,
    EntryNotFoundError,
    StorageEntryAlreadyExistsError,
    StorageEntryNotFoundError,
    ValidationError,
)
from vcred.core.settings import KeyStorageSettings
from vcred.storage.adapters import (
    FileSystemStorageAdapter,
    StorageAdapter,
    StorageAdapterConfig,
)
from vcred.storage.key_entry import (
    KeyEntry,
    deserialize_key_entry,
    serialize_key_entry,
    utc_now,
)

logger = structlog.get_logger(__name__)

KeyEntryMeta = dict[str, str]


class KeyEntryStorageConfig(BaseModel):
    """Where to keep key entries: a directory/name pair or a custom adapter."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    dir: str | None = None
    name: str | None = None
    adapter: StorageAdapter | None = None


def resolve_adapter(
    config: KeyEntryStorageConfig | StorageAdapter | str | None,
) -> StorageAdapter:
    """Pick the storage adapter for a KeyEntryStorage configuration."""
    if isinstance(config, StorageAdapter):
        return config
    if isinstance(config, str):
        return FileSystemStorageAdapter(StorageAdapterConfig(dir=config, name=config))

    config = config or KeyEntryStorageConfig()
    if config.adapter is not None:
        return config.adapter

    defaults = KeyStorageSettings()
    return FileSystemStorageAdapter(
        StorageAdapterConfig(
            dir=config.dir or defaults.dir,
            name=config.name or defaults.name,
        )
    )


def _require_arg(value: object, name: str) -> None:
    if not value:
        raise ValidationError(f"Argument '{name}' is required.")


def _require_prop(value: object, name: str) -> None:
    if not value:
        raise ValidationError(f"Invalid argument. Property {name} is required")


def _to_bytes(value: bytes | str) -> bytes:
    """Accept raw bytes or base64 text."""
    if not isinstance(value, (bytes, bytearray, memoryview, str)):
        raise ValidationError(
            f"Property value must be bytes or base64 text, got {type(value).__name__}"
        )
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as exc:
            raise ValidationError("Property value is not valid base64") from exc
    return bytes(value)


class KeyEntryStorage:
    """Persists private key bytes with optional user-defined metadata."""

    def __init__(
        self,
        config: KeyEntryStorageConfig | StorageAdapter | str | None = None,
    ) -> None:
        self._adapter = resolve_adapter(config)

    @property
    def adapter(self) -> StorageAdapter:
        return self._adapter

    async def exists(self, name: str) -> bool:
        """Return True if an entry named ``name`` exists."""
        _require_arg(name, "name")
        return await self._adapter.exists(name)

    async def load(self, name: str) -> KeyEntry | None:
        """Return the entry stored under ``name``, or None if there is none.

        Raises:
            InvalidEntryError: if the stored bytes are not a valid entry.
        """
        _require_arg(name, "name")
        data = await self._adapter.load(name)
        if data is None:
            return None
        return deserialize_key_entry(data)

    async def save(
        self,
        name: str,
        value: bytes | str,
        meta: KeyEntryMeta | None = None,
    ) -> KeyEntry:
        """Create a new entry.

        ``value`` is the raw key bytes or their base64 text.

        Raises:
            ValidationError: if ``name`` or ``value`` is empty.
            EntryAlreadyExistsError: if ``name`` is taken.
        """
        _require_prop(name, "name")
        _require_prop(value, "value")

        now = utc_now()
        entry = KeyEntry(
            name=name,
            value=_to_bytes(value),
            meta=meta,
            creation_date=now,
            modification_date=now,
        )
        try:
            await self._adapter.store(name, serialize_key_entry(entry))
        except StorageEntryAlreadyExistsError as exc:
            raise EntryAlreadyExistsError(name) from exc

        logger.debug("key_entry_storage.saved", name=name)
        return entry

    async def update(
        self,
        name: str,
        value: bytes | str | None = None,
        meta: KeyEntryMeta | None = None,
    ) -> KeyEntry:
        """Replace the value and/or metadata of an existing entry.

        Raises:
            ValidationError: if ``name`` is empty or neither ``value`` nor
                ``meta`` is given.
            EntryNotFoundError: if there is no entry named ``name``.
        """
        _require_prop(name, "name")
        if not (value or meta):
            raise ValidationError(
                "Invalid argument. Either `value` or `meta` property is required."
            )

        data = await self._adapter.load(name)
        if data is None:
            raise EntryNotFoundError(name)

        entry = deserialize_key_entry(data)
        updated = entry.model_copy(
            update={
                "value": _to_bytes(value) if value else entry.value,
                "meta": meta or entry.meta,
                "modification_date": utc_now(),
            }
        )
        try:
            await self._adapter.update(name, serialize_key_entry(updated))
        except StorageEntryNotFoundError as exc:
            raise EntryNotFoundError(name) from exc

        logger.debug("key_entry_storage.updated", name=name)
        return updated

    async def remove(self, name: str) -> bool:
        """Delete the entry and return whether it existed."""
        _require_arg(name, "name")
        removed = await self._adapter.remove(name)
        if removed:
            logger.debug("key_entry_storage.removed", name=name)
        return removed

    async def list(self) -> list[KeyEntry]:
        """Return every stored entry, in adapter order."""
        return [deserialize_key_entry(data) for data in await self._adapter.list()]

    async def clear(self) -> None:
        """Delete every entry."""
        await self._adapter.clear()
        logger.debug("key_entry_storage.cleared")

"""Key entry model and its persisted JSON envelope."""

import base64
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from vcred.core.errors import InvalidEntryError


def _to_camel(name: str) -> str:
    """Convert snake_case to camelCase for JSON serialization."""
    parts = name.split("_")
    return parts[0] + "".join(p.capitalize() for p in parts[1:])


def utc_now() -> datetime:
    """Current UTC time truncated to the millisecond precision of the record."""
    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def format_date(value: datetime) -> str:
    """Format a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class KeyEntry(BaseModel):
    """Private key bytes with optional user-defined metadata."""

    name: str
    value: bytes
    meta: dict[str, str] | None = None
    creation_date: datetime
    modification_date: datetime


class KeyEntryRecord(BaseModel):
    """Wire form of a key entry: value as base64 text, dates as ISO strings."""

    model_config = ConfigDict(alias_generator=_to_camel, populate_by_name=True)

    name: str = Field(min_length=1)
    meta: dict[str, str] | None = None
    creation_date: datetime
    modification_date: datetime
    value: str

    @field_serializer("creation_date", "modification_date")
    def _serialize_date(self, value: datetime) -> str:
        return format_date(value)

    @classmethod
    def from_entry(cls, entry: KeyEntry) -> "KeyEntryRecord":
        return cls(
            name=entry.name,
            meta=entry.meta,
            creation_date=entry.creation_date,
            modification_date=entry.modification_date,
            value=base64.b64encode(entry.value).decode("ascii"),
        )

    def to_entry(self) -> KeyEntry:
        return KeyEntry(
            name=self.name,
            value=base64.b64decode(self.value, validate=True),
            meta=self.meta,
            creation_date=self.creation_date,
            modification_date=self.modification_date,
        )


def serialize_key_entry(entry: KeyEntry) -> bytes:
    """Encode an entry as the UTF-8 JSON record handed to storage adapters."""
    record = KeyEntryRecord.from_entry(entry)
    return record.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


def deserialize_key_entry(data: bytes) -> KeyEntry:
    """Decode a stored record.

    Raises:
        InvalidEntryError: if the bytes are not a valid key entry record.
    """
    try:
        record = KeyEntryRecord.model_validate_json(data)
        return record.to_entry()
    except ValueError as exc:
        raise InvalidEntryError() from exc

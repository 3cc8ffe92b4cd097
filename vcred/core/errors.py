"""Error taxonomy for token handling and key entry persistence."""


class VcredError(Exception):
    """Base class for all vcred errors."""


class ValidationError(VcredError, ValueError):
    """Raised when a required argument or property is missing or empty."""


class MalformedTokenError(VcredError, ValueError):
    """Raised when a token string cannot be decoded."""

    def __init__(self, message: str = "Wrong JWT format") -> None:
        super().__init__(message)


class TokenFormatError(VcredError, ValueError):
    """Raised when a token claim lacks its required prefix."""


class KeyEntryError(VcredError):
    """Base class for errors about a specific key entry."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class EntryAlreadyExistsError(KeyEntryError):
    """Raised when saving a key entry under a name that is taken."""

    def __init__(self, name: str) -> None:
        super().__init__(name, f"Key entry {name!r} already exists")


class EntryNotFoundError(KeyEntryError):
    """Raised when updating a key entry that does not exist."""

    def __init__(self, name: str) -> None:
        super().__init__(name, f"Key entry {name!r} does not exist")


class InvalidEntryError(VcredError):
    """Raised when persisted bytes are not a well-formed key entry."""

    def __init__(self, message: str = "Invalid key entry data") -> None:
        super().__init__(message)


class StorageError(VcredError):
    """Base class for storage adapter signals."""

    def __init__(self, name: str, message: str) -> None:
        super().__init__(message)
        self.name = name


class StorageEntryAlreadyExistsError(StorageError):
    """Raised by adapters when storing under an existing name."""

    def __init__(self, name: str) -> None:
        super().__init__(name, f"Storage entry {name!r} already exists")


class StorageEntryNotFoundError(StorageError):
    """Raised by adapters when updating a missing name."""

    def __init__(self, name: str) -> None:
        super().__init__(name, f"Storage entry {name!r} not found")

"""Library settings loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict

KEY_STORAGE_DIR_DEFAULT = ".virgil_key_entries"
KEY_STORAGE_NAME_DEFAULT = "VirgilKeyEntries"
TOKEN_EXPIRATION_MARGIN_DEFAULT = 5
DATABASE_URL_DEFAULT = "sqlite+aiosqlite:///vcred.db"


class KeyStorageSettings(BaseSettings):
    """Location of the default file-system key entry store."""

    model_config = SettingsConfigDict(env_prefix="VCRED_STORAGE_")

    dir: str = KEY_STORAGE_DIR_DEFAULT
    name: str = KEY_STORAGE_NAME_DEFAULT


class TokenSettings(BaseSettings):
    """Token caching settings."""

    model_config = SettingsConfigDict(env_prefix="VCRED_TOKEN_")

    expiration_margin: int = TOKEN_EXPIRATION_MARGIN_DEFAULT


class DatabaseSettings(BaseSettings):
    """SQL storage backend connection settings."""

    model_config = SettingsConfigDict(env_prefix="VCRED_DB_")

    url: str = DATABASE_URL_DEFAULT
    echo: bool = False


class LoggingSettings(BaseSettings):
    """structlog output settings."""

    model_config = SettingsConfigDict(env_prefix="VCRED_LOG_")

    level: str = "INFO"
    json_output: bool = False

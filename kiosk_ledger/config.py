"""Application configuration objects."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class Settings(BaseSettings):
    """Pydantic settings used to configure the ledger application."""

    model_config = SettingsConfigDict(
        env_prefix="KIOSK_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = Field(
        default="Pizza Kiosk Ledger",
        description="Human friendly name for the API.",
    )
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Deployment environment flag.",
    )
    storage_path: Path = Field(
        default=Path("kiosk_ledger_data.json"),
        description="JSON file holding the persisted ledger.",
    )
    storage_key: str = Field(
        default="appData",
        description="Key under which the ledger document is stored.",
    )
    secret_key: str = Field(
        default="kiosk-ledger-secret-key",
        description="Secret used to sign import confirmation tokens.",
    )
    import_token_salt: str = Field(default="kiosk-ledger-import")
    import_token_max_age: int = Field(
        default=15 * 60,
        gt=0,
        description="Seconds an import preview stays confirmable.",
    )
    export_filename_prefix: str = Field(default="kiosk-ledger-backup")
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return normalized

    @field_validator("storage_key")
    @classmethod
    def _validate_storage_key(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("storage_key cannot be empty")
        return value.strip()


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of :class:`Settings`."""

    return Settings()


__all__ = ["Settings", "get_settings"]

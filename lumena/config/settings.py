"""
Configuration Management for Lumena

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The ledger engine itself needs almost nothing; most settings describe
where the storage collaborator keeps the state document and backups.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lumena.models.bucket import Strategy


class StorageSettings(BaseSettings):
    """Where the state document and backups live."""

    model_config = SettingsConfigDict(
        env_prefix="LUMENA_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path(".lumena"),
        description="Directory holding one JSON file per state key"
    )
    state_key: str = Field(
        default="lumena-finance-data",
        pattern=r"^[A-Za-z0-9._-]+$",
        description="Fixed logical key the ledger document is stored under"
    )
    backup_dir: Path = Field(
        default=Path("backups"),
        description="Directory where backup downloads are written"
    )


class LedgerSettings(BaseSettings):
    """Ledger behaviour defaults."""

    model_config = SettingsConfigDict(
        env_prefix="LUMENA_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_strategy: Strategy = Field(
        default=Strategy.BALANCED,
        description="Strategy pre-selected in the onboarding wizard"
    )
    default_tax_enabled: bool = Field(
        default=True,
        description="Whether the onboarding wizard starts with a Tax bucket"
    )
    transaction_id_prefix: str = Field(
        default="txn",
        pattern=r"^[a-z]+$",
        description="Prefix for generated transaction ids"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for anything that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "ledger", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

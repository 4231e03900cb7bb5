"""
Configuration Management for NixBucks

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The engine has no other knobs, so this is the one place to look when a
profile ends up somewhere unexpected.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import platformdirs
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


APP_NAME = "NixBucks"
APP_AUTHOR = "margual56"


def default_data_dir() -> Path:
    """
    Per-user data directory following the platform convention.

    ~/.local/share/NixBucks on Linux, ~/Library/Application Support/NixBucks
    on macOS, %LOCALAPPDATA%\\margual56\\NixBucks on Windows.
    """
    return Path(platformdirs.user_data_dir(APP_NAME, APP_AUTHOR))


class StorageSettings(BaseSettings):
    """Where and how profiles are stored on disk."""

    model_config = SettingsConfigDict(
        env_prefix="NIXBUCKS_STORAGE_",
        extra="ignore"
    )

    data_dir: Optional[Path] = Field(
        default=None,
        description="Override for the per-user data directory"
    )
    index_file_name: str = Field(
        default="profiles.json",
        description="Name of the registry index inside the data directory"
    )
    profile_suffix: str = Field(
        default=".json",
        description="File suffix of profile documents"
    )
    audit_file_name: str = Field(
        default="audit.jsonl",
        description="Name of the append-only audit trail"
    )
    audit_enabled: bool = Field(
        default=True,
        description="Persist audit events next to the profiles"
    )
    save_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts at replacing a profile file that is locked"
    )

    @field_validator('profile_suffix')
    @classmethod
    def validate_suffix(cls, v: str) -> str:
        if not v.startswith("."):
            raise ValueError(f"Profile suffix must start with a dot: {v!r}")
        return v

    @property
    def resolved_data_dir(self) -> Path:
        return self.data_dir if self.data_dir is not None else default_data_dir()


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

    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    default_profile_name: str = Field(
        default="default",
        min_length=1,
        description="Profile opened when the user has not picked one"
    )
    currency_symbol: str = Field(
        default="$",
        max_length=5,
        description="Symbol the presentation layer puts next to amounts"
    )
    projection_horizon_months: int = Field(
        default=12,
        ge=1,
        le=600,
        description="Default length of a forward projection"
    )


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries holding the message for failures.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

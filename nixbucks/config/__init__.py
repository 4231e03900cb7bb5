"""Configuration package."""

from nixbucks.config.settings import (
    APP_AUTHOR,
    APP_NAME,
    AppSettings,
    Settings,
    StorageSettings,
    default_data_dir,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "APP_AUTHOR",
    "APP_NAME",
    "AppSettings",
    "Settings",
    "StorageSettings",
    "default_data_dir",
    "get_settings",
    "validate_all_settings",
]

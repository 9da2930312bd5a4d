"""Configuration package."""

from src.config.settings import (
    AccountSettings,
    ApiSettings,
    AppSettings,
    ExportSettings,
    Settings,
    get_settings,
    validate_all_settings,
)
from src.config.log import configure_logging, get_logger

__all__ = [
    "AccountSettings",
    "ApiSettings",
    "AppSettings",
    "ExportSettings",
    "Settings",
    "configure_logging",
    "get_logger",
    "get_settings",
    "validate_all_settings",
]

"""Configuration package."""

from chitfund.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    LedgerSettings,
    Settings,
    StorageBackend,
    UserPrizePolicy,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "LedgerSettings",
    "Settings",
    "StorageBackend",
    "UserPrizePolicy",
    "get_settings",
    "validate_all_settings",
]

"""
Configuration Management for Chit Fund Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Ledger policy knobs (discount cap, user prize policy) sit next to the
storage settings so every tunable rule is visible in one place.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class UserPrizePolicy(str, Enum):
    """
    How a second "I won this month" claim within one fund is treated.

    PERMISSIVE: flagged as a warning, still saved (family members may
    share one tracker and each win once).
    STRICT: rejected outright.
    """
    PERMISSIVE = "permissive"
    STRICT = "strict"


class StorageBackend(str, Enum):
    """Record store used by the service layer."""
    MEMORY = "memory"
    GOOGLE_SHEETS = "google_sheets"


class LedgerSettings(BaseSettings):
    """Chit fund accounting policy."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    discount_cap_ratio: float = Field(
        default=0.4,
        gt=0.0,
        le=1.0,
        description="Conventional maximum discount as a fraction of the chit value"
    )
    max_conventional_commission_rate: float = Field(
        default=0.10,
        ge=0.0,
        le=1.0,
        description="Commission rate above which a fund definition is flagged"
    )
    user_prize_policy: UserPrizePolicy = Field(
        default=UserPrizePolicy.PERMISSIVE,
        description="Treatment of a second prized-month claim by the user"
    )
    currency_symbol: str = Field(
        default="₹",
        max_length=5,
        description="Currency symbol used in user-facing messages"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    funds_sheet_name: str = Field(
        default="ChitFunds",
        description="Name of the sheet for chit fund definitions"
    )
    auctions_sheet_name: str = Field(
        default="ChitAuctions",
        description="Name of the sheet for auction records"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    storage_backend: StorageBackend = Field(
        default=StorageBackend.MEMORY,
        description="Which record store to use"
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
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.ledger
        results["ledger"] = True
    except Exception as e:
        results["ledger"] = False
        results["ledger_error"] = str(e)

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results

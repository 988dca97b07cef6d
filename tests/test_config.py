"""
Tests for environment-driven configuration.
"""

import pytest

from chitfund.config import (
    AppSettings,
    LedgerSettings,
    StorageBackend,
    UserPrizePolicy,
    get_settings,
    validate_all_settings,
)
from chitfund.validation import AuctionValidator


class TestLedgerSettings:
    """Tests for LedgerSettings."""

    def test_defaults(self):
        settings = LedgerSettings()
        assert settings.discount_cap_ratio == 0.4
        assert settings.max_conventional_commission_rate == 0.10
        assert settings.user_prize_policy == UserPrizePolicy.PERMISSIVE
        assert settings.currency_symbol == "₹"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("LEDGER_DISCOUNT_CAP_RATIO", "0.3")
        monkeypatch.setenv("LEDGER_USER_PRIZE_POLICY", "strict")

        settings = LedgerSettings()

        assert settings.discount_cap_ratio == 0.3
        assert settings.user_prize_policy == UserPrizePolicy.STRICT

    def test_cap_ratio_out_of_bounds(self, monkeypatch):
        monkeypatch.setenv("LEDGER_DISCOUNT_CAP_RATIO", "1.5")
        with pytest.raises(ValueError):
            LedgerSettings()

    def test_validator_picks_up_policy(self, monkeypatch):
        monkeypatch.setenv("LEDGER_USER_PRIZE_POLICY", "strict")
        assert AuctionValidator(settings=LedgerSettings()).user_prize_policy == UserPrizePolicy.STRICT

    def test_explicit_policy_wins(self):
        validator = AuctionValidator(
            settings=LedgerSettings(), user_prize_policy=UserPrizePolicy.STRICT
        )
        assert validator.user_prize_policy == UserPrizePolicy.STRICT


class TestAppSettings:
    """Tests for AppSettings and the settings helpers."""

    def test_storage_backend_from_env(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "google_sheets")
        assert AppSettings().storage_backend == StorageBackend.GOOGLE_SHEETS

    def test_validate_all_settings_without_sheets(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        get_settings.cache_clear()

        results = validate_all_settings()

        assert results["ledger"] is True
        assert results["app"] is True
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""Shared fixtures: the reference fund used throughout the test suite."""

from datetime import date
from decimal import Decimal

import pytest

from chitfund.config import LedgerSettings
from chitfund.models.fund import AuctionRecord, ChitFund


@pytest.fixture
def ledger_settings():
    """Default policy, independent of the environment."""
    return LedgerSettings()


@pytest.fixture
def fund():
    """₹1,00,000 chit, ₹5,000 x 20 months, 5% foreman commission."""
    return ChitFund(
        name="Family Chit",
        total_amount=Decimal("100000"),
        monthly_installment=Decimal("5000"),
        duration_months=20,
        foreman_commission_rate=Decimal("0.05"),
        start_date=date(2024, 1, 15),
    )


@pytest.fixture
def make_auction(fund):
    """Factory for auctions belonging to `fund`."""
    def _make(month_number, discount, is_user_prized=False, **kwargs):
        return AuctionRecord(
            chit_fund_id=kwargs.pop("chit_fund_id", fund.id),
            month_number=month_number,
            auction_date=kwargs.pop("auction_date", fund.expected_auction_date(max(month_number, 1))),
            discount_amount=Decimal(str(discount)),
            prized_subscriber_name=kwargs.pop("prized_subscriber_name", f"Member {month_number}"),
            is_user_prized=is_user_prized,
            **kwargs,
        )
    return _make

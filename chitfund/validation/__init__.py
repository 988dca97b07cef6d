"""Validation package."""

from chitfund.validation.validator import (
    AuctionValidator,
    FundValidator,
    validate_fund,
    validate_new_auction,
)

__all__ = [
    "AuctionValidator",
    "FundValidator",
    "validate_fund",
    "validate_new_auction",
]

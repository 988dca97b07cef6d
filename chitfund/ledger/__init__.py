"""Auction ledger package."""

from chitfund.ledger.engine import (
    LedgerError,
    LedgerPreconditionError,
    available_months,
    build_fund_detail,
    build_schedule,
    compute_fund_summary,
    compute_month_metrics,
)

__all__ = [
    "LedgerError",
    "LedgerPreconditionError",
    "available_months",
    "build_fund_detail",
    "build_schedule",
    "compute_fund_summary",
    "compute_month_metrics",
]

"""
Auction Ledger Engine

DESIGN DECISION: All chit fund arithmetic lives HERE and nowhere else.
The fund list, the detail view and the service layer call these
functions; none of them recomputes a dividend inline.

The engine is pure:
- No I/O, no logging, no storage access
- Never mutates its inputs
- Same inputs always give the same Decimal outputs

It does NOT enforce admission rules (month range, duplicates, caps).
That is the validator's job and happens before a record is written.
A negative dividend (commission larger than the bid) is computed as-is
and surfaced through MonthMetrics.is_abnormal.
"""

from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from chitfund.models.fund import (
    AuctionRecord,
    ChitFund,
    FundDetail,
    FundSummary,
    MonthMetrics,
)


class LedgerError(Exception):
    """Base exception for ledger computations."""
    pass


class LedgerPreconditionError(LedgerError):
    """Caller handed the ledger inputs that can never be valid (a bug, not user input)."""
    pass


def _check_fund(fund: ChitFund) -> None:
    if fund.duration_months <= 0:
        raise LedgerPreconditionError(
            f"Fund {fund.id} has non-positive duration_months ({fund.duration_months})"
        )


def _check_ownership(fund: ChitFund, auction: AuctionRecord) -> None:
    if auction.chit_fund_id != fund.id:
        raise LedgerPreconditionError(
            f"Auction {auction.id} belongs to fund {auction.chit_fund_id}, not {fund.id}"
        )


def _canonical_order(auctions: Iterable[AuctionRecord]) -> list[AuctionRecord]:
    # Decimal sums are only order-free while no intermediate result rounds,
    # so fold in one fixed order.
    return sorted(auctions, key=lambda a: (a.month_number, str(a.id)))


def compute_month_metrics(fund: ChitFund, auction: AuctionRecord) -> MonthMetrics:
    """
    Compute the financial effect of one settled auction.

    Steps, in order:
        foreman_commission  = total_amount * foreman_commission_rate
        dividend_pool       = discount_amount - foreman_commission
        dividend_per_member = dividend_pool / duration_months
        prize_amount        = total_amount - discount_amount
        net_contribution    = monthly_installment - dividend_per_member

    If the user won this month they receive prize_amount plus their own
    dividend share and still pay the full, undiscounted installment.

    Raises:
        LedgerPreconditionError: non-positive duration or foreign auction
    """
    _check_fund(fund)
    _check_ownership(fund, auction)

    foreman_commission = fund.total_amount * fund.foreman_commission_rate
    dividend_pool = auction.discount_amount - foreman_commission
    dividend_per_member = dividend_pool / Decimal(fund.duration_months)
    prize_amount = fund.total_amount - auction.discount_amount
    net_contribution = fund.monthly_installment - dividend_per_member

    cash_in: Optional[Decimal] = None
    cash_out: Optional[Decimal] = None
    if auction.is_user_prized:
        cash_in = prize_amount + dividend_per_member
        cash_out = fund.monthly_installment

    return MonthMetrics(
        auction_id=auction.id,
        month_number=auction.month_number,
        foreman_commission=foreman_commission,
        dividend_pool=dividend_pool,
        dividend_per_member=dividend_per_member,
        prize_amount=prize_amount,
        net_contribution=net_contribution,
        is_user_prized=auction.is_user_prized,
        cash_in=cash_in,
        cash_out=cash_out,
    )


def compute_fund_summary(
    fund: ChitFund,
    auctions: Iterable[AuctionRecord],
) -> FundSummary:
    """
    Fold per-month metrics into a lifetime summary for the tracked user.

    Every month adds the foreman's commission and the user's dividend
    share, including the user's own prized month. The prized month adds
    the prize and the full installment; any other month adds the
    dividend-reduced net contribution.

    Order of `auctions` does not matter.
    """
    _check_fund(fund)
    ordered = _canonical_order(auctions)

    total_user_contribution = Decimal("0")
    total_user_dividend = Decimal("0")
    total_user_prize = Decimal("0")
    total_foreman_commission = Decimal("0")

    for auction in ordered:
        metrics = compute_month_metrics(fund, auction)

        total_foreman_commission += metrics.foreman_commission
        total_user_dividend += metrics.dividend_per_member

        if auction.is_user_prized:
            total_user_prize += metrics.prize_amount
            total_user_contribution += fund.monthly_installment
        else:
            total_user_contribution += metrics.net_contribution

    return FundSummary(
        fund_id=fund.id,
        total_user_contribution=total_user_contribution,
        total_user_dividend=total_user_dividend,
        total_user_prize=total_user_prize,
        total_foreman_commission=total_foreman_commission,
        months_recorded=len(ordered),
        months_remaining=fund.duration_months - len(ordered),
        user_prized=any(a.is_user_prized for a in ordered),
    )


def build_schedule(
    fund: ChitFund,
    auctions: Iterable[AuctionRecord],
) -> list[MonthMetrics]:
    """Per-month metrics sorted by month number (the auction history table)."""
    return [compute_month_metrics(fund, a) for a in _canonical_order(auctions)]


def available_months(
    fund: ChitFund,
    auctions: Iterable[AuctionRecord],
    editing: Optional[UUID] = None,
) -> list[int]:
    """
    Months that can still take an auction.

    When `editing` names an existing auction, its own month stays available
    so the edit form can keep it selected.
    """
    taken = {a.month_number for a in auctions if a.id != editing}
    return [m for m in range(1, fund.duration_months + 1) if m not in taken]


def build_fund_detail(
    fund: ChitFund,
    auctions: Iterable[AuctionRecord],
) -> FundDetail:
    """
    Compute everything the detail view needs from one consistent snapshot.

    Auctions belonging to other funds are dropped, not rejected, since the
    record store may hand over an account-wide list.
    """
    own = _canonical_order(a for a in auctions if a.chit_fund_id == fund.id)
    return FundDetail(
        fund=fund,
        auctions=own,
        schedule=build_schedule(fund, own),
        summary=compute_fund_summary(fund, own),
    )

"""
Core Data Models for Chit Fund Ledger

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and rendering
4. Carry ledger output as plain data with no behavior of its own

DESIGN DECISION: Money is always Decimal, never float.
Ledger results must be bit-identical across recomputations and a chit
fund's rupee figures must add up exactly on the summary cards.

DESIGN DECISION: AuctionRecord does NOT bound month_number or
discount_amount. A candidate with month 21 on a 20-month fund must be
constructible so the admission policy can REPORT it, not crash on it.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from dateutil.relativedelta import relativedelta
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class FundStatus(str, Enum):
    """Lifecycle status of a chit fund."""
    ACTIVE = "active"
    CLOSED = "closed"


class AdmissionStatus(str, Enum):
    """
    Outcome of the auction admission policy.

    ACCEPTED_WITH_WARNING still permits the save. Only REJECTED blocks it.
    """
    ACCEPTED = "accepted"
    ACCEPTED_WITH_WARNING = "accepted_with_warning"
    REJECTED = "rejected"


# =============================================================================
# RECORD MODELS - what the record store serves
# =============================================================================

class ChitFund(BaseModel):
    """
    A rotating savings fund definition.

    duration_months doubles as the member count: one member takes the
    pot each month until everyone has been prized once.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: UUID = Field(
        default_factory=uuid4,
        description="Unique fund ID"
    )
    owner_id: Optional[UUID] = Field(
        default=None,
        description="Account that owns this fund"
    )

    # Timestamps
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the fund was created"
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last update timestamp"
    )

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display label"
    )
    total_amount: Annotated[
        Decimal,
        Field(gt=0, description="Gross chit value paid to the prized subscriber before deductions")
    ]
    monthly_installment: Annotated[
        Decimal,
        Field(gt=0, description="Nominal amount each member owes per cycle")
    ]
    duration_months: int = Field(
        ...,
        gt=0,
        description="Number of cycles, equal to the number of members"
    )
    foreman_commission_rate: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        le=1,
        description="Fraction of total_amount retained by the foreman each month"
    )
    start_date: date = Field(
        ...,
        description="Date the fund began"
    )
    status: FundStatus = Field(
        default=FundStatus.ACTIVE,
        description="Fund status"
    )

    @property
    def end_date(self) -> date:
        """Last day of the fund (inclusive)."""
        return self.start_date + relativedelta(months=self.duration_months) - relativedelta(days=1)

    def expected_auction_date(self, month_number: int) -> date:
        """Calendar date on which the given month's auction is due."""
        return self.start_date + relativedelta(months=month_number - 1)


class AuctionRecord(BaseModel):
    """
    One settled month of a chit fund.

    Owned by its fund and deleted with it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique auction ID"
    )
    chit_fund_id: UUID = Field(
        ...,
        description="Fund this auction belongs to"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    updated_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    month_number: int = Field(
        ...,
        description="Cycle number, admissible range is 1..duration_months"
    )
    auction_date: date = Field(
        ...,
        description="Date the auction settled"
    )
    discount_amount: Decimal = Field(
        ...,
        description="Total amount bid away from the chit value this month"
    )
    prized_subscriber_name: str = Field(
        default="",
        max_length=100,
        description="Name of this month's winner"
    )
    is_user_prized: bool = Field(
        default=False,
        description="Did the tracked user win this month?"
    )


# =============================================================================
# LEDGER OUTPUT MODELS
# =============================================================================

class MonthMetrics(BaseModel):
    """
    Financial effect of a single settled auction.

    cash_in / cash_out are only populated for the user's prized month.
    On every other month the user's outflow is net_contribution.
    """

    auction_id: UUID
    month_number: int

    foreman_commission: Decimal
    dividend_pool: Decimal
    dividend_per_member: Decimal
    prize_amount: Decimal
    net_contribution: Decimal = Field(
        ...,
        description="What a non-prized member pays this month"
    )

    is_user_prized: bool = False
    cash_in: Optional[Decimal] = None
    cash_out: Optional[Decimal] = None

    @property
    def user_net_outflow(self) -> Decimal:
        """Money the user is out of pocket this month (negative = took money home)."""
        if self.is_user_prized:
            return self.cash_out - self.cash_in
        return self.net_contribution

    @property
    def is_abnormal(self) -> bool:
        """Commission exceeded the bid, so the dividend went negative."""
        return self.dividend_pool < 0


class FundSummary(BaseModel):
    """Lifetime rollup of a fund from the tracked user's perspective."""

    fund_id: UUID

    total_user_contribution: Decimal
    total_user_dividend: Decimal
    total_user_prize: Decimal
    total_foreman_commission: Decimal

    months_recorded: int = Field(ge=0)
    months_remaining: int
    user_prized: bool

    @property
    def is_fully_recorded(self) -> bool:
        return self.months_remaining <= 0

    @property
    def net_cash_position(self) -> Decimal:
        """Prize received minus everything paid in so far."""
        return self.total_user_prize - self.total_user_contribution


class FundDetail(BaseModel):
    """Everything the fund detail view renders, computed from one snapshot."""

    fund: ChitFund
    auctions: list[AuctionRecord] = Field(default_factory=list)
    schedule: list[MonthMetrics] = Field(default_factory=list)
    summary: FundSummary


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'out_of_range', 'duplicate', 'exceeds_cap')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class AuctionValidationResult(BaseModel):
    """
    Result of the auction admission policy.

    Hard flags (out_of_range, month_number_in_use, negative_discount,
    fund_fully_recorded) reject the candidate. Advisory flags only warn.
    user_prize_already_claimed is hard or advisory depending on policy.
    """

    auction_id: UUID
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    status: AdmissionStatus
    ok: bool = Field(
        ...,
        description="May the caller persist the candidate?"
    )
    is_edit: bool = Field(
        default=False,
        description="Was the candidate an edit of an existing auction?"
    )

    # Hard violations
    out_of_range: bool = False
    month_number_in_use: bool = False
    negative_discount: bool = False
    fund_fully_recorded: bool = False

    # Advisory
    discount_exceeds_cap: bool = False
    discount_exceeds_total: bool = False
    user_prize_already_claimed: bool = False

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def rejection_reasons(self) -> list[str]:
        """issue_type of every blocking issue."""
        return [issue.issue_type for issue in self.issues if issue.severity == "error"]


class FundValidationResult(BaseModel):
    """Result of validating a fund definition against its recorded auctions."""

    fund_id: UUID
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    ok: bool
    duration_locked: bool = False
    duration_below_recorded: bool = False
    auctions_beyond_duration: bool = False
    commission_above_convention: bool = False
    installment_mismatch: bool = False

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

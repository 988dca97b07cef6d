"""
Auction Admission Policy and Fund Validation

DESIGN DECISION: Validation problems are RETURNED, never raised.
A result carries every flag that fired plus a tagged status:

    ACCEPTED               - nothing to report
    ACCEPTED_WITH_WARNING  - advisory issues only, the save goes ahead
    REJECTED               - at least one hard violation, do not persist

HARD (severity="error"):
- month_number outside 1..duration_months
- month_number already taken by another auction of the fund
- negative discount
- new auction on a fund that is already fully recorded
- second user prize claim, under the STRICT policy only

ADVISORY (severity="warning"):
- discount above the conventional cap (40% of the chit value by default)
- discount above the chit value itself (prize would go negative)
- second user prize claim, under the PERMISSIVE policy

The discount cap is advisory because real caps vary by jurisdiction and
by fund agreement. The user decides; we only warn.

The only thing that raises is a precondition violation (a candidate
belonging to another fund), because that is a caller bug.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to act on.
"""

from decimal import Decimal
from typing import Iterable, Optional

from chitfund.config import LedgerSettings, UserPrizePolicy, get_settings
from chitfund.ledger import LedgerPreconditionError
from chitfund.models.fund import (
    AdmissionStatus,
    AuctionRecord,
    AuctionValidationResult,
    ChitFund,
    FundValidationResult,
    ValidationIssue,
)


class AuctionValidator:
    """
    Checks a candidate auction against a snapshot of its fund's auctions.

    An edit is recognised by the candidate's id already being present in
    the snapshot; the record being edited is then ignored for the
    duplicate-month and fully-recorded checks.
    """

    def __init__(
        self,
        settings: Optional[LedgerSettings] = None,
        user_prize_policy: Optional[UserPrizePolicy] = None,
    ):
        """
        Initialize validator.

        Args:
            settings: Ledger policy. Loaded from the environment if None.
            user_prize_policy: Overrides settings.user_prize_policy.
        """
        self._settings = settings or get_settings().ledger
        self._user_prize_policy = user_prize_policy or self._settings.user_prize_policy

    @property
    def user_prize_policy(self) -> UserPrizePolicy:
        return self._user_prize_policy

    def _money(self, amount: Decimal) -> str:
        return f"{self._settings.currency_symbol}{amount:,.2f}"

    def validate_new_auction(
        self,
        fund: ChitFund,
        auctions: Iterable[AuctionRecord],
        candidate: AuctionRecord,
    ) -> AuctionValidationResult:
        """
        Run the admission policy for a candidate auction.

        Args:
            fund: The fund the candidate belongs to
            auctions: Every auction currently recorded (other funds are ignored)
            candidate: The auction about to be saved (new or edited)

        Returns:
            AuctionValidationResult with all flags and issues

        Raises:
            LedgerPreconditionError: candidate belongs to a different fund
        """
        if candidate.chit_fund_id != fund.id:
            raise LedgerPreconditionError(
                f"Candidate auction belongs to fund {candidate.chit_fund_id}, not {fund.id}"
            )

        existing = [a for a in auctions if a.chit_fund_id == fund.id]
        is_edit = any(a.id == candidate.id for a in existing)
        others = [a for a in existing if a.id != candidate.id]

        issues: list[ValidationIssue] = []
        flags: dict[str, bool] = {}

        # Fully recorded funds take edits only
        if not is_edit and len(existing) >= fund.duration_months:
            flags["fund_fully_recorded"] = True
            issues.append(ValidationIssue(
                field="chit_fund_id",
                issue_type="fund_fully_recorded",
                message=(
                    f"All {fund.duration_months} auction months have already been recorded"
                ),
                severity="error",
                suggested_fix="Edit or delete an existing month instead",
            ))

        # Month range
        if not 1 <= candidate.month_number <= fund.duration_months:
            flags["out_of_range"] = True
            issues.append(ValidationIssue(
                field="month_number",
                issue_type="out_of_range",
                message=(
                    f"Month {candidate.month_number} is outside this fund's "
                    f"1-{fund.duration_months} month range"
                ),
                severity="error",
                suggested_fix=f"Pick a month between 1 and {fund.duration_months}",
            ))

        # Month uniqueness
        if any(a.month_number == candidate.month_number for a in others):
            flags["month_number_in_use"] = True
            issues.append(ValidationIssue(
                field="month_number",
                issue_type="month_number_in_use",
                message=f"Auction for Month {candidate.month_number} already exists",
                severity="error",
                suggested_fix="Edit the existing record for that month instead",
            ))

        # Discount sign
        if candidate.discount_amount < 0:
            flags["negative_discount"] = True
            issues.append(ValidationIssue(
                field="discount_amount",
                issue_type="negative_discount",
                message="Discount amount must be zero or more",
                severity="error",
                suggested_fix="Enter the total amount bid away from the chit value",
            ))

        # Conventional discount cap (advisory)
        cap = fund.total_amount * Decimal(str(self._settings.discount_cap_ratio))
        if candidate.discount_amount > cap:
            flags["discount_exceeds_cap"] = True
            issues.append(ValidationIssue(
                field="discount_amount",
                issue_type="discount_exceeds_cap",
                message=(
                    f"Discount amount exceeds the typical maximum limit "
                    f"({self._money(cap)})"
                ),
                severity="warning",
                suggested_fix="Please verify the bid amount",
            ))

        # Discount above the pot (advisory, arithmetic still runs)
        if candidate.discount_amount > fund.total_amount:
            flags["discount_exceeds_total"] = True
            issues.append(ValidationIssue(
                field="discount_amount",
                issue_type="discount_exceeds_total",
                message=(
                    f"Discount ({self._money(candidate.discount_amount)}) is larger than "
                    f"the chit value ({self._money(fund.total_amount)}); "
                    "the prize amount will be negative"
                ),
                severity="warning",
                suggested_fix="Check that the discount was entered for the whole pot",
            ))

        # Second prize claim
        if candidate.is_user_prized and any(a.is_user_prized for a in others):
            flags["user_prize_already_claimed"] = True
            strict = self._user_prize_policy == UserPrizePolicy.STRICT
            issues.append(ValidationIssue(
                field="is_user_prized",
                issue_type="user_prize_already_claimed",
                message="You are already recorded as the prized subscriber in another month",
                severity="error" if strict else "warning",
                suggested_fix="Untick 'I was the prized subscriber' unless you won twice",
            ))

        has_errors = any(issue.severity == "error" for issue in issues)
        warnings = [issue.message for issue in issues if issue.severity == "warning"]

        if has_errors:
            status = AdmissionStatus.REJECTED
        elif warnings:
            status = AdmissionStatus.ACCEPTED_WITH_WARNING
        else:
            status = AdmissionStatus.ACCEPTED

        return AuctionValidationResult(
            auction_id=candidate.id,
            status=status,
            ok=not has_errors,
            is_edit=is_edit,
            issues=issues,
            warnings=warnings,
            **flags,
        )

    def validate_auction_edit(
        self,
        fund: ChitFund,
        auctions: Iterable[AuctionRecord],
        candidate: AuctionRecord,
    ) -> AuctionValidationResult:
        """Same policy as validate_new_auction; the candidate must carry the edited record's id."""
        return self.validate_new_auction(fund, auctions, candidate)

    def get_user_friendly_summary(
        self,
        result: AuctionValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of an admission result.

        This is what we show next to the record-auction form.
        """
        if result.status == AdmissionStatus.ACCEPTED:
            return "✅ All checks passed."

        lines = []

        if not result.ok:
            lines.append("❌ This auction cannot be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        if result.ok:
            lines.append("")
            lines.append("The auction was saved, but please double-check the figures.")

        return "\n".join(lines)


class FundValidator:
    """Checks a fund definition (new or edited) against its recorded auctions."""

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    def validate(
        self,
        fund: ChitFund,
        auctions: Iterable[AuctionRecord] = (),
        stored: Optional[ChitFund] = None,
    ) -> FundValidationResult:
        """
        Validate a fund definition.

        Args:
            fund: New or edited fund definition
            auctions: Auctions recorded against the fund
            stored: The fund as currently persisted, when this is an edit

        Checks:
        - duration unchanged once any auction exists (hard)
        - duration not reduced below the recorded auction count (hard)
        - no recorded auction beyond the new duration (hard)
        - commission rate above convention (advisory)
        - installment x duration differing from the chit value (advisory)
        """
        existing = [a for a in auctions if a.chit_fund_id == fund.id]
        issues: list[ValidationIssue] = []
        flags: dict[str, bool] = {}

        # Every recorded dividend was divided by the stored duration
        if existing and stored is not None and stored.duration_months != fund.duration_months:
            flags["duration_locked"] = True
            issues.append(ValidationIssue(
                field="duration_months",
                issue_type="duration_locked",
                message=(
                    f"Duration is fixed at {stored.duration_months} months once auctions "
                    f"are recorded ({len(existing)} so far)"
                ),
                severity="error",
                suggested_fix=f"Keep the duration at {stored.duration_months} months",
            ))

        if len(existing) > fund.duration_months:
            flags["duration_below_recorded"] = True
            issues.append(ValidationIssue(
                field="duration_months",
                issue_type="duration_below_recorded",
                message=(
                    f"Duration ({fund.duration_months} months) is less than the "
                    f"{len(existing)} auctions already recorded"
                ),
                severity="error",
                suggested_fix="Delete auctions first or keep the original duration",
            ))

        beyond = sorted(a.month_number for a in existing if a.month_number > fund.duration_months)
        if beyond:
            flags["auctions_beyond_duration"] = True
            issues.append(ValidationIssue(
                field="duration_months",
                issue_type="auctions_beyond_duration",
                message=f"Auctions are recorded for months beyond the new duration: {beyond}",
                severity="error",
                suggested_fix="Delete those months first",
            ))

        max_rate = Decimal(str(self._settings.max_conventional_commission_rate))
        if fund.foreman_commission_rate > max_rate:
            flags["commission_above_convention"] = True
            issues.append(ValidationIssue(
                field="foreman_commission_rate",
                issue_type="commission_above_convention",
                message=(
                    f"Foreman commission ({fund.foreman_commission_rate:.2%}) is above "
                    f"the usual {max_rate:.0%}"
                ),
                severity="warning",
                suggested_fix="Please verify the commission rate in your fund agreement",
            ))

        if fund.monthly_installment * fund.duration_months != fund.total_amount:
            flags["installment_mismatch"] = True
            issues.append(ValidationIssue(
                field="monthly_installment",
                issue_type="installment_mismatch",
                message=(
                    "Monthly installment x duration does not add up to the total amount"
                ),
                severity="warning",
                suggested_fix="Check the installment, duration and chit value",
            ))

        has_errors = any(issue.severity == "error" for issue in issues)
        return FundValidationResult(
            fund_id=fund.id,
            ok=not has_errors,
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
            **flags,
        )


def validate_new_auction(
    fund: ChitFund,
    auctions: Iterable[AuctionRecord],
    candidate: AuctionRecord,
    user_prize_policy: Optional[UserPrizePolicy] = None,
) -> AuctionValidationResult:
    """Run the admission policy with settings loaded from the environment."""
    return AuctionValidator(user_prize_policy=user_prize_policy).validate_new_auction(
        fund, auctions, candidate
    )


def validate_fund(
    fund: ChitFund,
    auctions: Iterable[AuctionRecord] = (),
    stored: Optional[ChitFund] = None,
) -> FundValidationResult:
    """Validate a fund definition with settings loaded from the environment."""
    return FundValidator().validate(fund, auctions, stored)

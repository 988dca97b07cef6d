"""
Main Orchestrator for Chit Fund Ledger

This module ties together storage, validation, the ledger and the audit
trail, and defines the end-to-end flows for:
1. Fund lifecycle (create / edit / delete with cascade)
2. Auction lifecycle (validate → persist → audit)
3. Fund detail (snapshot → ledger → render-ready FundDetail)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written without passing validation first
- Rejected records are audited, never persisted
- Warnings are audited and the record IS persisted
- All arithmetic is delegated to chitfund.ledger
"""

from typing import Optional
from uuid import UUID

import structlog

from chitfund.audit import AuditLogger, create_correlation_id
from chitfund.config import StorageBackend, get_settings
from chitfund.ledger import LedgerPreconditionError, build_fund_detail
from chitfund.models.fund import (
    AdmissionStatus,
    AuctionRecord,
    AuctionValidationResult,
    ChitFund,
    FundDetail,
    FundStatus,
    FundValidationResult,
)
from chitfund.services.storage import (
    FundStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFundStorage,
    InMemoryAuditStorage,
    InMemoryFundStorage,
    NotFoundError,
    StorageError,
)
from chitfund.validation import AuctionValidator, FundValidator


logger = structlog.get_logger()


class ServiceError(Exception):
    """Base exception for the service layer."""
    pass


class AuctionRejectedError(ServiceError):
    """An auction failed the admission policy (raised only on request)."""

    def __init__(self, result: AuctionValidationResult):
        self.result = result
        super().__init__(
            f"Auction rejected: {', '.join(result.rejection_reasons)}"
        )


class FundRejectedError(ServiceError):
    """A fund change failed validation (raised only on request)."""

    def __init__(self, result: FundValidationResult):
        self.result = result
        reasons = [i.issue_type for i in result.issues if i.severity == "error"]
        super().__init__(f"Fund rejected: {', '.join(reasons)}")


class ChitFundService:
    """
    Orchestrates every write to funds and auctions.

    Write methods return (record_or_None, validation_result). The record is
    None when validation rejected it. Pass raise_on_reject=True to get an
    exception instead.
    """

    def __init__(
        self,
        storage: FundStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        auction_validator: Optional[AuctionValidator] = None,
        fund_validator: Optional[FundValidator] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._auction_validator = auction_validator or AuctionValidator()
        self._fund_validator = fund_validator or FundValidator()

    @property
    def auction_validator(self) -> AuctionValidator:
        return self._auction_validator

    async def _storage_call(self, operation: str, coro, correlation_id: UUID):
        """Await a storage coroutine, auditing failures before re-raising."""
        try:
            return await coro
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation=operation,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

    async def _require_fund(self, fund_id: UUID, correlation_id: UUID) -> ChitFund:
        fund = await self._storage_call(
            "get_fund", self._storage.get_fund(fund_id), correlation_id
        )
        if fund is None:
            raise NotFoundError(f"Fund not found: {fund_id}")
        return fund

    # -------------------------------------------------------------------------
    # Funds
    # -------------------------------------------------------------------------

    async def create_fund(
        self,
        fund: ChitFund,
        raise_on_reject: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[ChitFund], FundValidationResult]:
        """Validate and save a new fund (it starts with zero auctions)."""
        correlation_id = correlation_id or create_correlation_id()

        result = self._fund_validator.validate(fund)
        if not result.ok:
            return await self._reject_fund(fund, result, raise_on_reject, correlation_id)

        await self._storage_call("save_fund", self._storage.save_fund(fund), correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_fund_created(
                fund_id=fund.id,
                name=fund.name,
                correlation_id=correlation_id,
            )

        return fund, result

    async def update_fund(
        self,
        fund: ChitFund,
        raise_on_reject: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[ChitFund], FundValidationResult]:
        """
        Validate an edited fund against its recorded auctions and save it.

        duration_months is locked once any auction is recorded.
        """
        correlation_id = correlation_id or create_correlation_id()

        stored = await self._require_fund(fund.id, correlation_id)
        auctions = await self._storage_call(
            "list_auctions", self._storage.list_auctions(fund.id), correlation_id
        )

        result = self._fund_validator.validate(fund, auctions, stored=stored)
        if not result.ok:
            return await self._reject_fund(fund, result, raise_on_reject, correlation_id)

        await self._storage_call("update_fund", self._storage.update_fund(fund), correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_fund_updated(
                fund_id=fund.id,
                name=fund.name,
                correlation_id=correlation_id,
            )

        return fund, result

    async def _reject_fund(
        self,
        fund: ChitFund,
        result: FundValidationResult,
        raise_on_reject: bool,
        correlation_id: UUID,
    ) -> tuple[None, FundValidationResult]:
        if self._audit_logger:
            await self._audit_logger.log_fund_rejected(
                fund_id=fund.id,
                reasons=[i.issue_type for i in result.issues if i.severity == "error"],
                correlation_id=correlation_id,
            )
        if raise_on_reject:
            raise FundRejectedError(result)
        return None, result

    async def delete_fund(
        self,
        fund_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Delete a fund together with all of its auctions.

        Returns:
            Number of auctions removed
        """
        correlation_id = correlation_id or create_correlation_id()

        removed = await self._storage_call(
            "delete_fund", self._storage.delete_fund(fund_id), correlation_id
        )

        if self._audit_logger:
            await self._audit_logger.log_fund_deleted(
                fund_id=fund_id,
                auctions_removed=removed,
                correlation_id=correlation_id,
            )

        return removed

    async def list_funds(
        self,
        owner_id: Optional[UUID] = None,
        status: Optional[FundStatus] = None,
    ) -> list[ChitFund]:
        return await self._storage.list_funds(owner_id=owner_id, status=status)

    # -------------------------------------------------------------------------
    # Auctions
    # -------------------------------------------------------------------------

    async def record_auction(
        self,
        candidate: AuctionRecord,
        raise_on_reject: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[AuctionRecord], AuctionValidationResult]:
        """
        Run the admission policy on a new auction and save it if accepted.

        A result with status ACCEPTED_WITH_WARNING is saved; the warnings are
        audited and returned so the UI can show them.
        """
        correlation_id = correlation_id or create_correlation_id()

        fund = await self._require_fund(candidate.chit_fund_id, correlation_id)
        auctions = await self._storage_call(
            "list_auctions", self._storage.list_auctions(fund.id), correlation_id
        )

        result = self._auction_validator.validate_new_auction(fund, auctions, candidate)
        if result.is_edit:
            # Same id already stored: this is an edit, not a new month
            return await self._apply_auction_update(
                fund, candidate, result, raise_on_reject, correlation_id
            )
        if not result.ok:
            return await self._reject_auction(candidate, result, raise_on_reject, correlation_id)

        await self._storage_call(
            "save_auction", self._storage.save_auction(candidate), correlation_id
        )

        if self._audit_logger:
            await self._audit_logger.log_auction_recorded(
                auction_id=candidate.id,
                fund_id=fund.id,
                month_number=candidate.month_number,
                discount=str(candidate.discount_amount),
                correlation_id=correlation_id,
            )
            await self._audit_warnings(candidate, result, correlation_id)

        return candidate, result

    async def update_auction(
        self,
        candidate: AuctionRecord,
        raise_on_reject: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[AuctionRecord], AuctionValidationResult]:
        """
        Re-run the admission policy on an edited auction and save it if accepted.

        Raises:
            NotFoundError: the auction or its fund does not exist
            LedgerPreconditionError: the edit moves the auction to another fund
        """
        correlation_id = correlation_id or create_correlation_id()

        stored = await self._storage_call(
            "get_auction", self._storage.get_auction(candidate.id), correlation_id
        )
        if stored is None:
            raise NotFoundError(f"Auction not found: {candidate.id}")
        if candidate.chit_fund_id != stored.chit_fund_id:
            raise LedgerPreconditionError(
                f"Auction {candidate.id} belongs to fund {stored.chit_fund_id}; "
                f"an edit cannot move it to {candidate.chit_fund_id}"
            )

        fund = await self._require_fund(candidate.chit_fund_id, correlation_id)
        auctions = await self._storage_call(
            "list_auctions", self._storage.list_auctions(fund.id), correlation_id
        )

        result = self._auction_validator.validate_auction_edit(fund, auctions, candidate)
        return await self._apply_auction_update(
            fund, candidate, result, raise_on_reject, correlation_id
        )

    async def _apply_auction_update(
        self,
        fund: ChitFund,
        candidate: AuctionRecord,
        result: AuctionValidationResult,
        raise_on_reject: bool,
        correlation_id: UUID,
    ) -> tuple[Optional[AuctionRecord], AuctionValidationResult]:
        if not result.ok:
            return await self._reject_auction(candidate, result, raise_on_reject, correlation_id)

        await self._storage_call(
            "update_auction", self._storage.update_auction(candidate), correlation_id
        )

        if self._audit_logger:
            await self._audit_logger.log_auction_updated(
                auction_id=candidate.id,
                fund_id=fund.id,
                month_number=candidate.month_number,
                correlation_id=correlation_id,
            )
            await self._audit_warnings(candidate, result, correlation_id)

        return candidate, result

    async def _reject_auction(
        self,
        candidate: AuctionRecord,
        result: AuctionValidationResult,
        raise_on_reject: bool,
        correlation_id: UUID,
    ) -> tuple[None, AuctionValidationResult]:
        if self._audit_logger:
            await self._audit_logger.log_auction_rejected(
                auction_id=candidate.id,
                fund_id=candidate.chit_fund_id,
                reasons=result.rejection_reasons,
                correlation_id=correlation_id,
            )
        if raise_on_reject:
            raise AuctionRejectedError(result)
        return None, result

    async def _audit_warnings(
        self,
        candidate: AuctionRecord,
        result: AuctionValidationResult,
        correlation_id: UUID,
    ) -> None:
        if result.status == AdmissionStatus.ACCEPTED_WITH_WARNING:
            await self._audit_logger.log_auction_warning(
                auction_id=candidate.id,
                fund_id=candidate.chit_fund_id,
                warnings=result.warnings,
                correlation_id=correlation_id,
            )

    async def delete_auction(
        self,
        auction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete one auction. Returns False if it did not exist."""
        correlation_id = correlation_id or create_correlation_id()

        stored = await self._storage_call(
            "get_auction", self._storage.get_auction(auction_id), correlation_id
        )
        if stored is None:
            return False

        deleted = await self._storage_call(
            "delete_auction", self._storage.delete_auction(auction_id), correlation_id
        )

        if deleted and self._audit_logger:
            await self._audit_logger.log_auction_deleted(
                auction_id=auction_id,
                fund_id=stored.chit_fund_id,
                correlation_id=correlation_id,
            )

        return deleted

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_fund_detail(
        self,
        fund_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> FundDetail:
        """
        Load one consistent snapshot of a fund and compute its detail view.

        Raises:
            NotFoundError: fund does not exist
        """
        correlation_id = correlation_id or create_correlation_id()

        fund = await self._require_fund(fund_id, correlation_id)
        auctions = await self._storage_call(
            "list_auctions", self._storage.list_auctions(fund_id), correlation_id
        )
        return build_fund_detail(fund, auctions)


def create_app_components(
    storage_backend: Optional[StorageBackend] = None,
) -> tuple[ChitFundService, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        storage_backend: Overrides the configured backend.
                    Falls back to in-memory storage if Google Sheets
                    cannot be configured.

    Returns:
        (service, sheets_client)
    """
    backend = storage_backend or get_settings().app.storage_backend

    if backend == StorageBackend.GOOGLE_SHEETS:
        try:
            sheets_client = GoogleSheetsClient()
            service = ChitFundService(
                storage=GoogleSheetsFundStorage(sheets_client),
                audit_logger=AuditLogger(GoogleSheetsAuditStorage(sheets_client)),
            )
            return service, sheets_client
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning(
                "storage_not_configured",
                backend=backend.value,
                error=str(e),
            )

    service = ChitFundService(
        storage=InMemoryFundStorage(),
        audit_logger=AuditLogger(InMemoryAuditStorage()),
    )
    return service, None

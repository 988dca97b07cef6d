"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the ledger decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just create/read/update/delete per entity type, scoped to an owner.

The store does NOT validate. Callers run the admission policy first
and only hand accepted records to save_auction / update_auction.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from chitfund.models.fund import AuctionRecord, ChitFund, FundStatus
from chitfund.models.audit import AuditEvent


class FundStorageInterface(ABC):
    """
    Abstract interface for chit fund and auction storage.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    # -------------------------------------------------------------------------
    # Funds
    # -------------------------------------------------------------------------

    @abstractmethod
    async def save_fund(self, fund: ChitFund) -> bool:
        """
        Save a new chit fund.

        Raises:
            DuplicateError: A fund with this ID already exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_fund(self, fund_id: UUID) -> Optional[ChitFund]:
        """Retrieve a fund by ID, or None if not found."""
        pass

    @abstractmethod
    async def update_fund(self, fund: ChitFund) -> bool:
        """
        Update an existing fund.

        Raises:
            NotFoundError: If fund doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_fund(self, fund_id: UUID) -> int:
        """
        Delete a fund and every auction that belongs to it.

        Returns:
            Number of auctions removed with the fund

        Raises:
            NotFoundError: If fund doesn't exist
        """
        pass

    @abstractmethod
    async def list_funds(
        self,
        owner_id: Optional[UUID] = None,
        status: Optional[FundStatus] = None,
    ) -> list[ChitFund]:
        """
        List funds with optional filters, oldest start date first.

        Args:
            owner_id: Only funds owned by this account
            status: Only funds with this status
        """
        pass

    # -------------------------------------------------------------------------
    # Auctions
    # -------------------------------------------------------------------------

    @abstractmethod
    async def save_auction(self, auction: AuctionRecord) -> bool:
        """
        Save a new auction record.

        Raises:
            NotFoundError: The owning fund doesn't exist
            DuplicateError: An auction with this ID already exists
        """
        pass

    @abstractmethod
    async def get_auction(self, auction_id: UUID) -> Optional[AuctionRecord]:
        """Retrieve an auction by ID, or None if not found."""
        pass

    @abstractmethod
    async def update_auction(self, auction: AuctionRecord) -> bool:
        """
        Update an existing auction.

        Raises:
            NotFoundError: If auction doesn't exist
        """
        pass

    @abstractmethod
    async def delete_auction(self, auction_id: UUID) -> bool:
        """
        Delete an auction by ID.

        Returns:
            True if deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def list_auctions(self, chit_fund_id: UUID) -> list[AuctionRecord]:
        """All auctions of one fund, ordered by month number."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """All events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """All events for a specific entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent audit events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass

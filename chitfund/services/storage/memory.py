"""
In-Memory Storage Implementation

Dict-backed implementation of the storage interfaces. Used by the test
suite and by the app when no Google Sheets credentials are configured.

Records are copied on the way in and on the way out, so callers can
never mutate stored state by holding on to a returned model.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from chitfund.models.fund import AuctionRecord, ChitFund, FundStatus
from chitfund.models.audit import AuditEvent
from chitfund.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    FundStorageInterface,
    NotFoundError,
)


class InMemoryFundStorage(FundStorageInterface):
    """Funds and auctions held in process memory."""

    def __init__(self):
        self._funds: dict[UUID, ChitFund] = {}
        self._auctions: dict[UUID, AuctionRecord] = {}

    async def save_fund(self, fund: ChitFund) -> bool:
        if fund.id in self._funds:
            raise DuplicateError(f"Fund already exists: {fund.id}")
        self._funds[fund.id] = fund.model_copy(deep=True)
        return True

    async def get_fund(self, fund_id: UUID) -> Optional[ChitFund]:
        fund = self._funds.get(fund_id)
        return fund.model_copy(deep=True) if fund else None

    async def update_fund(self, fund: ChitFund) -> bool:
        if fund.id not in self._funds:
            raise NotFoundError(f"Fund not found: {fund.id}")
        self._funds[fund.id] = fund.model_copy(
            update={"updated_at": datetime.utcnow()},
            deep=True,
        )
        return True

    async def delete_fund(self, fund_id: UUID) -> int:
        if fund_id not in self._funds:
            raise NotFoundError(f"Fund not found: {fund_id}")
        del self._funds[fund_id]

        owned = [aid for aid, a in self._auctions.items() if a.chit_fund_id == fund_id]
        for auction_id in owned:
            del self._auctions[auction_id]
        return len(owned)

    async def list_funds(
        self,
        owner_id: Optional[UUID] = None,
        status: Optional[FundStatus] = None,
    ) -> list[ChitFund]:
        funds = []
        for fund in self._funds.values():
            if owner_id and fund.owner_id != owner_id:
                continue
            if status and fund.status != status:
                continue
            funds.append(fund.model_copy(deep=True))

        funds.sort(key=lambda f: (f.start_date, f.name))
        return funds

    async def save_auction(self, auction: AuctionRecord) -> bool:
        if auction.chit_fund_id not in self._funds:
            raise NotFoundError(f"Fund not found: {auction.chit_fund_id}")
        if auction.id in self._auctions:
            raise DuplicateError(f"Auction already exists: {auction.id}")
        self._auctions[auction.id] = auction.model_copy(deep=True)
        return True

    async def get_auction(self, auction_id: UUID) -> Optional[AuctionRecord]:
        auction = self._auctions.get(auction_id)
        return auction.model_copy(deep=True) if auction else None

    async def update_auction(self, auction: AuctionRecord) -> bool:
        if auction.id not in self._auctions:
            raise NotFoundError(f"Auction not found: {auction.id}")
        self._auctions[auction.id] = auction.model_copy(
            update={"updated_at": datetime.utcnow()},
            deep=True,
        )
        return True

    async def delete_auction(self, auction_id: UUID) -> bool:
        return self._auctions.pop(auction_id, None) is not None

    async def list_auctions(self, chit_fund_id: UUID) -> list[AuctionRecord]:
        auctions = [
            a.model_copy(deep=True)
            for a in self._auctions.values()
            if a.chit_fund_id == chit_fund_id
        ]
        auctions.sort(key=lambda a: a.month_number)
        return auctions


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in process memory."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

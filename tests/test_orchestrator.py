"""
Flow tests for ChitFundService against in-memory storage.
"""

import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest

from chitfund.audit import AuditLogger, create_correlation_id
from chitfund.config import StorageBackend, UserPrizePolicy
from chitfund.ledger import LedgerPreconditionError
from chitfund.models.audit import AuditEventType
from chitfund.models.fund import AdmissionStatus
from chitfund.orchestrator import (
    AuctionRejectedError,
    ChitFundService,
    FundRejectedError,
    create_app_components,
)
from chitfund.services.storage import (
    InMemoryAuditStorage,
    InMemoryFundStorage,
    NotFoundError,
    StorageError,
)
from chitfund.validation import AuctionValidator, FundValidator


class FailingFundStorage(InMemoryFundStorage):
    """Record store whose writes always fail."""

    async def save_fund(self, fund):
        raise StorageError("sheet unavailable")


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def service(ledger_settings, audit_storage):
    return ChitFundService(
        storage=InMemoryFundStorage(),
        audit_logger=AuditLogger(audit_storage),
        auction_validator=AuctionValidator(settings=ledger_settings),
        fund_validator=FundValidator(settings=ledger_settings),
    )


def event_types(audit_storage, correlation_id):
    events = asyncio.run(audit_storage.get_events_by_correlation_id(correlation_id))
    return [e.event_type for e in events]


class TestFundFlows:
    """Create, edit and delete funds."""

    def test_create_fund(self, service, audit_storage, fund):
        correlation_id = create_correlation_id()

        saved, result = asyncio.run(service.create_fund(fund, correlation_id=correlation_id))

        assert saved == fund
        assert result.ok is True
        assert asyncio.run(service.list_funds()) == [fund]
        assert event_types(audit_storage, correlation_id) == [AuditEventType.FUND_CREATED]

    def test_update_fund_rejected_when_shrinking(self, service, audit_storage, fund, make_auction):
        asyncio.run(service.create_fund(fund))
        for month in range(1, 6):
            asyncio.run(service.record_auction(make_auction(month, 8000)))

        correlation_id = create_correlation_id()
        shorter = fund.model_copy(update={"duration_months": 4})
        saved, result = asyncio.run(service.update_fund(shorter, correlation_id=correlation_id))

        assert saved is None
        assert result.duration_below_recorded is True
        assert asyncio.run(service.get_fund_detail(fund.id)).fund.duration_months == 20
        assert event_types(audit_storage, correlation_id) == [AuditEventType.FUND_REJECTED]

    def test_update_fund_raise_on_reject(self, service, fund, make_auction):
        asyncio.run(service.create_fund(fund))
        asyncio.run(service.record_auction(make_auction(10, 8000)))

        shorter = fund.model_copy(update={"duration_months": 6})
        with pytest.raises(FundRejectedError) as exc_info:
            asyncio.run(service.update_fund(shorter, raise_on_reject=True))

        assert exc_info.value.result.auctions_beyond_duration is True

    def test_duration_locked_after_first_auction(self, service, audit_storage, fund, make_auction):
        """Recorded dividends must not be rescaled by a later duration change."""
        asyncio.run(service.create_fund(fund))
        asyncio.run(service.record_auction(make_auction(1, 8000)))

        correlation_id = create_correlation_id()
        longer = fund.model_copy(update={"duration_months": 25})
        saved, result = asyncio.run(service.update_fund(longer, correlation_id=correlation_id))

        assert saved is None
        assert result.duration_locked is True
        detail = asyncio.run(service.get_fund_detail(fund.id))
        assert detail.fund.duration_months == 20
        assert detail.schedule[0].dividend_per_member == Decimal("150")
        assert event_types(audit_storage, correlation_id) == [AuditEventType.FUND_REJECTED]

    def test_duration_editable_before_first_auction(self, service, fund):
        asyncio.run(service.create_fund(fund))
        longer = fund.model_copy(update={
            "duration_months": 25,
            "total_amount": Decimal("125000"),
        })

        saved, result = asyncio.run(service.update_fund(longer))

        assert saved is not None
        assert asyncio.run(service.get_fund_detail(fund.id)).fund.duration_months == 25

    def test_update_fund_saves_edit(self, service, fund):
        asyncio.run(service.create_fund(fund))
        renamed = fund.model_copy(update={"name": "Family Chit 2024"})

        saved, result = asyncio.run(service.update_fund(renamed))

        assert saved is not None
        assert asyncio.run(service.get_fund_detail(fund.id)).fund.name == "Family Chit 2024"

    def test_update_missing_fund_raises(self, service, fund):
        with pytest.raises(NotFoundError):
            asyncio.run(service.update_fund(fund))

    def test_delete_fund_cascades(self, service, audit_storage, fund, make_auction):
        asyncio.run(service.create_fund(fund))
        asyncio.run(service.record_auction(make_auction(1, 8000)))
        asyncio.run(service.record_auction(make_auction(2, 9000)))

        correlation_id = create_correlation_id()
        removed = asyncio.run(service.delete_fund(fund.id, correlation_id=correlation_id))

        assert removed == 2
        assert asyncio.run(service.list_funds()) == []
        with pytest.raises(NotFoundError):
            asyncio.run(service.get_fund_detail(fund.id))
        assert event_types(audit_storage, correlation_id) == [AuditEventType.FUND_DELETED]

    def test_storage_failure_is_audited_and_raised(self, ledger_settings, audit_storage, fund):
        service = ChitFundService(
            storage=FailingFundStorage(),
            audit_logger=AuditLogger(audit_storage),
            fund_validator=FundValidator(settings=ledger_settings),
            auction_validator=AuctionValidator(settings=ledger_settings),
        )
        correlation_id = create_correlation_id()

        with pytest.raises(StorageError):
            asyncio.run(service.create_fund(fund, correlation_id=correlation_id))

        assert event_types(audit_storage, correlation_id) == [AuditEventType.STORAGE_ERROR]


class TestAuctionFlows:
    """Record, edit and delete auctions."""

    def test_record_auction(self, service, audit_storage, fund, make_auction):
        asyncio.run(service.create_fund(fund))
        correlation_id = create_correlation_id()

        saved, result = asyncio.run(
            service.record_auction(make_auction(1, 8000), correlation_id=correlation_id)
        )

        assert saved is not None
        assert result.status == AdmissionStatus.ACCEPTED
        assert event_types(audit_storage, correlation_id) == [AuditEventType.AUCTION_RECORDED]

    def test_duplicate_month_not_persisted(self, service, audit_storage, fund, make_auction):
        asyncio.run(service.create_fund(fund))
        asyncio.run(service.record_auction(make_auction(5, 8000)))
        correlation_id = create_correlation_id()

        saved, result = asyncio.run(
            service.record_auction(make_auction(5, 9000), correlation_id=correlation_id)
        )

        assert saved is None
        assert result.status == AdmissionStatus.REJECTED
        assert len(asyncio.run(service.get_fund_detail(fund.id)).auctions) == 1
        assert event_types(audit_storage, correlation_id) == [AuditEventType.AUCTION_REJECTED]

    def test_rejection_can_raise(self, service, fund, make_auction):
        asyncio.run(service.create_fund(fund))

        with pytest.raises(AuctionRejectedError) as exc_info:
            asyncio.run(service.record_auction(make_auction(21, 8000), raise_on_reject=True))

        assert "out_of_range" in str(exc_info.value)

    def test_warning_is_persisted_and_audited(self, service, audit_storage, fund, make_auction):
        asyncio.run(service.create_fund(fund))
        correlation_id = create_correlation_id()

        saved, result = asyncio.run(
            service.record_auction(make_auction(1, 45000), correlation_id=correlation_id)
        )

        assert saved is not None
        assert result.status == AdmissionStatus.ACCEPTED_WITH_WARNING
        assert event_types(audit_storage, correlation_id) == [
            AuditEventType.AUCTION_RECORDED,
            AuditEventType.AUCTION_WARNING,
        ]

    def test_strict_second_prize_rejected(self, ledger_settings, fund, make_auction):
        service = ChitFundService(
            storage=InMemoryFundStorage(),
            auction_validator=AuctionValidator(
                settings=ledger_settings, user_prize_policy=UserPrizePolicy.STRICT
            ),
            fund_validator=FundValidator(settings=ledger_settings),
        )
        asyncio.run(service.create_fund(fund))
        asyncio.run(service.record_auction(make_auction(1, 8000, is_user_prized=True)))

        saved, result = asyncio.run(
            service.record_auction(make_auction(2, 8000, is_user_prized=True))
        )

        assert saved is None
        assert result.user_prize_already_claimed is True

    def test_record_for_missing_fund_raises(self, service, make_auction):
        with pytest.raises(NotFoundError):
            asyncio.run(service.record_auction(make_auction(1, 8000)))

    def test_update_auction(self, service, audit_storage, fund, make_auction):
        asyncio.run(service.create_fund(fund))
        original = make_auction(3, 8000)
        asyncio.run(service.record_auction(original))

        correlation_id = create_correlation_id()
        edited = original.model_copy(update={"discount_amount": Decimal("12000")})
        saved, result = asyncio.run(
            service.update_auction(edited, correlation_id=correlation_id)
        )

        assert saved is not None
        assert result.is_edit is True
        detail = asyncio.run(service.get_fund_detail(fund.id))
        assert detail.auctions[0].discount_amount == Decimal("12000")
        assert event_types(audit_storage, correlation_id) == [AuditEventType.AUCTION_UPDATED]

    def test_record_with_existing_id_is_an_edit(self, service, fund, make_auction):
        asyncio.run(service.create_fund(fund))
        original = make_auction(3, 8000)
        asyncio.run(service.record_auction(original))

        resaved = original.model_copy(update={"discount_amount": Decimal("9000")})
        saved, result = asyncio.run(service.record_auction(resaved))

        assert saved is not None
        assert result.is_edit is True
        assert len(asyncio.run(service.get_fund_detail(fund.id)).auctions) == 1

    def test_edit_cannot_move_auction_to_another_fund(self, service, fund, make_auction):
        other = fund.model_copy(update={"id": uuid4(), "name": "Office Chit"})
        asyncio.run(service.create_fund(fund))
        asyncio.run(service.create_fund(other))
        auction = make_auction(1, 8000)
        asyncio.run(service.record_auction(auction))

        moved = auction.model_copy(update={"chit_fund_id": other.id})
        with pytest.raises(LedgerPreconditionError):
            asyncio.run(service.update_auction(moved))

        assert len(asyncio.run(service.get_fund_detail(fund.id)).auctions) == 1
        assert asyncio.run(service.get_fund_detail(other.id)).auctions == []

    def test_update_missing_auction_raises(self, service, fund, make_auction):
        asyncio.run(service.create_fund(fund))
        with pytest.raises(NotFoundError):
            asyncio.run(service.update_auction(make_auction(1, 8000)))

    def test_delete_auction(self, service, audit_storage, fund, make_auction):
        asyncio.run(service.create_fund(fund))
        auction = make_auction(1, 8000)
        asyncio.run(service.record_auction(auction))

        correlation_id = create_correlation_id()
        deleted = asyncio.run(service.delete_auction(auction.id, correlation_id=correlation_id))

        assert deleted is True
        assert asyncio.run(service.get_fund_detail(fund.id)).auctions == []
        assert event_types(audit_storage, correlation_id) == [AuditEventType.AUCTION_DELETED]

    def test_delete_missing_auction(self, service):
        assert asyncio.run(service.delete_auction(uuid4())) is False


class TestFundDetail:
    """End-to-end: record auctions, read the detail view."""

    def test_detail_matches_hand_computation(self, service, fund, make_auction):
        asyncio.run(service.create_fund(fund))
        asyncio.run(service.record_auction(make_auction(2, 30000, is_user_prized=True)))
        asyncio.run(service.record_auction(make_auction(1, 8000)))

        detail = asyncio.run(service.get_fund_detail(fund.id))

        assert [m.month_number for m in detail.schedule] == [1, 2]
        assert detail.schedule[1].cash_in == Decimal("71250")
        assert detail.summary.total_user_contribution == Decimal("9850")
        assert detail.summary.total_user_prize == Decimal("70000")
        assert detail.summary.user_prized is True
        assert detail.summary.months_remaining == 18


class TestAppComponents:
    """Tests for create_app_components."""

    def test_memory_backend(self):
        service, sheets_client = create_app_components(StorageBackend.MEMORY)

        assert isinstance(service, ChitFundService)
        assert sheets_client is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

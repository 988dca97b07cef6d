"""
Tests for the record stores.

The Google Sheets store runs against an in-process fake worksheet, so no
credentials or network access are needed.
"""

import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest

from chitfund.models.fund import FundStatus
from chitfund.services.storage import (
    DuplicateError,
    GoogleSheetsFundStorage,
    InMemoryFundStorage,
    NotFoundError,
)
from chitfund.services.storage.google_sheets import AUCTION_COLUMNS, FUND_COLUMNS


class FakeWorksheet:
    """The subset of gspread.Worksheet the store uses."""

    def __init__(self, header):
        self.rows = [list(header)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def update_cell(self, row, col, value):
        self.rows[row - 1][col - 1] = str(value)

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self):
        self.funds = FakeWorksheet(FUND_COLUMNS)
        self.auctions = FakeWorksheet(AUCTION_COLUMNS)

    def get_funds_sheet(self):
        return self.funds

    def get_auctions_sheet(self):
        return self.auctions


@pytest.fixture(params=["memory", "sheets"])
def storage(request):
    if request.param == "memory":
        return InMemoryFundStorage()
    return GoogleSheetsFundStorage(FakeSheetsClient())


class TestFundStorage:
    """Behaviour shared by every FundStorageInterface implementation."""

    def test_fund_survives_storage(self, storage, fund):
        asyncio.run(storage.save_fund(fund))

        loaded = asyncio.run(storage.get_fund(fund.id))

        assert loaded.id == fund.id
        assert loaded.name == fund.name
        assert loaded.total_amount == Decimal("100000")
        assert loaded.foreman_commission_rate == Decimal("0.05")
        assert loaded.start_date == fund.start_date

    def test_missing_fund_is_none(self, storage):
        assert asyncio.run(storage.get_fund(uuid4())) is None

    def test_duplicate_fund_rejected(self, storage, fund):
        asyncio.run(storage.save_fund(fund))
        with pytest.raises(DuplicateError):
            asyncio.run(storage.save_fund(fund))

    def test_update_fund(self, storage, fund):
        asyncio.run(storage.save_fund(fund))

        asyncio.run(storage.update_fund(fund.model_copy(update={"status": FundStatus.CLOSED})))

        assert asyncio.run(storage.get_fund(fund.id)).status == FundStatus.CLOSED

    def test_update_leaves_caller_model_untouched(self, storage, fund, make_auction):
        asyncio.run(storage.save_fund(fund))
        auction = make_auction(1, 8000)
        asyncio.run(storage.save_auction(auction))
        fund_stamp = fund.updated_at
        auction_stamp = auction.updated_at

        asyncio.run(storage.update_fund(fund))
        asyncio.run(storage.update_auction(auction))

        assert fund.updated_at == fund_stamp
        assert auction.updated_at == auction_stamp

    def test_update_missing_fund_raises(self, storage, fund):
        with pytest.raises(NotFoundError):
            asyncio.run(storage.update_fund(fund))

    def test_list_funds_filters_by_status(self, storage, fund):
        closed = fund.model_copy(update={"id": uuid4(), "status": FundStatus.CLOSED})
        asyncio.run(storage.save_fund(fund))
        asyncio.run(storage.save_fund(closed))

        active = asyncio.run(storage.list_funds(status=FundStatus.ACTIVE))

        assert [f.id for f in active] == [fund.id]

    def test_auction_survives_storage(self, storage, fund, make_auction):
        asyncio.run(storage.save_fund(fund))
        auction = make_auction(4, "8123.50", is_user_prized=True)

        asyncio.run(storage.save_auction(auction))
        loaded = asyncio.run(storage.get_auction(auction.id))

        assert loaded.discount_amount == Decimal("8123.50")
        assert loaded.is_user_prized is True
        assert loaded.auction_date == auction.auction_date

    def test_auction_needs_its_fund(self, storage, make_auction):
        with pytest.raises(NotFoundError):
            asyncio.run(storage.save_auction(make_auction(1, 8000)))

    def test_list_auctions_sorted_by_month(self, storage, fund, make_auction):
        asyncio.run(storage.save_fund(fund))
        for month in (3, 1, 2):
            asyncio.run(storage.save_auction(make_auction(month, 8000)))

        auctions = asyncio.run(storage.list_auctions(fund.id))

        assert [a.month_number for a in auctions] == [1, 2, 3]

    def test_update_auction(self, storage, fund, make_auction):
        asyncio.run(storage.save_fund(fund))
        auction = make_auction(1, 8000)
        asyncio.run(storage.save_auction(auction))

        asyncio.run(storage.update_auction(
            auction.model_copy(update={"discount_amount": Decimal("9000")})
        ))

        assert asyncio.run(storage.get_auction(auction.id)).discount_amount == Decimal("9000")

    def test_delete_auction(self, storage, fund, make_auction):
        asyncio.run(storage.save_fund(fund))
        auction = make_auction(1, 8000)
        asyncio.run(storage.save_auction(auction))

        assert asyncio.run(storage.delete_auction(auction.id)) is True
        assert asyncio.run(storage.delete_auction(auction.id)) is False

    def test_delete_fund_cascades(self, storage, fund, make_auction):
        other = fund.model_copy(update={"id": uuid4()})
        asyncio.run(storage.save_fund(fund))
        asyncio.run(storage.save_fund(other))
        for month in (1, 2, 3):
            asyncio.run(storage.save_auction(make_auction(month, 8000)))
        survivor = make_auction(1, 8000, chit_fund_id=other.id)
        asyncio.run(storage.save_auction(survivor))

        removed = asyncio.run(storage.delete_fund(fund.id))

        assert removed == 3
        assert asyncio.run(storage.get_fund(fund.id)) is None
        assert asyncio.run(storage.list_auctions(fund.id)) == []
        assert [a.id for a in asyncio.run(storage.list_auctions(other.id))] == [survivor.id]


class TestInMemoryIsolation:
    """Tests for InMemoryFundStorage copy semantics."""

    def test_returned_records_are_copies(self, fund):
        storage = InMemoryFundStorage()
        asyncio.run(storage.save_fund(fund))

        loaded = asyncio.run(storage.get_fund(fund.id))
        loaded.name = "Tampered"

        assert asyncio.run(storage.get_fund(fund.id)).name == "Family Chit"


class TestGoogleSheetsRows:
    """Tests for sheet row handling."""

    def test_amounts_written_as_decimal_strings(self, fund):
        client = FakeSheetsClient()
        storage = GoogleSheetsFundStorage(client)

        asyncio.run(storage.save_fund(fund))

        row = client.funds.rows[1]
        assert row[FUND_COLUMNS.index("total_amount")] == "100000"
        assert row[FUND_COLUMNS.index("foreman_commission_rate")] == "0.05"

    def test_malformed_rows_are_skipped(self, fund, make_auction):
        client = FakeSheetsClient()
        storage = GoogleSheetsFundStorage(client)
        asyncio.run(storage.save_fund(fund))
        asyncio.run(storage.save_auction(make_auction(1, 8000)))
        client.auctions.rows.append(["broken", str(fund.id), "not-a-date"])

        auctions = asyncio.run(storage.list_auctions(fund.id))

        assert len(auctions) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the initial storage backend because:
1. A household can open its fund ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (a family tracks a handful of funds)
- No transactions, so a fund delete removes auction rows first, then the fund
- Limited query capabilities (we filter in Python)

Amounts are written as Decimal strings with RAW input so Sheets never
reformats them into floats.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from chitfund.config import get_settings
from chitfund.models.fund import AuctionRecord, ChitFund, FundStatus
from chitfund.models.audit import AuditEvent, AuditEventType, AuditSeverity
from chitfund.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    FundStorageInterface,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger()


# Column mappings for ChitFunds sheet
FUND_COLUMNS = [
    "id",
    "owner_id",
    "created_at",
    "updated_at",
    "name",
    "total_amount",
    "monthly_installment",
    "duration_months",
    "foreman_commission_rate",
    "start_date",
    "status",
]

# Column mappings for ChitAuctions sheet
AUCTION_COLUMNS = [
    "id",
    "chit_fund_id",
    "created_at",
    "updated_at",
    "month_number",
    "auction_date",
    "discount_amount",
    "prized_subscriber_name",
    "is_user_prized",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _safe_getter(row: list):
    """Cell accessor that tolerates short rows."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_funds_sheet(self) -> gspread.Worksheet:
        """Get or create the ChitFunds worksheet."""
        return self._get_or_create_sheet(
            self._settings.funds_sheet_name, FUND_COLUMNS, rows=200
        )

    def get_auctions_sheet(self) -> gspread.Worksheet:
        """Get or create the ChitAuctions worksheet."""
        return self._get_or_create_sheet(
            self._settings.auctions_sheet_name, AUCTION_COLUMNS, rows=2000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsFundStorage(FundStorageInterface):
    """
    Google Sheets implementation of fund and auction storage.

    One row per fund on the ChitFunds sheet, one row per auction on the
    ChitAuctions sheet, linked by chit_fund_id.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -------------------------------------------------------------------------
    # Row conversion
    # -------------------------------------------------------------------------

    def _fund_to_row(self, fund: ChitFund) -> list:
        return [
            str(fund.id),
            str(fund.owner_id) if fund.owner_id else "",
            fund.created_at.isoformat(),
            fund.updated_at.isoformat(),
            fund.name,
            str(fund.total_amount),
            str(fund.monthly_installment),
            str(fund.duration_months),
            str(fund.foreman_commission_rate),
            fund.start_date.isoformat(),
            fund.status.value,
        ]

    def _row_to_fund(self, row: list) -> ChitFund:
        safe_get = _safe_getter(row)
        return ChitFund(
            id=UUID(safe_get(0)),
            owner_id=UUID(safe_get(1)) if safe_get(1) else None,
            created_at=datetime.fromisoformat(safe_get(2)),
            updated_at=datetime.fromisoformat(safe_get(3)),
            name=safe_get(4),
            total_amount=Decimal(safe_get(5)),
            monthly_installment=Decimal(safe_get(6)),
            duration_months=int(safe_get(7)),
            foreman_commission_rate=Decimal(safe_get(8, "0")),
            start_date=date.fromisoformat(safe_get(9)),
            status=FundStatus(safe_get(10, FundStatus.ACTIVE.value)),
        )

    def _auction_to_row(self, auction: AuctionRecord) -> list:
        return [
            str(auction.id),
            str(auction.chit_fund_id),
            auction.created_at.isoformat(),
            auction.updated_at.isoformat(),
            str(auction.month_number),
            auction.auction_date.isoformat(),
            str(auction.discount_amount),
            auction.prized_subscriber_name,
            str(auction.is_user_prized),
        ]

    def _row_to_auction(self, row: list) -> AuctionRecord:
        safe_get = _safe_getter(row)
        return AuctionRecord(
            id=UUID(safe_get(0)),
            chit_fund_id=UUID(safe_get(1)),
            created_at=datetime.fromisoformat(safe_get(2)),
            updated_at=datetime.fromisoformat(safe_get(3)),
            month_number=int(safe_get(4)),
            auction_date=date.fromisoformat(safe_get(5)),
            discount_amount=Decimal(safe_get(6, "0")),
            prized_subscriber_name=safe_get(7),
            is_user_prized=safe_get(8).lower() == "true",
        )

    def _find_row(self, sheet: gspread.Worksheet, record_id: UUID) -> Optional[int]:
        """1-based sheet row index of a record, or None."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):  # Row 1 is header
            if row and row[0] == str(record_id):
                return idx
        return None

    def _rewrite_row(self, sheet: gspread.Worksheet, idx: int, values: list) -> None:
        for col_idx, value in enumerate(values, start=1):
            sheet.update_cell(idx, col_idx, value)

    # -------------------------------------------------------------------------
    # Funds
    # -------------------------------------------------------------------------

    @retry(
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_fund(self, fund: ChitFund) -> bool:
        """Append a fund row."""
        try:
            sheet = self._client.get_funds_sheet()
            if self._find_row(sheet, fund.id) is not None:
                raise DuplicateError(f"Fund already exists: {fund.id}")
            sheet.append_row(self._fund_to_row(fund), value_input_option="RAW")
            return True
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save fund: {e}")

    async def get_fund(self, fund_id: UUID) -> Optional[ChitFund]:
        try:
            sheet = self._client.get_funds_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == str(fund_id):
                    return self._row_to_fund(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get fund: {e}")

    async def update_fund(self, fund: ChitFund) -> bool:
        try:
            sheet = self._client.get_funds_sheet()
            idx = self._find_row(sheet, fund.id)
            if idx is None:
                raise NotFoundError(f"Fund not found: {fund.id}")

            updated = fund.model_copy(update={"updated_at": datetime.utcnow()})
            self._rewrite_row(sheet, idx, self._fund_to_row(updated))
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update fund: {e}")

    async def delete_fund(self, fund_id: UUID) -> int:
        """Delete auction rows first, then the fund row."""
        try:
            fund_sheet = self._client.get_funds_sheet()
            fund_idx = self._find_row(fund_sheet, fund_id)
            if fund_idx is None:
                raise NotFoundError(f"Fund not found: {fund_id}")

            auction_sheet = self._client.get_auctions_sheet()
            owned = [
                idx
                for idx, row in enumerate(auction_sheet.get_all_values()[1:], start=2)
                if len(row) > 1 and row[1] == str(fund_id)
            ]
            # Bottom-up so earlier indices stay valid
            for idx in reversed(owned):
                auction_sheet.delete_rows(idx)

            fund_sheet.delete_rows(fund_idx)
            return len(owned)
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete fund: {e}")

    async def list_funds(
        self,
        owner_id: Optional[UUID] = None,
        status: Optional[FundStatus] = None,
    ) -> list[ChitFund]:
        try:
            sheet = self._client.get_funds_sheet()
            funds = []
            for row in sheet.get_all_values()[1:]:
                if not row or not row[0]:  # Skip empty rows
                    continue
                try:
                    fund = self._row_to_fund(row)
                except Exception as e:
                    logger.warning("malformed_fund_row", row_id=row[0], error=str(e))
                    continue

                if owner_id and fund.owner_id != owner_id:
                    continue
                if status and fund.status != status:
                    continue
                funds.append(fund)

            funds.sort(key=lambda f: (f.start_date, f.name))
            return funds
        except Exception as e:
            raise StorageError(f"Failed to list funds: {e}")

    # -------------------------------------------------------------------------
    # Auctions
    # -------------------------------------------------------------------------

    @retry(
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_auction(self, auction: AuctionRecord) -> bool:
        try:
            if self._find_row(self._client.get_funds_sheet(), auction.chit_fund_id) is None:
                raise NotFoundError(f"Fund not found: {auction.chit_fund_id}")

            sheet = self._client.get_auctions_sheet()
            if self._find_row(sheet, auction.id) is not None:
                raise DuplicateError(f"Auction already exists: {auction.id}")
            sheet.append_row(self._auction_to_row(auction), value_input_option="RAW")
            return True
        except (NotFoundError, DuplicateError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to save auction: {e}")

    async def get_auction(self, auction_id: UUID) -> Optional[AuctionRecord]:
        try:
            sheet = self._client.get_auctions_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == str(auction_id):
                    return self._row_to_auction(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get auction: {e}")

    async def update_auction(self, auction: AuctionRecord) -> bool:
        try:
            sheet = self._client.get_auctions_sheet()
            idx = self._find_row(sheet, auction.id)
            if idx is None:
                raise NotFoundError(f"Auction not found: {auction.id}")

            updated = auction.model_copy(update={"updated_at": datetime.utcnow()})
            self._rewrite_row(sheet, idx, self._auction_to_row(updated))
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update auction: {e}")

    async def delete_auction(self, auction_id: UUID) -> bool:
        try:
            sheet = self._client.get_auctions_sheet()
            idx = self._find_row(sheet, auction_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete auction: {e}")

    async def list_auctions(self, chit_fund_id: UUID) -> list[AuctionRecord]:
        try:
            sheet = self._client.get_auctions_sheet()
            auctions = []
            for row in sheet.get_all_values()[1:]:
                if len(row) < 2 or row[1] != str(chit_fund_id):
                    continue
                try:
                    auctions.append(self._row_to_auction(row))
                except Exception as e:
                    logger.warning("malformed_auction_row", row_id=row[0], error=str(e))
                    continue

            auctions.sort(key=lambda a: a.month_number)
            return auctions
        except Exception as e:
            raise StorageError(f"Failed to list auctions: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _safe_getter(row)
        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _all_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception as e:
                logger.warning("malformed_audit_row", row_id=row[0], error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning(
                "audit_sheet_write_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [e for e in self._all_events() if e.correlation_id == correlation_id]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [
                e for e in self._all_events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._all_events()
            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

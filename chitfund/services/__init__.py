"""Services package."""

from chitfund.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    FundStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFundStorage,
    InMemoryAuditStorage,
    InMemoryFundStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "FundStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsFundStorage",
    "InMemoryAuditStorage",
    "InMemoryFundStorage",
    "NotFoundError",
    "StorageError",
]

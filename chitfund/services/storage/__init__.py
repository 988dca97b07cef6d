"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the persistent backend; the in-memory store backs tests
and unconfigured local runs.
"""

from chitfund.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    FundStorageInterface,
    NotFoundError,
    StorageError,
)
from chitfund.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryFundStorage,
)
from chitfund.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFundStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "FundStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryFundStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsFundStorage",
]

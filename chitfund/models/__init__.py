"""
Data Models Package

This package contains all Pydantic models used in the Chit Fund Ledger.
All data flowing through the system must conform to these schemas.
"""

from chitfund.models.fund import (
    AdmissionStatus,
    AuctionRecord,
    AuctionValidationResult,
    ChitFund,
    FundDetail,
    FundStatus,
    FundSummary,
    FundValidationResult,
    MonthMetrics,
    ValidationIssue,
)
from chitfund.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Fund models
    "AdmissionStatus",
    "AuctionRecord",
    "AuctionValidationResult",
    "ChitFund",
    "FundDetail",
    "FundStatus",
    "FundSummary",
    "FundValidationResult",
    "MonthMetrics",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

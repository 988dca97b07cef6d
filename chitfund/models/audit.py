"""
Audit Models for Chit Fund Ledger

Every write to a fund or its auctions is logged for audit purposes.
This provides:
1. Complete traceability of who recorded which month
2. Debugging information when a summary looks wrong
3. A record of every save that went through despite a warning

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Fund lifecycle
    FUND_CREATED = "fund_created"
    FUND_UPDATED = "fund_updated"
    FUND_DELETED = "fund_deleted"
    FUND_REJECTED = "fund_rejected"

    # Auction lifecycle
    AUCTION_RECORDED = "auction_recorded"
    AUCTION_UPDATED = "auction_updated"
    AUCTION_DELETED = "auction_deleted"
    AUCTION_REJECTED = "auction_rejected"
    AUCTION_WARNING = "auction_warning"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity ('fund' or 'auction')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., validate then save)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.fund_created(fund_id, name, correlation_id)
        event = AuditEventBuilder.auction_rejected(auction_id, fund_id, reasons, correlation_id)
    """

    @staticmethod
    def fund_created(
        fund_id: UUID,
        name: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FUND_CREATED,
            entity_type="fund",
            entity_id=fund_id,
            correlation_id=correlation_id,
            description=f"Chit fund created: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def fund_updated(
        fund_id: UUID,
        name: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FUND_UPDATED,
            entity_type="fund",
            entity_id=fund_id,
            correlation_id=correlation_id,
            description=f"Chit fund updated: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def fund_deleted(
        fund_id: UUID,
        auctions_removed: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FUND_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="fund",
            entity_id=fund_id,
            correlation_id=correlation_id,
            description=f"Chit fund deleted with {auctions_removed} auction(s)",
            details={"auctions_removed": auctions_removed},
            is_user_action=True,
        )

    @staticmethod
    def fund_rejected(
        fund_id: UUID,
        reasons: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FUND_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="fund",
            entity_id=fund_id,
            correlation_id=correlation_id,
            description=f"Fund change rejected: {', '.join(reasons)}",
            details={"reasons": reasons},
        )

    @staticmethod
    def auction_recorded(
        auction_id: UUID,
        fund_id: UUID,
        month_number: int,
        discount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUCTION_RECORDED,
            entity_type="auction",
            entity_id=auction_id,
            correlation_id=correlation_id,
            description=f"Auction recorded for month {month_number}",
            details={
                "chit_fund_id": str(fund_id),
                "month_number": month_number,
                "discount_amount": discount,
            },
            is_user_action=True,
        )

    @staticmethod
    def auction_updated(
        auction_id: UUID,
        fund_id: UUID,
        month_number: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUCTION_UPDATED,
            entity_type="auction",
            entity_id=auction_id,
            correlation_id=correlation_id,
            description=f"Auction for month {month_number} updated",
            details={
                "chit_fund_id": str(fund_id),
                "month_number": month_number,
            },
            is_user_action=True,
        )

    @staticmethod
    def auction_deleted(
        auction_id: UUID,
        fund_id: UUID,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUCTION_DELETED,
            entity_type="auction",
            entity_id=auction_id,
            correlation_id=correlation_id,
            description="Auction record deleted",
            details={"chit_fund_id": str(fund_id)},
            is_user_action=True,
        )

    @staticmethod
    def auction_rejected(
        auction_id: UUID,
        fund_id: UUID,
        reasons: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUCTION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="auction",
            entity_id=auction_id,
            correlation_id=correlation_id,
            description=f"Auction rejected: {', '.join(reasons)}",
            details={
                "chit_fund_id": str(fund_id),
                "reasons": reasons,
            },
        )

    @staticmethod
    def auction_warning(
        auction_id: UUID,
        fund_id: UUID,
        warnings: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUCTION_WARNING,
            severity=AuditSeverity.WARNING,
            entity_type="auction",
            entity_id=auction_id,
            correlation_id=correlation_id,
            description=f"Auction saved with {len(warnings)} warning(s)",
            details={
                "chit_fund_id": str(fund_id),
                "warnings": warnings,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

"""
Audit Logger

DESIGN DECISION: Every write to a fund or auction is logged.
This provides:
1. Complete traceability
2. Debugging capability when a summary looks wrong
3. A history of saves that went through despite warnings

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from chitfund.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from chitfund.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_fund_created(
        self,
        fund_id: UUID,
        name: str,
        correlation_id: UUID,
    ) -> None:
        """Log fund creation."""
        await self.log(AuditEventBuilder.fund_created(
            fund_id=fund_id,
            name=name,
            correlation_id=correlation_id,
        ))

    async def log_fund_updated(
        self,
        fund_id: UUID,
        name: str,
        correlation_id: UUID,
    ) -> None:
        """Log fund update."""
        await self.log(AuditEventBuilder.fund_updated(
            fund_id=fund_id,
            name=name,
            correlation_id=correlation_id,
        ))

    async def log_fund_deleted(
        self,
        fund_id: UUID,
        auctions_removed: int,
        correlation_id: UUID,
    ) -> None:
        """Log fund deletion (and its cascaded auctions)."""
        await self.log(AuditEventBuilder.fund_deleted(
            fund_id=fund_id,
            auctions_removed=auctions_removed,
            correlation_id=correlation_id,
        ))

    async def log_fund_rejected(
        self,
        fund_id: UUID,
        reasons: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log a fund change that failed validation."""
        await self.log(AuditEventBuilder.fund_rejected(
            fund_id=fund_id,
            reasons=reasons,
            correlation_id=correlation_id,
        ))

    async def log_auction_recorded(
        self,
        auction_id: UUID,
        fund_id: UUID,
        month_number: int,
        discount: str,
        correlation_id: UUID,
    ) -> None:
        """Log a newly recorded auction."""
        await self.log(AuditEventBuilder.auction_recorded(
            auction_id=auction_id,
            fund_id=fund_id,
            month_number=month_number,
            discount=discount,
            correlation_id=correlation_id,
        ))

    async def log_auction_updated(
        self,
        auction_id: UUID,
        fund_id: UUID,
        month_number: int,
        correlation_id: UUID,
    ) -> None:
        """Log an edited auction."""
        await self.log(AuditEventBuilder.auction_updated(
            auction_id=auction_id,
            fund_id=fund_id,
            month_number=month_number,
            correlation_id=correlation_id,
        ))

    async def log_auction_deleted(
        self,
        auction_id: UUID,
        fund_id: UUID,
        correlation_id: UUID,
    ) -> None:
        """Log auction deletion."""
        await self.log(AuditEventBuilder.auction_deleted(
            auction_id=auction_id,
            fund_id=fund_id,
            correlation_id=correlation_id,
        ))

    async def log_auction_rejected(
        self,
        auction_id: UUID,
        fund_id: UUID,
        reasons: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log an auction that failed the admission policy."""
        await self.log(AuditEventBuilder.auction_rejected(
            auction_id=auction_id,
            fund_id=fund_id,
            reasons=reasons,
            correlation_id=correlation_id,
        ))

    async def log_auction_warning(
        self,
        auction_id: UUID,
        fund_id: UUID,
        warnings: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log an auction saved despite advisory warnings."""
        await self.log(AuditEventBuilder.auction_warning(
            auction_id=auction_id,
            fund_id=fund_id,
            warnings=warnings,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a record store failure."""
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., recording an auction).
    Pass it through all subsequent operations.
    """
    return uuid4()

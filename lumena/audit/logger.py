"""
Audit Logger

DESIGN DECISION: Every ledger event is logged.
This provides:
1. Complete traceability of balance changes
2. Debugging capability when operations are rejected
3. A record of tolerated drift

The audit logger:
- Is synchronous, because ledger operations never suspend
- Gracefully handles failures (a broken sink never breaks a ledger operation)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID, uuid4

import structlog

from lumena.models.audit import AuditEvent, AuditEventBuilder


AuditSink = Callable[[AuditEvent], None]


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


def configure_logging(level: str = "INFO") -> None:
    """
    Route stdlib logging (and therefore structlog) to stderr at ``level``.

    Call once at process start; library code never calls this.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional sink (e.g. a list in tests, or a persistent store)
    """

    def __init__(
        self,
        sink: Optional[AuditSink] = None,
    ):
        """
        Initialize audit logger.

        Args:
            sink: Callable receiving every event.
                  If None, only logs locally.
        """
        self._sink = sink
        self._logger = structlog.get_logger("lumena.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Hands the event to the sink if configured.

        Returns True if the sink accepted it (or no sink is configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._sink:
            try:
                self._sink(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_income_recorded(
        self,
        transaction_id: str,
        amount: Decimal,
        source: str,
        allocations: dict[str, Decimal],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.income_recorded(
            transaction_id=transaction_id,
            amount=amount,
            source=source,
            allocations=allocations,
            correlation_id=correlation_id,
        ))

    def log_expense_recorded(
        self,
        transaction_id: str,
        amount: Decimal,
        bucket_id: str,
        covered: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.expense_recorded(
            transaction_id=transaction_id,
            amount=amount,
            bucket_id=bucket_id,
            covered=covered,
            correlation_id=correlation_id,
        ))

    def log_transfer_recorded(
        self,
        transaction_id: str,
        amount: Decimal,
        from_bucket_id: str,
        to_bucket_id: str,
        is_cover: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transfer_recorded(
            transaction_id=transaction_id,
            amount=amount,
            from_bucket_id=from_bucket_id,
            to_bucket_id=to_bucket_id,
            is_cover=is_cover,
            correlation_id=correlation_id,
        ))

    def log_transaction_deleted(
        self,
        transaction_id: str,
        transaction_type: str,
        skipped_bucket_ids: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            skipped_bucket_ids=skipped_bucket_ids,
            correlation_id=correlation_id,
        ))

    def log_bucket_created(
        self,
        bucket_id: str,
        name: str,
        category: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.bucket_created(
            bucket_id=bucket_id,
            name=name,
            category=category,
            correlation_id=correlation_id,
        ))

    def log_bucket_updated(
        self,
        bucket_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.bucket_updated(
            bucket_id=bucket_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        ))

    def log_bucket_deleted(
        self,
        bucket_id: str,
        name: str,
        discarded_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.bucket_deleted(
            bucket_id=bucket_id,
            name=name,
            discarded_balance=discarded_balance,
            correlation_id=correlation_id,
        ))

    def log_onboarding_completed(
        self,
        income_type: str,
        safety_margin: Decimal,
        bucket_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.onboarding_completed(
            income_type=income_type,
            safety_margin=safety_margin,
            bucket_count=bucket_count,
            correlation_id=correlation_id,
        ))

    def log_profile_updated(
        self,
        field: str,
        value: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.profile_updated(
            field=field,
            value=value,
            correlation_id=correlation_id,
        ))

    def log_ledger_reset(
        self,
        bucket_count: int,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.ledger_reset(
            bucket_count=bucket_count,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        ))

    def log_state_loaded(
        self,
        key: str,
        found: bool,
        bucket_count: int,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.state_loaded(
            key=key,
            found=found,
            bucket_count=bucket_count,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        ))

    def log_state_saved(
        self,
        key: str,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.state_saved(
            key=key,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        ))

    def log_backup_exported(
        self,
        path: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.backup_exported(
            path=path,
            correlation_id=correlation_id,
        ))

    def log_operation_rejected(
        self,
        operation: str,
        error_kind: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a ledger operation that failed validation."""
        self.log(AuditEventBuilder.operation_rejected(
            operation=operation,
            error_kind=error_kind,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., an expense with cover).
    Pass it through all subsequent operations.
    """
    return uuid4()

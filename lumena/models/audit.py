"""
Audit Models for the Bucket Ledger

Every ledger event is described by an AuditEvent:
1. Complete traceability of balance changes
2. Debugging information when an operation is rejected
3. A visible record of tolerated drift (reversals that skip a
   deleted bucket, bucket deletions that discard a balance)

DESIGN DECISION: Audit events are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger operation has its own event type.
    """
    # Money movements
    INCOME_RECORDED = "income_recorded"
    EXPENSE_RECORDED = "expense_recorded"
    TRANSFER_RECORDED = "transfer_recorded"
    COVER_TRANSFER_RECORDED = "cover_transfer_recorded"
    TRANSACTION_DELETED = "transaction_deleted"

    # Buckets
    BUCKET_CREATED = "bucket_created"
    BUCKET_UPDATED = "bucket_updated"
    BUCKET_DELETED = "bucket_deleted"

    # Profile
    ONBOARDING_COMPLETED = "onboarding_completed"
    PROFILE_UPDATED = "profile_updated"
    LEDGER_RESET = "ledger_reset"

    # Persistence
    STATE_LOADED = "state_loaded"
    STATE_SAVED = "state_saved"
    BACKUP_EXPORTED = "backup_exported"

    # Failures
    OPERATION_REJECTED = "operation_rejected"
    STORAGE_ERROR = "storage_error"


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
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
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
        description="Type of entity (e.g., 'transaction', 'bucket', 'ledger')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., cover transfers and their expense)"
    )

    description: str = Field(
        ...,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

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
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_deleted(transaction_id, "expense", [], cid)
        event = AuditEventBuilder.operation_rejected("record_expense", "CoverageMismatch", msg)

    Amounts are passed in as strings so the log never contains floats.
    """

    @staticmethod
    def income_recorded(
        transaction_id: str,
        amount: Decimal,
        source: str,
        allocations: dict[str, Decimal],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Income recorded: {source or 'unspecified source'} - {amount}",
            details={
                "amount": str(amount),
                "source": source,
                "allocations": {k: str(v) for k, v in allocations.items()},
            },
        )

    @staticmethod
    def expense_recorded(
        transaction_id: str,
        amount: Decimal,
        bucket_id: str,
        covered: Decimal,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Expense recorded: {amount} from bucket {bucket_id}",
            details={
                "amount": str(amount),
                "bucket_id": bucket_id,
                "covered_amount": str(covered),
            },
        )

    @staticmethod
    def transfer_recorded(
        transaction_id: str,
        amount: Decimal,
        from_bucket_id: str,
        to_bucket_id: str,
        is_cover: bool = False,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        event_type = (
            AuditEventType.COVER_TRANSFER_RECORDED
            if is_cover
            else AuditEventType.TRANSFER_RECORDED
        )
        return AuditEvent(
            event_type=event_type,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transfer of {amount}: {from_bucket_id} -> {to_bucket_id}",
            details={
                "amount": str(amount),
                "from_bucket_id": from_bucket_id,
                "to_bucket_id": to_bucket_id,
            },
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        transaction_type: str,
        skipped_bucket_ids: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        # Skipped buckets mean the reversal could not be fully replayed
        severity = AuditSeverity.WARNING if skipped_bucket_ids else AuditSeverity.INFO
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            severity=severity,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction reversed and deleted ({transaction_type})",
            details={
                "transaction_type": transaction_type,
                "skipped_bucket_ids": skipped_bucket_ids,
            },
        )

    @staticmethod
    def bucket_created(
        bucket_id: str,
        name: str,
        category: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUCKET_CREATED,
            entity_type="bucket",
            entity_id=bucket_id,
            correlation_id=correlation_id,
            description=f"Bucket created: {name}",
            details={"name": name, "category": category},
        )

    @staticmethod
    def bucket_updated(
        bucket_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUCKET_UPDATED,
            entity_type="bucket",
            entity_id=bucket_id,
            correlation_id=correlation_id,
            description=f"Bucket updated: {', '.join(changed_fields) or 'no changes'}",
            details={"changed_fields": changed_fields},
        )

    @staticmethod
    def bucket_deleted(
        bucket_id: str,
        name: str,
        discarded_balance: Decimal,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        severity = AuditSeverity.WARNING if discarded_balance != 0 else AuditSeverity.INFO
        return AuditEvent(
            event_type=AuditEventType.BUCKET_DELETED,
            severity=severity,
            entity_type="bucket",
            entity_id=bucket_id,
            correlation_id=correlation_id,
            description=f"Bucket deleted: {name}",
            details={
                "name": name,
                "discarded_balance": str(discarded_balance),
            },
        )

    @staticmethod
    def onboarding_completed(
        income_type: str,
        safety_margin: Decimal,
        bucket_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ONBOARDING_COMPLETED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Onboarding completed with {bucket_count} buckets",
            details={
                "income_type": income_type,
                "safety_margin": str(safety_margin),
                "bucket_count": bucket_count,
            },
        )

    @staticmethod
    def profile_updated(
        field: str,
        value: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROFILE_UPDATED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Profile updated: {field}",
            details={"field": field, "value": value},
        )

    @staticmethod
    def ledger_reset(
        bucket_count: int,
        transaction_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            correlation_id=correlation_id,
            description="Ledger reset: all buckets and transactions cleared",
            details={
                "bucket_count": bucket_count,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def state_loaded(
        key: str,
        found: bool,
        bucket_count: int,
        transaction_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_LOADED,
            entity_type="ledger",
            entity_id=key,
            correlation_id=correlation_id,
            description=(
                f"State loaded from '{key}'" if found
                else f"No saved state under '{key}', using defaults"
            ),
            details={
                "found": found,
                "bucket_count": bucket_count,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def state_saved(
        key: str,
        transaction_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_SAVED,
            entity_type="ledger",
            entity_id=key,
            correlation_id=correlation_id,
            description=f"State saved to '{key}'",
            details={"transaction_count": transaction_count},
        )

    @staticmethod
    def backup_exported(
        path: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_EXPORTED,
            entity_type="ledger",
            correlation_id=correlation_id,
            description="Backup written",
            details={"path": path},
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        error_kind: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="operation",
            entity_id=operation,
            correlation_id=correlation_id,
            description=f"{operation} rejected: {error_kind}",
            details=details or {},
            error_code=error_kind,
            error_message=error_message,
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
            entity_type="storage",
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )

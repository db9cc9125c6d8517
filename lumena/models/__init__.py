"""
Data Models Package

This package contains all Pydantic models used by the bucket ledger.
All data flowing through the system must conform to these schemas.
"""

from lumena.models.bucket import (
    Bucket,
    BucketCategory,
    IncomeType,
    Strategy,
    new_bucket_id,
)
from lumena.models.transaction import (
    CoverContribution,
    ExpenseTransaction,
    IncomeTransaction,
    Transaction,
    TransactionType,
    TransferTransaction,
)
from lumena.models.state import LedgerState
from lumena.models.money import (
    ALLOCATION_TOLERANCE,
    CENT,
    ZERO,
    Money,
    round2,
    to_money,
    within_tolerance,
)
from lumena.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Bucket models
    "Bucket",
    "BucketCategory",
    "IncomeType",
    "Strategy",
    "new_bucket_id",
    # Transaction models
    "CoverContribution",
    "ExpenseTransaction",
    "IncomeTransaction",
    "Transaction",
    "TransactionType",
    "TransferTransaction",
    # State document
    "LedgerState",
    # Money
    "ALLOCATION_TOLERANCE",
    "CENT",
    "ZERO",
    "Money",
    "round2",
    "to_money",
    "within_tolerance",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

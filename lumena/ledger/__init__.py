"""
Ledger Package

The bucket ledger core: bucket store, transaction log, allocation
arithmetic, onboarding strategies and the engine that ties them together.
"""

from lumena.ledger.aggregate import Ledger
from lumena.ledger.allocation import (
    compute_share,
    compute_shortfall,
    propose_allocations,
    validate_allocation,
    validate_coverage,
)
from lumena.ledger.buckets import BucketStore
from lumena.ledger.engine import LedgerEngine
from lumena.ledger.errors import (
    AllocationMismatchError,
    BucketNotFoundError,
    CoverageMismatchError,
    DuplicateTransactionError,
    InvalidAmountError,
    InvalidDateError,
    LedgerError,
    NotFoundError,
    SameBucketError,
    TransactionNotFoundError,
    UnknownBucketError,
)
from lumena.ledger.log import TransactionFilter, TransactionLog, TransactionView
from lumena.ledger.strategies import (
    STRATEGY_WEIGHTS,
    build_strategy_buckets,
    strategy_weights,
)

__all__ = [
    # Aggregate
    "Ledger",
    "BucketStore",
    "TransactionFilter",
    "TransactionLog",
    "TransactionView",
    # Engine
    "LedgerEngine",
    # Allocation
    "compute_share",
    "compute_shortfall",
    "propose_allocations",
    "validate_allocation",
    "validate_coverage",
    # Strategies
    "STRATEGY_WEIGHTS",
    "build_strategy_buckets",
    "strategy_weights",
    # Errors
    "AllocationMismatchError",
    "BucketNotFoundError",
    "CoverageMismatchError",
    "DuplicateTransactionError",
    "InvalidAmountError",
    "InvalidDateError",
    "LedgerError",
    "NotFoundError",
    "SameBucketError",
    "TransactionNotFoundError",
    "UnknownBucketError",
]

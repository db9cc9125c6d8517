"""Ledger query package."""

from lumena.queries.summary import (
    BucketProgress,
    LedgerSummary,
    summarize,
    target_progress,
    transactions_by_date,
)

__all__ = [
    "BucketProgress",
    "LedgerSummary",
    "summarize",
    "target_progress",
    "transactions_by_date",
]

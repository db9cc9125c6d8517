"""
Ledger Summaries

DESIGN DECISION: Summaries are DERIVED, never stored.
Everything here is computed from a LedgerState snapshot on demand, so
dashboard figures can never disagree with the balances they describe.

These are read-only helpers for the presentation layer. They never
change the ledger.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from lumena.models.bucket import BucketCategory
from lumena.models.money import ZERO
from lumena.models.state import LedgerState
from lumena.models.transaction import Transaction


HUNDRED = Decimal("100")
ONE_DECIMAL = Decimal("0.1")


class BucketProgress(BaseModel):
    """How far a bucket is towards its target."""
    bucket_id: str
    name: str
    balance: Decimal
    target: Optional[Decimal] = None
    percent: Optional[Decimal] = Field(
        default=None,
        description="0-100, capped; None when the bucket has no positive target"
    )


class LedgerSummary(BaseModel):
    """Dashboard figures for one ledger."""
    total_balance: Decimal = ZERO
    balance_by_category: dict[BucketCategory, Decimal] = Field(default_factory=dict)
    overdrawn_bucket_ids: list[str] = Field(default_factory=list)
    allocated_percentage: Decimal = Decimal("0")
    unallocated_percentage: Decimal = HUNDRED
    runway_months: Optional[Decimal] = Field(
        default=None,
        description="Total balance / safety margin; None when no margin is set"
    )
    progress: list[BucketProgress] = Field(default_factory=list)
    transaction_count: int = 0


def target_progress(balance: Decimal, target: Optional[Decimal]) -> Optional[Decimal]:
    """Percent of target reached, clamped to [0, 100]."""
    if target is None or target <= 0:
        return None
    percent = balance / target * HUNDRED
    percent = min(HUNDRED, max(Decimal("0"), percent))
    return percent.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def summarize(state: LedgerState) -> LedgerSummary:
    """
    Compute dashboard figures from a ledger snapshot.

    Runway is ``total / safety_margin`` to one decimal place. A negative
    total gives a runway of 0.
    """
    total = ZERO
    by_category: dict[BucketCategory, Decimal] = {}
    overdrawn = []
    weights = Decimal("0")
    progress = []

    for bucket in state.buckets:
        total += bucket.balance
        by_category[bucket.category] = by_category.get(bucket.category, ZERO) + bucket.balance
        weights += bucket.allocation_percentage
        if bucket.is_overdrawn:
            overdrawn.append(bucket.id)
        progress.append(BucketProgress(
            bucket_id=bucket.id,
            name=bucket.name,
            balance=bucket.balance,
            target=bucket.target,
            percent=target_progress(bucket.balance, bucket.target),
        ))

    runway = None
    if state.safety_margin > 0:
        runway = (max(total, ZERO) / state.safety_margin).quantize(
            ONE_DECIMAL, rounding=ROUND_HALF_UP
        )

    return LedgerSummary(
        total_balance=total,
        balance_by_category=by_category,
        overdrawn_bucket_ids=overdrawn,
        allocated_percentage=weights,
        unallocated_percentage=HUNDRED - weights,
        runway_months=runway,
        progress=progress,
        transaction_count=len(state.transactions),
    )


def transactions_by_date(
    transactions: Iterable[Transaction],
    newest_first: bool = True,
) -> list[Transaction]:
    """
    Sort transactions by their (user-entered) date.

    Ties keep log order, so a cover transfer still shows next to the
    expense it funded.
    """
    ordered = list(transactions)
    if newest_first:
        # Stable sort on reversed log order keeps later entries first within a day
        return sorted(reversed(ordered), key=lambda t: t.date, reverse=True)
    return sorted(ordered, key=lambda t: t.date)

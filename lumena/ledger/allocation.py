"""
Allocation Calculator

Pure functions, no side effects:
- default income shares from bucket weights
- allocation validation (income fully distributed)
- shortfall of an expense against a bucket balance
- coverage validation (shortfall exactly funded)

Sums are compared within ALLOCATION_TOLERANCE (one cent).
"""

from decimal import Decimal
from typing import Iterable, Mapping

from lumena.ledger.errors import AllocationMismatchError, CoverageMismatchError
from lumena.models.bucket import Bucket
from lumena.models.money import ALLOCATION_TOLERANCE, ZERO, round2, within_tolerance


HUNDRED = Decimal("100")


def compute_share(income_amount: Decimal, bucket_percentage: Decimal) -> Decimal:
    """``round2(income * percentage / 100)``, half-up to the cent."""
    return round2(Decimal(income_amount) * Decimal(bucket_percentage) / HUNDRED)


def propose_allocations(
    income_amount: Decimal,
    buckets: Iterable[Bucket],
) -> dict[str, Decimal]:
    """
    Default split of an income across every bucket by weight.

    When the weights total exactly 100, the rounding residue (at most a
    few cents) goes to the heaviest bucket so the proposal sums exactly
    to the income. Otherwise the raw shares are returned and the caller
    is expected to adjust them before recording the income.
    """
    buckets = list(buckets)
    proposal = {
        bucket.id: compute_share(income_amount, bucket.allocation_percentage)
        for bucket in buckets
    }

    total_weight = sum((b.allocation_percentage for b in buckets), Decimal("0"))
    if buckets and total_weight == HUNDRED:
        residue = round2(Decimal(income_amount)) - sum(proposal.values(), ZERO)
        if residue:
            heaviest = max(buckets, key=lambda b: b.allocation_percentage)
            proposal[heaviest.id] += residue

    return proposal


def validate_allocation(
    income_amount: Decimal,
    allocations: Mapping[str, Decimal],
) -> Decimal:
    """
    Check that the allocations distribute the whole income.

    Returns the allocation total.

    Raises:
        AllocationMismatchError: If ``|sum - income| > 0.01``
    """
    total = sum(allocations.values(), ZERO)
    if not within_tolerance(total, income_amount, ALLOCATION_TOLERANCE):
        raise AllocationMismatchError(expected=income_amount, actual=total)
    return total


def compute_shortfall(expense_amount: Decimal, bucket_balance: Decimal) -> Decimal:
    """``max(0, expense - balance)``. Zero means no cover is needed."""
    return max(ZERO, expense_amount - bucket_balance)


def validate_coverage(
    shortfall: Decimal,
    contributions: Mapping[str, Decimal],
) -> Decimal:
    """
    Check that cover contributions exactly fund a shortfall.

    With no shortfall, any non-zero contribution is a mismatch: cover
    is only allowed when it is needed.

    Returns the contribution total.

    Raises:
        CoverageMismatchError: On missing, insufficient or excessive cover
    """
    total = sum(contributions.values(), ZERO)

    if shortfall <= 0:
        if any(value != 0 for value in contributions.values()):
            raise CoverageMismatchError(expected=ZERO, actual=total)
        return total

    if not within_tolerance(total, shortfall, ALLOCATION_TOLERANCE):
        raise CoverageMismatchError(expected=shortfall, actual=total)
    return total

"""
Onboarding Strategies

Starter bucket sets offered by the onboarding wizard. With the tax
bucket disabled its weight moves to Play. Survival has no tax bucket
at all, so the flag is ignored there.
"""

from decimal import Decimal
from typing import Optional

from lumena.models.bucket import Bucket, BucketCategory, Strategy


# (category, weight with tax, weight without tax); None = bucket omitted
STRATEGY_WEIGHTS: dict[Strategy, list[tuple[BucketCategory, int, Optional[int]]]] = {
    Strategy.BALANCED: [
        (BucketCategory.ESSENTIALS, 50, 50),
        (BucketCategory.SAVINGS, 20, 20),
        (BucketCategory.TAX, 15, None),
        (BucketCategory.PLAY, 15, 30),
    ],
    Strategy.AGGRESSIVE: [
        (BucketCategory.ESSENTIALS, 40, 40),
        (BucketCategory.SAVINGS, 40, 40),
        (BucketCategory.TAX, 15, None),
        (BucketCategory.PLAY, 5, 20),
    ],
    Strategy.SURVIVAL: [
        (BucketCategory.ESSENTIALS, 90, 90),
        (BucketCategory.SAVINGS, 10, 10),
    ],
}


def strategy_weights(strategy: Strategy, tax_enabled: bool = True) -> dict[BucketCategory, Decimal]:
    """Category -> allocation percentage for a strategy."""
    weights = {}
    for category, with_tax, without_tax in STRATEGY_WEIGHTS[Strategy(strategy)]:
        weight = with_tax if tax_enabled else without_tax
        if weight is not None:
            weights[category] = Decimal(weight)
    return weights


def build_strategy_buckets(strategy: Strategy, tax_enabled: bool = True) -> list[Bucket]:
    """
    Fresh, empty buckets for a strategy.

    Each bucket is named after its category and starts at balance 0.
    """
    return [
        Bucket(name=category.value, category=category, allocation_percentage=weight)
        for category, weight in strategy_weights(strategy, tax_enabled).items()
    ]

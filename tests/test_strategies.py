"""Tests for the onboarding starter strategies."""

import pytest
from decimal import Decimal

from lumena.ledger import build_strategy_buckets, strategy_weights
from lumena.models import BucketCategory, Strategy


def weights_by_name(buckets):
    return {b.name: b.allocation_percentage for b in buckets}


class TestStrategies:
    """Tests for strategy weights and starter buckets."""

    def test_balanced_with_tax(self):
        buckets = build_strategy_buckets(Strategy.BALANCED, tax_enabled=True)
        assert weights_by_name(buckets) == {
            "Essentials": Decimal("50"),
            "Savings": Decimal("20"),
            "Tax": Decimal("15"),
            "Play": Decimal("15"),
        }

    def test_balanced_without_tax_moves_weight_to_play(self):
        buckets = build_strategy_buckets(Strategy.BALANCED, tax_enabled=False)
        assert weights_by_name(buckets) == {
            "Essentials": Decimal("50"),
            "Savings": Decimal("20"),
            "Play": Decimal("30"),
        }

    def test_aggressive(self):
        assert strategy_weights(Strategy.AGGRESSIVE) == {
            BucketCategory.ESSENTIALS: Decimal("40"),
            BucketCategory.SAVINGS: Decimal("40"),
            BucketCategory.TAX: Decimal("15"),
            BucketCategory.PLAY: Decimal("5"),
        }
        assert strategy_weights(Strategy.AGGRESSIVE, tax_enabled=False)[BucketCategory.PLAY] == Decimal("20")

    def test_survival_ignores_tax_flag(self):
        assert strategy_weights(Strategy.SURVIVAL, True) == strategy_weights(Strategy.SURVIVAL, False)

    @pytest.mark.parametrize("strategy", list(Strategy))
    @pytest.mark.parametrize("tax_enabled", [True, False])
    def test_weights_total_100(self, strategy, tax_enabled):
        assert sum(strategy_weights(strategy, tax_enabled).values()) == Decimal("100")

    def test_buckets_start_empty_with_fresh_ids(self):
        first = build_strategy_buckets(Strategy.SURVIVAL)
        second = build_strategy_buckets(Strategy.SURVIVAL)
        assert all(b.balance == Decimal("0.00") for b in first)
        assert {b.id for b in first}.isdisjoint(b.id for b in second)

    def test_accepts_strategy_value(self):
        assert len(build_strategy_buckets("Survival")) == 2

"""
Tests for Lumena models

Test strategy:
1. Unit tests for individual components (models, money, allocation)
2. Engine tests for whole operations against an in-memory ledger
3. No real disk or network outside pytest's tmp_path
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from lumena.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Bucket,
    BucketCategory,
    CoverContribution,
    ExpenseTransaction,
    IncomeTransaction,
    LedgerState,
    Transaction,
    TransferTransaction,
    to_money,
    within_tolerance,
)


class TestMoney:
    """Tests for the money boundary conversion."""

    def test_float_converts_without_binary_noise(self):
        assert to_money(0.1) == Decimal("0.10")
        assert to_money(0.1 + 0.2) == Decimal("0.30")

    def test_rounds_half_up_to_the_cent(self):
        assert to_money("1.005") == Decimal("1.01")
        assert to_money("2.675") == Decimal("2.68")
        assert to_money(Decimal("-1.005")) == Decimal("-1.01")

    def test_accepts_ints_and_padded_strings(self):
        assert to_money(5) == Decimal("5.00")
        assert to_money(" 12.5 ") == Decimal("12.50")

    @pytest.mark.parametrize("value", ["abc", "", None, True, float("nan"), float("inf")])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValueError):
            to_money(value)

    @pytest.mark.parametrize("value", ["1e30", Decimal("1e30"), 10**30])
    def test_rejects_amounts_out_of_range(self, value):
        with pytest.raises(ValueError, match="out of range"):
            to_money(value)

    def test_tolerance_is_inclusive(self):
        assert within_tolerance(Decimal("100.01"), Decimal("100.00"))
        assert not within_tolerance(Decimal("100.02"), Decimal("100.00"))


class TestBucketModel:
    """Tests for the Bucket model."""

    def test_defaults(self):
        bucket = Bucket(name="Essentials", category=BucketCategory.ESSENTIALS)
        assert bucket.balance == Decimal("0.00")
        assert bucket.allocation_percentage == Decimal("0")
        assert bucket.target is None
        assert bucket.id

    def test_ids_are_unique(self):
        first = Bucket(name="A", category=BucketCategory.PLAY)
        second = Bucket(name="A", category=BucketCategory.PLAY)
        assert first.id != second.id

    def test_strips_whitespace(self):
        bucket = Bucket(name="  Savings  ", category=BucketCategory.SAVINGS)
        assert bucket.name == "Savings"

    def test_negative_balance_is_allowed(self):
        bucket = Bucket(name="Play", category=BucketCategory.PLAY, balance="-20")
        assert bucket.is_overdrawn

    def test_rejects_percentage_over_100(self):
        with pytest.raises(ValueError):
            Bucket(name="Play", category=BucketCategory.PLAY, allocation_percentage=101)

    def test_rejects_negative_target(self):
        with pytest.raises(ValueError, match="Target cannot be negative"):
            Bucket(name="Play", category=BucketCategory.PLAY, target=-1)

    def test_reads_legacy_field_names(self):
        bucket = Bucket.model_validate({
            "id": "b1",
            "name": "Play",
            "category": "Play",
            "amount": 12.5,
            "percentage": 10,
        })
        assert bucket.balance == Decimal("12.50")
        assert bucket.allocation_percentage == Decimal("10")

    def test_document_uses_camel_case(self):
        bucket = Bucket(
            id="b1",
            name="Savings",
            category=BucketCategory.SAVINGS,
            balance="250",
            allocation_percentage=30,
        )
        document = bucket.model_dump(mode="json", by_alias=True)
        assert document["balance"] == "250.00"
        assert document["allocationPercentage"] == "30"
        assert document["category"] == "Savings"


class TestTransactionModels:
    """Tests for the transaction variants."""

    def test_income_allocations_must_sum_to_amount(self):
        with pytest.raises(ValueError, match="Allocations sum to"):
            IncomeTransaction(
                id="txn-000001",
                date=date(2024, 1, 1),
                amount=100,
                allocations={"a": 60, "b": 30},
            )

    def test_income_allows_one_cent_drift(self):
        income = IncomeTransaction(
            id="txn-000001",
            date=date(2024, 1, 1),
            amount="100.00",
            allocations={"a": "33.33", "b": "33.33", "c": "33.33"},
        )
        assert sum(income.allocations.values()) == Decimal("99.99")

    def test_amount_must_be_positive(self):
        with pytest.raises(ValueError):
            ExpenseTransaction(id="t", date=date(2024, 1, 1), amount=0, bucket_id="a")

    def test_transfer_rejects_same_bucket(self):
        with pytest.raises(ValueError, match="must differ"):
            TransferTransaction(
                id="t",
                date=date(2024, 1, 1),
                amount=5,
                from_bucket_id="a",
                to_bucket_id="a",
            )

    def test_balance_effects(self):
        transfer = TransferTransaction(
            id="t",
            date=date(2024, 1, 1),
            amount=5,
            from_bucket_id="a",
            to_bucket_id="b",
        )
        assert transfer.balance_effects() == [("a", Decimal("-5.00")), ("b", Decimal("5.00"))]
        assert transfer.involves("b")
        assert not transfer.involves("c")

    def test_income_effects_skip_zero_shares(self):
        income = IncomeTransaction(
            id="t",
            date=date(2024, 1, 1),
            amount=10,
            allocations={"a": 10, "b": 0},
        )
        assert income.balance_effects() == [("a", Decimal("10.00"))]

    def test_legacy_income_credits_its_bucket(self):
        parsed = TypeAdapter(Transaction).validate_python({
            "type": "income",
            "id": "1712345678901",
            "date": "2024-01-01",
            "description": "Salary",
            "amount": 1000,
            "bucketId": "b1",
        })
        assert isinstance(parsed, IncomeTransaction)
        assert parsed.allocations == {"b1": Decimal("1000.00")}
        assert parsed.balance_effects() == [("b1", Decimal("1000.00"))]

    def test_legacy_income_without_bucket_is_rejected(self):
        with pytest.raises(ValidationError):
            TypeAdapter(Transaction).validate_python({
                "type": "income",
                "id": "t",
                "date": "2024-01-01",
                "amount": 1000,
            })

    def test_long_text_is_kept(self):
        income = IncomeTransaction(
            id="t",
            date=date(2024, 1, 1),
            description="x" * 2000,
            source="y" * 600,
            amount=10,
            allocations={"a": 10},
        )
        assert len(income.description) == 2000

    def test_discriminated_union_parses_by_type(self):
        adapter = TypeAdapter(Transaction)
        parsed = adapter.validate_python({
            "type": "expense",
            "id": "txn-000002",
            "date": "2024-01-02",
            "description": "Groceries",
            "amount": 150,
            "bucketId": "b1",
        })
        assert isinstance(parsed, ExpenseTransaction)
        assert parsed.bucket_id == "b1"

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValidationError):
            TypeAdapter(Transaction).validate_python({
                "type": "refund",
                "id": "t",
                "date": "2024-01-02",
                "amount": 1,
            })

    def test_cover_contribution_accepts_camel_case(self):
        contribution = CoverContribution.model_validate({"fromBucketId": "s", "amount": "50"})
        assert contribution.from_bucket_id == "s"
        assert contribution.amount == Decimal("50.00")


class TestLedgerState:
    """Tests for the persisted state document."""

    def test_missing_document_is_a_new_user(self):
        state = LedgerState.from_document(None)
        assert state.buckets == []
        assert state.transactions == []
        assert state.safety_margin == Decimal("0.00")
        assert state.is_onboarding_complete is False

    def test_document_round_trip(self):
        state = LedgerState(
            buckets=[Bucket(id="b1", name="Essentials", category="Essentials", balance=350)],
            transactions=[
                ExpenseTransaction(
                    id="txn-000001",
                    date=date(2024, 1, 2),
                    description="Groceries",
                    amount=150,
                    bucket_id="b1",
                ),
            ],
            income_type="Steady",
            safety_margin=1200,
            is_onboarding_complete=True,
        )
        document = state.to_document()

        assert set(document) == {
            "buckets", "transactions", "incomeType", "safetyMargin", "isOnboardingComplete",
        }
        assert document["transactions"][0]["type"] == "expense"
        assert document["transactions"][0]["bucketId"] == "b1"
        assert document["transactions"][0]["date"] == "2024-01-02"
        assert LedgerState.from_document(document) == state

    def test_unknown_keys_are_ignored(self):
        state = LedgerState.from_document({"buckets": [], "theme": "dark"})
        assert state.buckets == []

    def test_malformed_document_raises(self):
        with pytest.raises(ValidationError):
            LedgerState.from_document({"buckets": [{"name": "No category"}]})

    def test_out_of_range_balance_raises(self):
        with pytest.raises(ValidationError):
            LedgerState.from_document({
                "buckets": [{"id": "b1", "name": "Play", "category": "Play", "balance": "1e30"}],
            })

    def test_negative_safety_margin_rejected(self):
        with pytest.raises(ValidationError):
            LedgerState.from_document({"safetyMargin": -5})


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.BUCKET_CREATED,
            description="Bucket created: Play",
        )
        assert event.event_type == AuditEventType.BUCKET_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.income_recorded(
            transaction_id="txn-000001",
            amount=Decimal("1000.00"),
            source="Salary",
            allocations={"b1": Decimal("1000.00")},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "income_recorded"
        assert log_dict["details"]["allocations"] == {"b1": "1000.00"}

    def test_cover_transfer_has_its_own_event_type(self):
        correlation_id = uuid4()
        event = AuditEventBuilder.transfer_recorded(
            transaction_id="txn-000003",
            amount=Decimal("50.00"),
            from_bucket_id="s",
            to_bucket_id="e",
            is_cover=True,
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.COVER_TRANSFER_RECORDED
        assert event.correlation_id == correlation_id

    def test_reversal_with_skipped_buckets_is_a_warning(self):
        clean = AuditEventBuilder.transaction_deleted("t1", "expense", [])
        drifted = AuditEventBuilder.transaction_deleted("t2", "income", ["gone"])
        assert clean.severity == AuditSeverity.INFO
        assert drifted.severity == AuditSeverity.WARNING

    def test_operation_rejected_carries_error_kind(self):
        event = AuditEventBuilder.operation_rejected(
            operation="record_expense",
            error_kind="CoverageMismatch",
            error_message="Cover contributions total 100.00 but the shortfall is 50.00",
        )
        assert event.error_code == "CoverageMismatch"
        assert event.entity_id == "record_expense"

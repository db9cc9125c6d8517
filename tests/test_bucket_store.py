"""Tests for BucketStore and TransactionLog."""

import pytest
from datetime import date
from decimal import Decimal

from lumena.ledger import (
    BucketNotFoundError,
    BucketStore,
    DuplicateTransactionError,
    TransactionFilter,
    TransactionLog,
    TransactionNotFoundError,
)
from lumena.models import (
    Bucket,
    BucketCategory,
    ExpenseTransaction,
    IncomeTransaction,
    TransactionType,
    TransferTransaction,
)


def bucket(bucket_id, balance="0"):
    return Bucket(id=bucket_id, name=bucket_id.title(), category=BucketCategory.ESSENTIALS, balance=balance)


def expense(transaction_id, bucket_id="a", amount=10):
    return ExpenseTransaction(
        id=transaction_id,
        date=date(2024, 1, 1),
        amount=amount,
        bucket_id=bucket_id,
    )


class TestBucketStore:
    """Tests for the bucket mapping."""

    def test_preserves_insertion_order(self):
        store = BucketStore([bucket("c"), bucket("a"), bucket("b")])
        assert store.ids() == ["c", "a", "b"]

    def test_upsert_replaces_in_place(self):
        store = BucketStore([bucket("a"), bucket("b")])
        store.upsert(bucket("a", balance="5"))
        assert store.ids() == ["a", "b"]
        assert store.get("a").balance == Decimal("5.00")

    def test_adjust_balance(self):
        store = BucketStore([bucket("a", balance="10")])
        assert store.adjust_balance("a", Decimal("-25.00")) == Decimal("-15.00")
        assert store.get("a").is_overdrawn

    def test_adjust_unknown_bucket(self):
        with pytest.raises(BucketNotFoundError):
            BucketStore().adjust_balance("missing", Decimal("1"))

    def test_remove_returns_bucket(self):
        store = BucketStore([bucket("a", balance="7")])
        removed = store.remove("a")
        assert removed.balance == Decimal("7.00")
        assert "a" not in store

    def test_remove_unknown_bucket(self):
        with pytest.raises(BucketNotFoundError):
            BucketStore().remove("missing")

    def test_snapshot_is_detached(self):
        store = BucketStore([bucket("a", balance="10")])
        snapshot = store.snapshot()
        snapshot[0].balance = Decimal("999")
        assert store.get("a").balance == Decimal("10.00")

    def test_total_balance(self):
        store = BucketStore([bucket("a", "10"), bucket("b", "-2.50")])
        assert store.total_balance() == Decimal("7.50")


class TestTransactionLog:
    """Tests for the ordered transaction log."""

    def test_next_id_is_sequential(self):
        log = TransactionLog()
        assert log.next_id() == "txn-000001"
        assert log.next_id() == "txn-000002"

    def test_next_id_continues_after_loaded_ids(self):
        log = TransactionLog([expense("txn-000041")])
        assert log.next_id() == "txn-000042"

    def test_foreign_ids_are_never_reused(self):
        log = TransactionLog([expense("legacy-abc")])
        new_id = log.next_id()
        assert new_id != "legacy-abc"
        assert new_id not in log

    def test_sequence_survives_clear(self):
        log = TransactionLog()
        log.append(expense(log.next_id()))
        log.clear()
        assert len(log) == 0
        assert log.next_id() == "txn-000002"

    def test_rewind_releases_reserved_ids(self):
        log = TransactionLog([expense("txn-000003")])
        log.next_id()
        log.next_id()
        log.rewind(3)
        assert log.next_id() == "txn-000004"

    def test_rewind_never_moves_forward(self):
        log = TransactionLog([expense("txn-000003")])
        log.rewind(10)
        assert log.next_id() == "txn-000004"

    def test_duplicate_id_rejected(self):
        log = TransactionLog([expense("t1")])
        with pytest.raises(DuplicateTransactionError):
            log.append(expense("t1"))

    def test_remove_returns_transaction(self):
        log = TransactionLog([expense("t1"), expense("t2")])
        removed = log.remove("t1")
        assert removed.id == "t1"
        assert [t.id for t in log] == ["t2"]
        assert log.find("t1") is None

    def test_remove_unknown(self):
        with pytest.raises(TransactionNotFoundError) as exc_info:
            TransactionLog().remove("nope")
        assert exc_info.value.kind == "NotFound"

    def test_filter_by_type_and_bucket(self):
        log = TransactionLog([
            IncomeTransaction(id="i", date=date(2024, 1, 1), amount=10, allocations={"a": 6, "b": 4}),
            expense("e", bucket_id="b"),
            TransferTransaction(id="t", date=date(2024, 1, 1), amount=1, from_bucket_id="c", to_bucket_id="a"),
        ])
        assert [t.id for t in log.list(bucket_id="a")] == ["i", "t"]
        assert [t.id for t in log.list(transaction_type=TransactionType.EXPENSE)] == ["e"]
        assert [t.id for t in log.list(TransactionFilter(transaction_type="income", bucket_id="c"))] == []

    def test_view_is_lazy_and_restartable(self):
        log = TransactionLog([expense("t1")])
        view = log.list()
        log.append(expense("t2"))
        assert [t.id for t in view] == ["t1", "t2"]
        assert [t.id for t in view] == ["t1", "t2"]

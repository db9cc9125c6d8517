"""
Ledger Engine

The only component that changes money amounts. Each public operation
is one atomic step from a consistent ledger to another:

1. Validate every precondition (amounts, dates, bucket ids, sums)
2. Build the transaction record(s) describing exactly what will apply
3. Apply the balance deltas and append the record(s)

If step 1 or 2 fails nothing has been touched, and the error is raised
to the caller. Nothing is corrected silently.

Reversal (delete_transaction) replays the recorded deltas with the sign
flipped. It never recomputes from current balances, which later
transactions may have moved. A cover transfer and the expense it funded
are independent entries: deleting one does not delete the other.
"""

import datetime
from collections.abc import Iterable, Mapping
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Iterator, Optional, Union
from uuid import UUID

from lumena.audit import AuditLogger, create_correlation_id
from lumena.config import get_settings
from lumena.ledger.aggregate import Ledger
from lumena.ledger.allocation import (
    compute_shortfall,
    validate_allocation,
    validate_coverage,
)
from lumena.ledger.errors import (
    InvalidAmountError,
    InvalidDateError,
    LedgerError,
    SameBucketError,
    UnknownBucketError,
)
from lumena.ledger.log import TransactionFilter, TransactionView
from lumena.models.bucket import Bucket, BucketCategory, IncomeType
from lumena.models.money import ZERO, to_money
from lumena.models.state import LedgerState
from lumena.models.transaction import (
    CoverContribution,
    ExpenseTransaction,
    IncomeTransaction,
    Transaction,
    TransactionType,
    TransferTransaction,
)


CoverSpec = Union[
    Mapping[str, Any],
    CoverContribution,
    Iterable[Union[CoverContribution, Mapping[str, Any]]],
]

# Marks an update_bucket() argument the caller did not pass
_UNCHANGED: Any = object()


class LedgerEngine:
    """
    Applies income, expense and transfer operations to one Ledger.

    Every operation runs under the ledger's lock and is audited, whether
    it succeeds or is rejected.
    """

    def __init__(
        self,
        ledger: Optional[Ledger] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = get_settings().ledger
        self._ledger = ledger or Ledger(id_prefix=self._settings.transaction_id_prefix)
        self._audit = audit_logger or AuditLogger()

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    # =========================================================================
    # VALIDATION HELPERS
    # =========================================================================

    @staticmethod
    def _positive_amount(field: str, value: Any) -> Decimal:
        try:
            amount = to_money(value)
        except ValueError:
            raise InvalidAmountError(field, value, "not a valid amount") from None
        if amount <= 0:
            raise InvalidAmountError(field, value)
        return amount

    @staticmethod
    def _non_negative_amount(field: str, value: Any) -> Decimal:
        try:
            amount = to_money(value)
        except ValueError:
            raise InvalidAmountError(field, value, "not a valid amount") from None
        if amount < 0:
            raise InvalidAmountError(field, value, "cannot be negative")
        return amount

    @staticmethod
    def _coerce_date(value: Any) -> datetime.date:
        if isinstance(value, datetime.datetime):
            return value.date()
        if isinstance(value, datetime.date):
            return value
        if isinstance(value, str):
            try:
                return datetime.date.fromisoformat(value.strip())
            except ValueError:
                raise InvalidDateError(value) from None
        raise InvalidDateError(value)

    def _require_bucket(self, bucket_id: str) -> Bucket:
        bucket = self._ledger.buckets.get(bucket_id)
        if bucket is None:
            raise UnknownBucketError(bucket_id)
        return bucket

    def _normalize_cover(self, cover: Optional[CoverSpec]) -> dict[str, Decimal]:
        """
        Flatten any accepted cover shape to ``{source_bucket_id: amount}``.

        Accepted: a mapping of source id -> amount, a single
        ``{fromBucketId, amount}`` (dict or CoverContribution), or a list
        of those. Zero contributions are dropped; repeated sources add up.
        """
        if cover is None:
            return {}

        pairs: list[tuple[str, Any]] = []

        def add_single(item: Any) -> None:
            if isinstance(item, CoverContribution):
                pairs.append((item.from_bucket_id, item.amount))
            elif isinstance(item, Mapping):
                source = item.get("fromBucketId", item.get("from_bucket_id"))
                if source is None:
                    raise UnknownBucketError("")
                pairs.append((str(source), item.get("amount")))
            else:
                raise TypeError(f"Unsupported cover entry: {item!r}")

        if isinstance(cover, CoverContribution):
            add_single(cover)
        elif isinstance(cover, Mapping):
            if "fromBucketId" in cover or "from_bucket_id" in cover:
                add_single(cover)
            else:
                pairs.extend((str(k), v) for k, v in cover.items())
        elif isinstance(cover, Iterable) and not isinstance(cover, (str, bytes)):
            for item in cover:
                add_single(item)
        else:
            raise TypeError(f"Unsupported cover specification: {cover!r}")

        contributions: dict[str, Decimal] = {}
        for source_id, raw in pairs:
            value = self._non_negative_amount(f"cover from {source_id}", raw)
            if value == 0:
                continue
            contributions[source_id] = contributions.get(source_id, ZERO) + value
        return contributions

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @contextmanager
    def _operation(self, name: str, correlation_id: Optional[UUID]) -> Iterator[None]:
        """Hold the ledger lock; audit and re-raise any rejection."""
        with self._ledger.lock:
            sequence = self._ledger.transactions.sequence
            try:
                yield
            except Exception as error:
                # Nothing was applied, so no id may be consumed
                self._ledger.transactions.rewind(sequence)
                if not isinstance(error, LedgerError):
                    raise

                self._audit.log_operation_rejected(
                    operation=name,
                    error_kind=error.kind,
                    error_message=error.message,
                    details=error.details(),
                    correlation_id=correlation_id,
                )
                raise

    def _apply(self, transaction: Transaction) -> None:
        """Apply a fully validated transaction's deltas, then log it."""
        for bucket_id, delta in transaction.balance_effects():
            self._ledger.buckets.adjust_balance(bucket_id, delta)
        self._ledger.transactions.append(transaction)

    # =========================================================================
    # MONEY OPERATIONS
    # =========================================================================

    def record_income(
        self,
        amount: Any,
        source: str,
        date: Any,
        allocations: Mapping[str, Any],
        description: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> IncomeTransaction:
        """
        Deposit income split across buckets.

        Args:
            amount: Income amount, > 0
            source: Where it came from (e.g. "Salary")
            date: Calendar date (date or ISO string)
            allocations: bucket id -> share; must sum to amount within 0.01
            description: History text, defaults to the source

        Raises:
            InvalidAmountError, AllocationMismatchError, UnknownBucketError
        """
        correlation_id = correlation_id or create_correlation_id()

        with self._operation("record_income", correlation_id):
            income = self._positive_amount("amount", amount)
            when = self._coerce_date(date)

            shares = {
                str(bucket_id): self._non_negative_amount(f"allocation for {bucket_id}", share)
                for bucket_id, share in allocations.items()
            }
            validate_allocation(income, shares)
            for bucket_id in shares:
                self._require_bucket(bucket_id)

            transaction = IncomeTransaction(
                id=self._ledger.transactions.next_id(),
                date=when,
                description=description if description is not None else source,
                amount=income,
                source=source,
                # Stored map is exactly what gets credited
                allocations={k: v for k, v in shares.items() if v != 0},
            )
            self._apply(transaction)

        self._audit.log_income_recorded(
            transaction_id=transaction.id,
            amount=transaction.amount,
            source=source,
            allocations=transaction.allocations,
            correlation_id=correlation_id,
        )
        return transaction.model_copy(deep=True)

    def record_expense(
        self,
        amount: Any,
        description: str,
        date: Any,
        bucket_id: str,
        cover: Optional[CoverSpec] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """
        Charge an expense to a bucket, funding any shortfall first.

        If the bucket's balance is below the amount, ``cover`` must fund
        the difference exactly (within 0.01). Each contributing bucket
        produces one "Cover from <name>" transfer, logged before the
        expense itself. Source buckets may go negative.

        Returns:
            The appended transactions: cover transfers first, expense last

        Raises:
            InvalidAmountError, UnknownBucketError, SameBucketError,
            CoverageMismatchError
        """
        correlation_id = correlation_id or create_correlation_id()

        with self._operation("record_expense", correlation_id):
            expense_amount = self._positive_amount("amount", amount)
            when = self._coerce_date(date)
            bucket = self._require_bucket(bucket_id)

            contributions = self._normalize_cover(cover)
            sources = []
            for source_id in contributions:
                if source_id == bucket_id:
                    raise SameBucketError(source_id)
                sources.append(self._require_bucket(source_id))

            shortfall = compute_shortfall(expense_amount, bucket.balance)
            covered = validate_coverage(shortfall, contributions)

            log = self._ledger.transactions
            transfers = [
                TransferTransaction(
                    id=log.next_id(),
                    date=when,
                    # Snapshot of the name at write time
                    description=f"Cover from {source.name}",
                    amount=contributions[source.id],
                    from_bucket_id=source.id,
                    to_bucket_id=bucket_id,
                )
                for source in sources
            ]
            expense = ExpenseTransaction(
                id=log.next_id(),
                date=when,
                description=description,
                amount=expense_amount,
                bucket_id=bucket_id,
            )

            for transfer in transfers:
                self._apply(transfer)
            self._apply(expense)

        for transfer in transfers:
            self._audit.log_transfer_recorded(
                transaction_id=transfer.id,
                amount=transfer.amount,
                from_bucket_id=transfer.from_bucket_id,
                to_bucket_id=transfer.to_bucket_id,
                is_cover=True,
                correlation_id=correlation_id,
            )
        self._audit.log_expense_recorded(
            transaction_id=expense.id,
            amount=expense.amount,
            bucket_id=bucket_id,
            covered=covered,
            correlation_id=correlation_id,
        )
        return [t.model_copy(deep=True) for t in (*transfers, expense)]

    def record_transfer(
        self,
        from_bucket_id: str,
        to_bucket_id: str,
        amount: Any,
        date: Any,
        description: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TransferTransaction:
        """
        Move money between two buckets. The source may go negative.

        Raises:
            InvalidAmountError, SameBucketError, UnknownBucketError
        """
        correlation_id = correlation_id or create_correlation_id()

        with self._operation("record_transfer", correlation_id):
            transfer_amount = self._positive_amount("amount", amount)
            when = self._coerce_date(date)
            if from_bucket_id == to_bucket_id:
                raise SameBucketError(from_bucket_id)
            source = self._require_bucket(from_bucket_id)
            destination = self._require_bucket(to_bucket_id)

            transaction = TransferTransaction(
                id=self._ledger.transactions.next_id(),
                date=when,
                description=(
                    description if description
                    else f"Transfer from {source.name} to {destination.name}"
                ),
                amount=transfer_amount,
                from_bucket_id=from_bucket_id,
                to_bucket_id=to_bucket_id,
            )
            self._apply(transaction)

        self._audit.log_transfer_recorded(
            transaction_id=transaction.id,
            amount=transaction.amount,
            from_bucket_id=from_bucket_id,
            to_bucket_id=to_bucket_id,
            correlation_id=correlation_id,
        )
        return transaction.model_copy(deep=True)

    def delete_transaction(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Remove a transaction and reverse its recorded effect.

        Buckets deleted since the transaction was recorded are skipped;
        their share left with them. This is reported in the audit log,
        not raised.

        Raises:
            TransactionNotFoundError: If the id is not in the log
        """
        correlation_id = correlation_id or create_correlation_id()

        with self._operation("delete_transaction", correlation_id):
            transaction = self._ledger.transactions.remove(transaction_id)

            skipped: list[str] = []
            for bucket_id, delta in transaction.balance_effects():
                if bucket_id in self._ledger.buckets:
                    self._ledger.buckets.adjust_balance(bucket_id, -delta)
                else:
                    skipped.append(bucket_id)

        self._audit.log_transaction_deleted(
            transaction_id=transaction.id,
            transaction_type=transaction.type,
            skipped_bucket_ids=skipped,
            correlation_id=correlation_id,
        )
        return transaction

    def reset_all(self, correlation_id: Optional[UUID] = None) -> None:
        """Clear buckets, transactions and profile. Total replace, no partial mode."""
        with self._ledger.lock:
            bucket_count = len(self._ledger.buckets)
            transaction_count = len(self._ledger.transactions)
            self._ledger.clear()

        self._audit.log_ledger_reset(
            bucket_count=bucket_count,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        )

    # =========================================================================
    # BUCKETS & PROFILE
    # =========================================================================

    def add_bucket(
        self,
        name: str,
        category: BucketCategory,
        allocation_percentage: Any = 0,
        target: Any = None,
        color: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Bucket:
        """
        Create an empty bucket.

        Raises:
            pydantic.ValidationError: If the fields are invalid
        """
        bucket = Bucket(
            name=name,
            category=category,
            allocation_percentage=allocation_percentage,
            target=target,
            color=color,
        )
        with self._ledger.lock:
            self._ledger.buckets.upsert(bucket)

        self._audit.log_bucket_created(
            bucket_id=bucket.id,
            name=bucket.name,
            category=bucket.category.value,
            correlation_id=correlation_id,
        )
        return bucket.model_copy(deep=True)

    def update_bucket(
        self,
        bucket_id: str,
        *,
        name: Any = _UNCHANGED,
        category: Any = _UNCHANGED,
        allocation_percentage: Any = _UNCHANGED,
        target: Any = _UNCHANGED,
        color: Any = _UNCHANGED,
        correlation_id: Optional[UUID] = None,
    ) -> Bucket:
        """
        Edit a bucket's presentation fields. The balance is never touched.

        Pass ``target=None`` to clear a target.

        Raises:
            UnknownBucketError: If the bucket is absent
            pydantic.ValidationError: If the new values are invalid
        """
        requested = {
            "name": name,
            "category": category,
            "allocation_percentage": allocation_percentage,
            "target": target,
            "color": color,
        }
        changes = {k: v for k, v in requested.items() if v is not _UNCHANGED}

        with self._operation("update_bucket", correlation_id):
            current = self._require_bucket(bucket_id)
            updated = Bucket.model_validate({**current.model_dump(), **changes})
            self._ledger.buckets.upsert(updated)

        self._audit.log_bucket_updated(
            bucket_id=bucket_id,
            changed_fields=sorted(changes),
            correlation_id=correlation_id,
        )
        return updated.model_copy(deep=True)

    def delete_bucket(
        self,
        bucket_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Bucket:
        """
        Delete a bucket. Any remaining balance is discarded, not moved.

        Transactions that reference the bucket stay in the log; reversing
        them later skips this bucket.

        Returns:
            The removed bucket, with the balance that was discarded

        Raises:
            UnknownBucketError: If the bucket is absent
        """
        with self._operation("delete_bucket", correlation_id):
            self._require_bucket(bucket_id)
            removed = self._ledger.buckets.remove(bucket_id)

        self._audit.log_bucket_deleted(
            bucket_id=removed.id,
            name=removed.name,
            discarded_balance=removed.balance,
            correlation_id=correlation_id,
        )
        return removed

    def complete_onboarding(
        self,
        income_type: IncomeType,
        safety_margin: Any,
        buckets: Iterable[Bucket],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Store the onboarding answers and the chosen starter buckets.

        Replaces the current bucket set. The transaction log is untouched.

        Raises:
            InvalidAmountError: If the safety margin is not positive
            ValueError: If the income type is unknown
        """
        with self._operation("complete_onboarding", correlation_id):
            margin = self._positive_amount("safety_margin", safety_margin)
            kind = IncomeType(income_type)
            chosen = [b.model_copy(deep=True) for b in buckets]

            self._ledger.buckets.clear()
            for bucket in chosen:
                self._ledger.buckets.upsert(bucket)
            self._ledger.income_type = kind
            self._ledger.safety_margin = margin
            self._ledger.is_onboarding_complete = True

        self._audit.log_onboarding_completed(
            income_type=kind.value,
            safety_margin=margin,
            bucket_count=len(chosen),
            correlation_id=correlation_id,
        )

    def set_safety_margin(
        self,
        value: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Decimal:
        """
        Update the monthly minimum need.

        Raises:
            InvalidAmountError: If the value is negative or not a valid amount
        """
        with self._operation("set_safety_margin", correlation_id):
            margin = self._non_negative_amount("safety_margin", value)
            self._ledger.safety_margin = margin

        self._audit.log_profile_updated(
            field="safety_margin",
            value=str(margin),
            correlation_id=correlation_id,
        )
        return margin

    # =========================================================================
    # READS
    # =========================================================================

    def get_bucket(self, bucket_id: str) -> Optional[Bucket]:
        with self._ledger.lock:
            bucket = self._ledger.buckets.get(bucket_id)
            return bucket.model_copy(deep=True) if bucket else None

    def list_buckets(self) -> list[Bucket]:
        with self._ledger.lock:
            return self._ledger.buckets.snapshot()

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        with self._ledger.lock:
            transaction = self._ledger.transactions.find(transaction_id)
            return transaction.model_copy(deep=True) if transaction else None

    def list_transactions(
        self,
        criteria: Optional[TransactionFilter] = None,
        *,
        transaction_type: Optional[TransactionType] = None,
        bucket_id: Optional[str] = None,
    ) -> TransactionView:
        """
        Lazy view of the log in creation order (treat entries as read-only).
        """
        return self._ledger.transactions.list(
            criteria,
            transaction_type=transaction_type,
            bucket_id=bucket_id,
        )

    def total_balance(self) -> Decimal:
        with self._ledger.lock:
            return self._ledger.buckets.total_balance()

    # =========================================================================
    # STATE DOCUMENT
    # =========================================================================

    def snapshot(self) -> LedgerState:
        return self._ledger.to_state()

    def export_state(self) -> dict[str, Any]:
        """Full state as a JSON-compatible document."""
        return self.snapshot().to_document()

    def load_state(self, document: Optional[Mapping[str, Any]]) -> None:
        """
        Replace the ledger with a stored document (None = brand new user).

        Raises:
            pydantic.ValidationError: If the document is malformed
        """
        state = LedgerState.from_document(document)
        self._ledger.replace(state)

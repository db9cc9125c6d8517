"""
Transaction Log

Ordered history of financial events, append-biased, removable by id.
Log order is creation order; dates are user-editable and may disagree
with it, so callers that want date order sort for themselves.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from lumena.ledger.errors import DuplicateTransactionError, TransactionNotFoundError
from lumena.models.transaction import Transaction, TransactionType


@dataclass(frozen=True)
class TransactionFilter:
    """
    Optional restrictions for TransactionLog.list().

    A bucket participates in an income if it appears in the
    allocations, in an expense if it is the charged bucket, and in a
    transfer if it is either end.
    """
    transaction_type: Optional[TransactionType] = None
    bucket_id: Optional[str] = None

    def matches(self, transaction: Transaction) -> bool:
        if (
            self.transaction_type is not None
            and transaction.type != TransactionType(self.transaction_type).value
        ):
            return False
        if self.bucket_id is not None and not transaction.involves(self.bucket_id):
            return False
        return True


class TransactionView:
    """
    Lazy, restartable view over the log.

    Nothing is filtered until iteration starts, and every new iteration
    sees the log as it is at that moment.
    """

    def __init__(self, log: "TransactionLog", criteria: TransactionFilter):
        self._log = log
        self._criteria = criteria

    def __iter__(self) -> Iterator[Transaction]:
        for transaction in self._log.entries():
            if self._criteria.matches(transaction):
                yield transaction

    def __repr__(self) -> str:
        return f"TransactionView({self._criteria!r})"


class TransactionLog:
    """Ordered sequence of transactions with id lookup."""

    def __init__(
        self,
        transactions: Optional[Iterable[Transaction]] = None,
        id_prefix: str = "txn",
        start_sequence: int = 0,
    ):
        self._entries: list[Transaction] = []
        self._index: dict[str, Transaction] = {}
        self._id_prefix = id_prefix
        self._id_pattern = re.compile(rf"^{re.escape(id_prefix)}-(\d+)$")
        self._sequence = start_sequence
        for transaction in transactions or ():
            self.append(transaction)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, transaction_id: object) -> bool:
        return transaction_id in self._index

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self.entries())

    @property
    def sequence(self) -> int:
        """Highest sequence number handed out or seen so far."""
        return self._sequence

    def entries(self) -> list[Transaction]:
        """Shallow copy of the log in creation order."""
        return list(self._entries)

    def next_id(self) -> str:
        """
        A fresh id, ordered after every id this log has handed out or seen.

        Ids loaded from an older document that don't follow the
        ``<prefix>-<n>`` pattern are still never reused.
        """
        while True:
            self._sequence += 1
            candidate = f"{self._id_prefix}-{self._sequence:06d}"
            if candidate not in self._index:
                return candidate

    def rewind(self, sequence: int) -> None:
        """Hand back ids reserved by an operation that then failed."""
        self._sequence = min(self._sequence, sequence)

    def append(self, transaction: Transaction) -> None:
        """
        Add a transaction to the end of the log.

        Raises:
            DuplicateTransactionError: If the id is already logged
        """
        if transaction.id in self._index:
            raise DuplicateTransactionError(transaction.id)

        self._entries.append(transaction)
        self._index[transaction.id] = transaction

        match = self._id_pattern.match(transaction.id)
        if match:
            self._sequence = max(self._sequence, int(match.group(1)))

    def find(self, transaction_id: str) -> Optional[Transaction]:
        """Transaction by id, or None."""
        return self._index.get(transaction_id)

    def remove(self, transaction_id: str) -> Transaction:
        """
        Remove a transaction and return it so it can be reversed.

        Raises:
            TransactionNotFoundError: If the id is absent
        """
        transaction = self._index.pop(transaction_id, None)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        self._entries = [t for t in self._entries if t.id != transaction_id]
        return transaction

    def list(
        self,
        criteria: Optional[TransactionFilter] = None,
        *,
        transaction_type: Optional[TransactionType] = None,
        bucket_id: Optional[str] = None,
    ) -> TransactionView:
        """
        Lazy view of the log in creation order, optionally filtered.

        Pass either a TransactionFilter or the keyword shortcuts.
        """
        if criteria is None:
            criteria = TransactionFilter(
                transaction_type=transaction_type,
                bucket_id=bucket_id,
            )
        return TransactionView(self, criteria)

    def clear(self) -> None:
        """Empty the log. The id sequence keeps counting."""
        self._entries.clear()
        self._index.clear()

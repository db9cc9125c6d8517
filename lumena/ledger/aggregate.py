"""
Ledger Aggregate

One user's complete ledger: a bucket store, a transaction log and the
profile scalars captured at onboarding. Instances are explicit; there
is no process-wide ledger. Load and save happen at process boundaries
through the storage collaborator.

The aggregate carries a single re-entrant lock. LedgerEngine holds it
for the whole of every operation, so in a threaded host the cover and
expense steps of one expense see a consistent snapshot.
"""

import threading
from decimal import Decimal
from typing import Iterable, Optional

from lumena.ledger.buckets import BucketStore
from lumena.ledger.log import TransactionLog
from lumena.models.bucket import Bucket, IncomeType
from lumena.models.money import ZERO
from lumena.models.state import LedgerState
from lumena.models.transaction import Transaction


class Ledger:
    """Bucket store + transaction log + profile, behind one lock."""

    def __init__(
        self,
        buckets: Optional[Iterable[Bucket]] = None,
        transactions: Optional[Iterable[Transaction]] = None,
        income_type: Optional[IncomeType] = None,
        safety_margin: Decimal = ZERO,
        is_onboarding_complete: bool = False,
        id_prefix: str = "txn",
    ):
        self.lock = threading.RLock()
        self.buckets = BucketStore(buckets)
        self.transactions = TransactionLog(transactions, id_prefix=id_prefix)
        self.income_type = income_type
        self.safety_margin = safety_margin
        self.is_onboarding_complete = is_onboarding_complete
        self._id_prefix = id_prefix

    @classmethod
    def from_state(cls, state: LedgerState, id_prefix: str = "txn") -> "Ledger":
        return cls(
            buckets=[b.model_copy(deep=True) for b in state.buckets],
            transactions=[t.model_copy(deep=True) for t in state.transactions],
            income_type=state.income_type,
            safety_margin=state.safety_margin,
            is_onboarding_complete=state.is_onboarding_complete,
            id_prefix=id_prefix,
        )

    def to_state(self) -> LedgerState:
        """Detached snapshot of the full ledger."""
        with self.lock:
            return LedgerState(
                buckets=self.buckets.snapshot(),
                transactions=[t.model_copy(deep=True) for t in self.transactions],
                income_type=self.income_type,
                safety_margin=self.safety_margin,
                is_onboarding_complete=self.is_onboarding_complete,
            )

    def replace(self, state: LedgerState) -> None:
        """Swap in the contents of ``state``, keeping this instance and its lock."""
        with self.lock:
            self.buckets = BucketStore(b.model_copy(deep=True) for b in state.buckets)
            self.transactions = TransactionLog(
                (t.model_copy(deep=True) for t in state.transactions),
                id_prefix=self._id_prefix,
                start_sequence=self.transactions.sequence,
            )
            self.income_type = state.income_type
            self.safety_margin = state.safety_margin
            self.is_onboarding_complete = state.is_onboarding_complete

    def clear(self) -> None:
        """Back to the state of a brand new user."""
        self.replace(LedgerState.default())

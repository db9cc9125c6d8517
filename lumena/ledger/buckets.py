"""
Bucket Store

Mapping of bucket id -> Bucket. Insertion order is preserved so the UI
shows buckets in a stable order; replacing a bucket keeps its position.

adjust_balance() is the only way the engine changes money amounts.
Absolute balances are only written when a bucket is created or a
saved document is loaded.
"""

from decimal import Decimal
from typing import Iterable, Iterator, Optional

from lumena.ledger.errors import BucketNotFoundError
from lumena.models.bucket import Bucket
from lumena.models.money import ZERO


class BucketStore:
    """Current set of buckets and their balances."""

    def __init__(self, buckets: Optional[Iterable[Bucket]] = None):
        self._buckets: dict[str, Bucket] = {}
        for bucket in buckets or ():
            self.upsert(bucket)

    def __contains__(self, bucket_id: object) -> bool:
        return bucket_id in self._buckets

    def __len__(self) -> int:
        return len(self._buckets)

    def __iter__(self) -> Iterator[Bucket]:
        return iter(list(self._buckets.values()))

    def get(self, bucket_id: str) -> Optional[Bucket]:
        """Bucket by id, or None."""
        return self._buckets.get(bucket_id)

    def ids(self) -> list[str]:
        return list(self._buckets)

    def upsert(self, bucket: Bucket) -> None:
        """Insert or replace by id. Balance is not checked against anything."""
        self._buckets[bucket.id] = bucket

    def remove(self, bucket_id: str) -> Bucket:
        """
        Remove a bucket and return it.

        The caller has already decided what happens to its balance.

        Raises:
            BucketNotFoundError: If the bucket is absent
        """
        try:
            return self._buckets.pop(bucket_id)
        except KeyError:
            raise BucketNotFoundError(bucket_id) from None

    def adjust_balance(self, bucket_id: str, delta: Decimal) -> Decimal:
        """
        Apply ``balance += delta`` and return the new balance.

        Raises:
            BucketNotFoundError: If the bucket is absent
        """
        bucket = self._buckets.get(bucket_id)
        if bucket is None:
            raise BucketNotFoundError(bucket_id)
        bucket.balance = bucket.balance + delta
        return bucket.balance

    def total_balance(self) -> Decimal:
        return sum((b.balance for b in self._buckets.values()), ZERO)

    def clear(self) -> None:
        self._buckets.clear()

    def snapshot(self) -> list[Bucket]:
        """Deep copies of every bucket, in display order."""
        return [b.model_copy(deep=True) for b in self._buckets.values()]

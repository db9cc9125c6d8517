"""
Ledger Errors

Every ledger operation validates all of its preconditions before it
touches a balance. When one fails, the operation is a no-op and one of
these is raised. ``kind`` is a stable string the UI can switch on.
"""

from decimal import Decimal
from typing import Any


class LedgerError(Exception):
    """Base exception for ledger operations."""

    kind = "LedgerError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> dict[str, Any]:
        """Machine-readable description for the caller to render."""
        return {"kind": self.kind, "message": self.message}


class InvalidAmountError(LedgerError):
    """A non-positive (or non-numeric) amount where a positive one is required."""

    kind = "InvalidAmount"

    def __init__(self, field: str, value: Any, reason: str = "must be greater than zero"):
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field} {value!r}: {reason}")

    def details(self) -> dict[str, Any]:
        return {**super().details(), "field": self.field, "value": str(self.value)}


class InvalidDateError(LedgerError):
    """A date that is neither a date nor an ISO calendar date string."""

    kind = "InvalidDate"

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Invalid date {value!r}: expected YYYY-MM-DD")


class UnknownBucketError(LedgerError):
    """A referenced bucket id is not in the bucket store."""

    kind = "UnknownBucket"

    def __init__(self, bucket_id: str):
        self.bucket_id = bucket_id
        super().__init__(f"Unknown bucket: {bucket_id}")

    def details(self) -> dict[str, Any]:
        return {**super().details(), "bucket_id": self.bucket_id}


class SameBucketError(LedgerError):
    """Money cannot move from a bucket to itself."""

    kind = "SameBucket"

    def __init__(self, bucket_id: str):
        self.bucket_id = bucket_id
        super().__init__(f"Source and destination are the same bucket: {bucket_id}")

    def details(self) -> dict[str, Any]:
        return {**super().details(), "bucket_id": self.bucket_id}


class _SumMismatchError(LedgerError):
    def __init__(self, message: str, expected: Decimal, actual: Decimal):
        self.expected = expected
        self.actual = actual
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {
            **super().details(),
            "expected": str(self.expected),
            "actual": str(self.actual),
        }


class AllocationMismatchError(_SumMismatchError):
    """Income allocations don't add up to the income amount."""

    kind = "AllocationMismatch"

    def __init__(self, expected: Decimal, actual: Decimal):
        super().__init__(
            f"Allocations total {actual} but the income is {expected}",
            expected,
            actual,
        )


class CoverageMismatchError(_SumMismatchError):
    """Cover contributions don't exactly fund the expense shortfall."""

    kind = "CoverageMismatch"

    def __init__(self, expected: Decimal, actual: Decimal):
        super().__init__(
            f"Cover contributions total {actual} but the shortfall is {expected}",
            expected,
            actual,
        )


class NotFoundError(LedgerError):
    """Entity not found."""

    kind = "NotFound"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")

    def details(self) -> dict[str, Any]:
        return {
            **super().details(),
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
        }


class TransactionNotFoundError(NotFoundError):
    def __init__(self, transaction_id: str):
        super().__init__("transaction", transaction_id)


class BucketNotFoundError(NotFoundError):
    def __init__(self, bucket_id: str):
        super().__init__("bucket", bucket_id)


class DuplicateTransactionError(LedgerError):
    """Attempted to append a transaction whose id is already logged."""

    kind = "DuplicateTransaction"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction id already in the log: {transaction_id}")

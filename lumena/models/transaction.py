"""
Transaction Models

Every transaction in the log records exactly one mutation that has
already been applied to the bucket balances. Reversing a transaction
replays its recorded effects with the sign flipped; it never looks at
current balances.

Three variants, tagged by ``type``:
- income:   amount split across buckets (allocations)
- expense:  amount charged to one bucket
- transfer: amount moved between two buckets (explicit, or the
            "cover shortfall" step of an expense)
"""

import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from lumena.models.money import ALLOCATION_TOLERANCE, Money, within_tolerance


class TransactionType(str, Enum):
    """Transaction variants."""
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class _TransactionBase(BaseModel):
    """Fields shared by all transaction variants."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Unique, creation-ordered identifier"
    )
    date: datetime.date = Field(
        ...,
        description="Calendar date of the event (may differ from log order)"
    )
    description: str = Field(
        default="",
        description="Free text shown in the history"
    )
    amount: Money = Field(
        ...,
        description="Positive amount of money moved"
    )

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("Transaction amount must be greater than zero")
        return v

    def bucket_ids(self) -> tuple[str, ...]:
        """Buckets that participate in this transaction."""
        raise NotImplementedError

    def balance_effects(self) -> list[tuple[str, Decimal]]:
        """(bucket_id, delta) pairs this transaction applied, in order."""
        raise NotImplementedError

    def involves(self, bucket_id: str) -> bool:
        return bucket_id in self.bucket_ids()


class IncomeTransaction(_TransactionBase):
    """
    Income deposit split across buckets.

    CRITICAL: ``allocations`` must sum to ``amount`` within one cent.
    The model refuses to exist otherwise.
    """
    type: Literal["income"] = "income"
    source: str = Field(
        default="",
        description="Where the money came from (e.g. Salary)"
    )
    allocations: dict[str, Money] = Field(
        default_factory=dict,
        description="bucket id -> share actually credited"
    )

    @model_validator(mode="before")
    @classmethod
    def allocate_legacy_bucket(cls, data: Any) -> Any:
        """Older documents credit one bucket: ``{bucketId, amount}``."""
        if not isinstance(data, dict) or data.get("allocations"):
            return data
        bucket_id = data.get("bucketId", data.get("bucket_id"))
        if not bucket_id:
            return data
        data = {k: v for k, v in data.items() if k not in ("bucketId", "bucket_id")}
        data["allocations"] = {bucket_id: data.get("amount")}
        return data

    @model_validator(mode="after")
    def validate_allocations(self) -> "IncomeTransaction":
        total = sum(self.allocations.values(), Decimal("0"))
        if not within_tolerance(total, self.amount, ALLOCATION_TOLERANCE):
            raise ValueError(
                f"Allocations sum to {total} but income amount is {self.amount}"
            )
        return self

    def bucket_ids(self) -> tuple[str, ...]:
        return tuple(self.allocations)

    def balance_effects(self) -> list[tuple[str, Decimal]]:
        return [
            (bucket_id, share)
            for bucket_id, share in self.allocations.items()
            if share != 0
        ]


class ExpenseTransaction(_TransactionBase):
    """Expense charged against exactly one bucket."""
    type: Literal["expense"] = "expense"
    bucket_id: str = Field(
        ...,
        min_length=1,
        description="Bucket the expense is charged to"
    )

    def bucket_ids(self) -> tuple[str, ...]:
        return (self.bucket_id,)

    def balance_effects(self) -> list[tuple[str, Decimal]]:
        return [(self.bucket_id, -self.amount)]


class TransferTransaction(_TransactionBase):
    """Money moved between two buckets. Always nets to zero."""
    type: Literal["transfer"] = "transfer"
    from_bucket_id: str = Field(..., min_length=1)
    to_bucket_id: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_distinct_buckets(self) -> "TransferTransaction":
        if self.from_bucket_id == self.to_bucket_id:
            raise ValueError("Transfer source and destination must differ")
        return self

    def bucket_ids(self) -> tuple[str, ...]:
        return (self.from_bucket_id, self.to_bucket_id)

    def balance_effects(self) -> list[tuple[str, Decimal]]:
        return [
            (self.from_bucket_id, -self.amount),
            (self.to_bucket_id, self.amount),
        ]


Transaction = Annotated[
    Union[IncomeTransaction, ExpenseTransaction, TransferTransaction],
    Field(discriminator="type"),
]


class CoverContribution(BaseModel):
    """One source bucket's contribution towards an expense shortfall."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    from_bucket_id: str = Field(..., min_length=1)
    amount: Money

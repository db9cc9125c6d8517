"""
Bucket Models

A bucket is a named container holding part of the user's money.
Balances are signed: overdraft is a normal state, not an error.

Saved documents use camelCase keys. Documents written by the first
version of the app stored the balance as ``amount`` and the weight as
``percentage``; both spellings are accepted on load.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from lumena.models.money import ZERO, Money


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BucketCategory(str, Enum):
    """Budgeting category of a bucket."""
    ESSENTIALS = "Essentials"
    SAVINGS = "Savings"
    TAX = "Tax"
    PLAY = "Play"


class IncomeType(str, Enum):
    """How regular the user's income is (captured during onboarding)."""
    STEADY = "Steady"
    IRREGULAR = "Irregular"
    MIXED = "Mixed"


class Strategy(str, Enum):
    """
    Starter allocation strategies offered during onboarding.

    See lumena.ledger.strategies for the weights behind each one.
    """
    BALANCED = "Balanced"
    AGGRESSIVE = "Aggressive"
    SURVIVAL = "Survival"


def new_bucket_id() -> str:
    """Opaque bucket identifier."""
    return uuid4().hex


# =============================================================================
# BUCKET
# =============================================================================

class Bucket(BaseModel):
    """
    A money container.

    ``balance`` is only ever changed by the ledger engine. Edits made
    through the UI (rename, recolor, retarget) leave it untouched.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(
        default_factory=new_bucket_id,
        min_length=1,
        description="Stable identifier for the bucket's lifetime"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display label"
    )
    category: BucketCategory = Field(
        ...,
        description="Budgeting category"
    )
    balance: Money = Field(
        default=ZERO,
        validation_alias=AliasChoices("balance", "amount"),
        serialization_alias="balance",
        description="Current balance, may be negative"
    )
    allocation_percentage: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        le=100,
        validation_alias=AliasChoices(
            "allocationPercentage", "allocation_percentage", "percentage"
        ),
        serialization_alias="allocationPercentage",
        description="Weight used when proposing a split of new income"
    )
    target: Optional[Money] = Field(
        default=None,
        description="Savings target (informational only)"
    )
    color: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Display colour token"
    )

    @field_validator("target")
    @classmethod
    def validate_target(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        """Targets cannot be negative."""
        if v is not None and v < 0:
            raise ValueError("Target cannot be negative")
        return v

    @property
    def is_overdrawn(self) -> bool:
        return self.balance < 0

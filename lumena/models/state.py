"""
Ledger State Document

The whole ledger (buckets, transaction log and a few profile scalars)
round-trips through one JSON-compatible document. The same document is
what the storage collaborator persists and what the backup download
writes verbatim. There is no schema version.
"""

from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from lumena.models.bucket import Bucket, IncomeType
from lumena.models.money import ZERO, Money
from lumena.models.transaction import Transaction


class LedgerState(BaseModel):
    """
    Full state of one user's ledger.

    A missing document means a brand new user: no buckets, no
    transactions, safety margin 0, onboarding not complete.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    buckets: list[Bucket] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    income_type: Optional[IncomeType] = None
    safety_margin: Money = Field(
        default=ZERO,
        description="Monthly minimum need, used for runway"
    )
    is_onboarding_complete: bool = False

    @field_validator("safety_margin")
    @classmethod
    def validate_safety_margin(cls, v):
        if v < 0:
            raise ValueError("Safety margin cannot be negative")
        return v

    @classmethod
    def default(cls) -> "LedgerState":
        return cls()

    @classmethod
    def from_document(cls, document: Optional[Mapping[str, Any]]) -> "LedgerState":
        """
        Build state from a stored document.

        Raises pydantic.ValidationError if the document is malformed.
        """
        if document is None:
            return cls.default()
        return cls.model_validate(dict(document))

    def to_document(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)

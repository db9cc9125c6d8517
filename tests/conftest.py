"""Shared fixtures for the ledger tests."""

import pytest

from lumena.audit import AuditLogger
from lumena.ledger import LedgerEngine
from lumena.models import BucketCategory


@pytest.fixture
def audit_events():
    """List that receives every audit event emitted during a test."""
    return []


@pytest.fixture
def audit_logger(audit_events):
    return AuditLogger(sink=audit_events.append)


@pytest.fixture
def engine(audit_logger):
    return LedgerEngine(audit_logger=audit_logger)


@pytest.fixture
def buckets(engine):
    """Essentials / Savings / Play at 50 / 30 / 20, all empty. Returns name -> id."""
    ids = {}
    for name, category, weight in (
        ("Essentials", BucketCategory.ESSENTIALS, 50),
        ("Savings", BucketCategory.SAVINGS, 30),
        ("Play", BucketCategory.PLAY, 20),
    ):
        bucket = engine.add_bucket(name=name, category=category, allocation_percentage=weight)
        ids[name] = bucket.id
    return ids


@pytest.fixture
def funded(engine, buckets):
    """The bucket set after a 1000 salary split 500 / 300 / 200."""
    engine.record_income(
        amount=1000,
        source="Salary",
        date="2024-01-01",
        allocations={
            buckets["Essentials"]: 500,
            buckets["Savings"]: 300,
            buckets["Play"]: 200,
        },
    )
    return buckets

"""
Lumena - Bucket Ledger

Tracks a single user's money across named buckets and a chronological
log of income, expense and transfer events.

DESIGN PRINCIPLES:
1. Validate everything, then mutate
2. The transaction log is the only source for reversals
3. No silent corrections
4. Every ledger event is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Lumena Team"

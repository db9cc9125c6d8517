"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for state persistence.
This allows us to:
1. Swap the JSON file store for a database later
2. Use in-memory storage for testing
3. Keep the ledger engine decoupled from where its document lives

The interface is intentionally simple: the whole ledger is one JSON
document stored under one fixed key. Storage never interprets the
document; validation happens when the ledger loads it.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class StateStorageInterface(ABC):
    """
    Abstract interface for ledger state storage.

    Any storage implementation (local files, a browser key-value
    store behind an API, a database) must implement these methods.
    """

    @abstractmethod
    async def load_state(self, key: str) -> Optional[dict[str, Any]]:
        """
        Load the document stored under a key.

        Args:
            key: Logical storage key

        Returns:
            The stored document, or None if nothing is stored under key

        Raises:
            CorruptStateError: If something is stored but cannot be parsed
            StorageError: If the backend fails
        """
        pass

    @abstractmethod
    async def save_state(self, key: str, document: dict[str, Any]) -> bool:
        """
        Replace the document stored under a key.

        Args:
            key: Logical storage key
            document: JSON-compatible ledger document

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def delete_state(self, key: str) -> bool:
        """
        Remove the document stored under a key.

        Returns:
            True if something was deleted, False if nothing was stored
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class CorruptStateError(StorageError):
    """A stored document exists but cannot be read as a ledger."""
    pass

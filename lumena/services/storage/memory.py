"""
In-Memory Storage Implementation

Keeps documents in a dict. Used by tests and by the app when
persistence is switched off. Documents are deep-copied on the way in
and out so callers can never alias stored state.
"""

import copy
from typing import Any, Optional

from lumena.services.storage.interface import StateStorageInterface


class InMemoryStateStorage(StateStorageInterface):
    """Dict-backed state storage."""

    def __init__(self, documents: Optional[dict[str, dict[str, Any]]] = None):
        self._documents: dict[str, dict[str, Any]] = copy.deepcopy(documents or {})

    async def load_state(self, key: str) -> Optional[dict[str, Any]]:
        document = self._documents.get(key)
        return copy.deepcopy(document) if document is not None else None

    async def save_state(self, key: str, document: dict[str, Any]) -> bool:
        self._documents[key] = copy.deepcopy(document)
        return True

    async def delete_state(self, key: str) -> bool:
        return self._documents.pop(key, None) is not None

"""
Storage Services Package

Provides the abstract state storage interface and its implementations.
The ledger document is stored as JSON on local disk by default, but the
backend is designed to be swappable.
"""

from lumena.services.storage.interface import (
    CorruptStateError,
    StateStorageInterface,
    StorageError,
)
from lumena.services.storage.json_file import JsonFileStateStorage
from lumena.services.storage.memory import InMemoryStateStorage
from lumena.services.storage.backup import (
    backup_filename,
    render_backup,
    write_backup,
)

__all__ = [
    # Interface
    "StateStorageInterface",
    # Exceptions
    "CorruptStateError",
    "StorageError",
    # Implementations
    "InMemoryStateStorage",
    "JsonFileStateStorage",
    # Backups
    "backup_filename",
    "render_backup",
    "write_backup",
]

"""Services package."""

from lumena.services.storage import (
    CorruptStateError,
    InMemoryStateStorage,
    JsonFileStateStorage,
    StateStorageInterface,
    StorageError,
    backup_filename,
    render_backup,
    write_backup,
)

__all__ = [
    # Storage services
    "CorruptStateError",
    "InMemoryStateStorage",
    "JsonFileStateStorage",
    "StateStorageInterface",
    "StorageError",
    "backup_filename",
    "render_backup",
    "write_backup",
]

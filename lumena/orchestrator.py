"""
Main Orchestrator for Lumena

This module ties together the ledger engine, the state storage and the
audit logger, and defines the session lifecycle:
1. Open   (load document under the state key → ledger, defaults if absent)
2. Work   (engine operations, each atomic and audited)
3. Save   (export document → storage)
4. Backup (export document → dated JSON file)

DESIGN DECISION: The orchestrator enforces the boundaries:
- The engine never touches storage; persistence happens only here
- A malformed stored document is reported, never silently replaced
- Every load, save and storage failure is audited
"""

import datetime
from pathlib import Path
from typing import Optional
from uuid import UUID

from pydantic import ValidationError

from lumena.audit import AuditLogger, configure_logging, create_correlation_id
from lumena.config import get_settings
from lumena.ledger import Ledger, LedgerEngine
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


class LedgerSession:
    """
    One user's ledger bound to a storage backend.

    Flow:
    1. open() → the engine holds the stored state (or a fresh ledger)
    2. Caller runs engine operations
    3. save() → the whole document is written back under the state key

    The session never saves implicitly. The caller decides when a
    change is persisted.
    """

    def __init__(
        self,
        storage: StateStorageInterface,
        engine: Optional[LedgerEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
        state_key: Optional[str] = None,
        backup_dir: Optional[Path] = None,
    ):
        settings = get_settings().storage
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._engine = engine or LedgerEngine(audit_logger=self._audit_logger)
        self._state_key = state_key or settings.state_key
        self._backup_dir = Path(backup_dir) if backup_dir is not None else settings.backup_dir

    @property
    def engine(self) -> LedgerEngine:
        return self._engine

    @property
    def ledger(self) -> Ledger:
        return self._engine.ledger

    @property
    def state_key(self) -> str:
        return self._state_key

    async def open(self, correlation_id: Optional[UUID] = None) -> LedgerEngine:
        """
        Load the stored document into the engine.

        A missing document gives a brand new ledger.

        Raises:
            CorruptStateError: If the stored document is not a valid ledger
            StorageError: If the backend fails
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            document = await self._storage.load_state(self._state_key)
        except StorageError as e:
            self._audit_logger.log_storage_error(
                operation="load_state",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        try:
            self._engine.load_state(document)
        except ValidationError as e:
            self._audit_logger.log_storage_error(
                operation="load_state",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise CorruptStateError(
                f"Stored state '{self._state_key}' is not a valid ledger: "
                f"{e.error_count()} error(s)"
            ) from e

        ledger = self._engine.ledger
        self._audit_logger.log_state_loaded(
            key=self._state_key,
            found=document is not None,
            bucket_count=len(ledger.buckets),
            transaction_count=len(ledger.transactions),
            correlation_id=correlation_id,
        )
        return self._engine

    async def save(self, correlation_id: Optional[UUID] = None) -> bool:
        """
        Persist the current ledger under the state key.

        Raises:
            StorageError: If the backend fails
        """
        document = self._engine.export_state()

        try:
            saved = await self._storage.save_state(self._state_key, document)
        except StorageError as e:
            self._audit_logger.log_storage_error(
                operation="save_state",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        self._audit_logger.log_state_saved(
            key=self._state_key,
            transaction_count=len(document.get("transactions", [])),
            correlation_id=correlation_id,
        )
        return saved

    async def reset(self, correlation_id: Optional[UUID] = None) -> bool:
        """Clear everything, profile included, and persist the empty ledger."""
        correlation_id = correlation_id or create_correlation_id()
        self._engine.reset_all(correlation_id=correlation_id)
        return await self.save(correlation_id=correlation_id)

    def backup(self, on: Optional[datetime.date] = None) -> tuple[str, str]:
        """
        Backup file name and contents, for a download button.

        Returns:
            (filename, json_text)
        """
        return backup_filename(on), render_backup(self._engine.export_state())

    def export_backup(
        self,
        directory: Optional[Path] = None,
        on: Optional[datetime.date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Path:
        """Write ``lumena_backup_<date>.json`` to the backup directory."""
        path = write_backup(
            self._engine.export_state(),
            directory if directory is not None else self._backup_dir,
            on=on,
        )
        self._audit_logger.log_backup_exported(
            path=str(path),
            correlation_id=correlation_id,
        )
        return path


def create_app_components(
    use_storage: bool = True,
) -> LedgerSession:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to persist to the JSON data directory.
                    Set to False to keep the ledger in memory only.

    Returns:
        An unopened LedgerSession
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    audit_logger = AuditLogger()

    if use_storage:
        storage: StateStorageInterface = JsonFileStateStorage(settings.storage.data_dir)
    else:
        storage = InMemoryStateStorage()

    engine = LedgerEngine(audit_logger=audit_logger)

    return LedgerSession(
        storage=storage,
        engine=engine,
        audit_logger=audit_logger,
        state_key=settings.storage.state_key,
        backup_dir=settings.storage.backup_dir,
    )

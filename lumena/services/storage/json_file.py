"""
JSON File Storage Implementation

DESIGN DECISION: One pretty-printed JSON file per key in a data directory.
1. The file is exactly the backup format, so users can inspect it
2. No database setup required
3. Writes go to a temporary file that replaces the old one, so a crash
   mid-write never leaves a half-written ledger behind

TRADEOFFS:
- The whole document is rewritten on every save (fine for one person's ledger)
- No cross-process locking (one app process per data directory)

File I/O runs in a worker thread so the async interface never blocks
the event loop. Transient OS errors are retried.
"""

import asyncio
import json
import os
import re
from pathlib import Path
from typing import Any, Optional

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from lumena.config import get_settings
from lumena.services.storage.interface import (
    CorruptStateError,
    StateStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

KEY_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")

_io_retry = retry(
    retry=retry_if_exception_type(OSError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    reraise=True,
)


class JsonFileStateStorage(StateStorageInterface):
    """
    File-backed state storage: ``<data_dir>/<key>.json``.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        self._data_dir = Path(data_dir) if data_dir is not None else get_settings().storage.data_dir

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, key: str) -> Path:
        """
        File path for a key.

        Raises:
            StorageError: If the key could escape the data directory
        """
        if not KEY_PATTERN.match(key) or key in (".", ".."):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}.json"

    # =========================================================================
    # BLOCKING HELPERS (run in a worker thread)
    # =========================================================================

    @_io_retry
    def _read(self, path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    @_io_retry
    def _write(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f"{path.name}.tmp")
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, path)

    @_io_retry
    def _unlink(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    # =========================================================================
    # INTERFACE
    # =========================================================================

    async def load_state(self, key: str) -> Optional[dict[str, Any]]:
        path = self.path_for(key)
        try:
            text = await asyncio.to_thread(self._read, path)
        except OSError as e:
            logger.error("state_read_failed", key=key, path=str(path), error=str(e))
            raise StorageError(f"Failed to read state '{key}': {e}") from e

        if text is None:
            logger.info("state_not_found", key=key, path=str(path))
            return None

        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise CorruptStateError(f"State '{key}' is not valid JSON: {e}") from e

        if not isinstance(document, dict):
            raise CorruptStateError(
                f"State '{key}' must be a JSON object, got {type(document).__name__}"
            )
        return document

    async def save_state(self, key: str, document: dict[str, Any]) -> bool:
        path = self.path_for(key)
        try:
            text = json.dumps(document, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"State '{key}' is not JSON-serializable: {e}") from e

        try:
            await asyncio.to_thread(self._write, path, text)
        except OSError as e:
            logger.error("state_write_failed", key=key, path=str(path), error=str(e))
            raise StorageError(f"Failed to save state '{key}': {e}") from e

        logger.debug("state_written", key=key, path=str(path), size=len(text))
        return True

    async def delete_state(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            return await asyncio.to_thread(self._unlink, path)
        except OSError as e:
            raise StorageError(f"Failed to delete state '{key}': {e}") from e

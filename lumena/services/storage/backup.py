"""
Backup Export

A backup is the full state document, pretty-printed with two-space
indentation, named ``lumena_backup_<YYYY-MM-DD>.json``. It is the same
document the ledger loads, so a backup can be restored by saving it
back under the state key.
"""

import datetime
import json
from pathlib import Path
from typing import Any, Optional


BACKUP_PREFIX = "lumena_backup_"


def backup_filename(on: Optional[datetime.date] = None) -> str:
    """``lumena_backup_<YYYY-MM-DD>.json`` for the given day (default today)."""
    on = on or datetime.date.today()
    return f"{BACKUP_PREFIX}{on.isoformat()}.json"


def render_backup(document: dict[str, Any]) -> str:
    """Backup file contents."""
    return json.dumps(document, indent=2, ensure_ascii=False)


def write_backup(
    document: dict[str, Any],
    directory: Path,
    on: Optional[datetime.date] = None,
) -> Path:
    """
    Write a backup file into ``directory`` (created if missing).

    A backup for the same day is overwritten.

    Returns:
        Path of the written file
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / backup_filename(on)
    path.write_text(render_backup(document), encoding="utf-8")
    return path

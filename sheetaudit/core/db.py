"""SQLite access for SheetAudit.

One database file (``settings.DB_PATH``) holds the uploaded dataset
registry, the detected columns and every audit run with its mismatches.
The uploaded files themselves live under ``settings.STORAGE_PATH``.
"""
from __future__ import annotations

import sqlite3
from pathlib import Path

from .config import settings


def get_connection() -> sqlite3.Connection:
    """Open a connection to the audit database.

    Each request handler opens its own connection and closes it when done,
    so connections are never shared between threads.
    """
    return sqlite3.connect(str(settings.DB_PATH))


def init_db() -> None:
    """Create the database file and its directory on first use.

    Tables come from `repo.schema.create_tables`, which is safe to call on
    every request.
    """
    db_path = Path(settings.DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    if db_path.exists():
        return
    # touching the file is enough; sqlite creates it on connect
    sqlite3.connect(str(db_path)).close()


__all__ = ["get_connection", "init_db"]

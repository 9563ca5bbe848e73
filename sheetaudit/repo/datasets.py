"""Repository helpers for dataset records.

Insert and read rows of the `datasets` table, which tracks every uploaded
file and where it is stored.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


_COLUMNS = ("id", "name", "format", "storage_path", "row_count", "created_at")


def _row_to_dict(row) -> Dict[str, Any]:
    return dict(zip(_COLUMNS, row))


def create_dataset_record(
    conn: Any,
    name: str,
    format: str,
    storage_path: str,
    row_count: int | None = None,
) -> int:
    """Insert a new dataset record and return the inserted id.

    The function commits the transaction.
    """
    created_at = datetime.now(timezone.utc).isoformat()
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO datasets (name, format, storage_path, row_count, created_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        (name, format, storage_path, row_count, created_at),
    )
    conn.commit()
    return cur.lastrowid


def update_row_count(conn: Any, dataset_id: int, row_count: int) -> None:
    cur = conn.cursor()
    cur.execute("UPDATE datasets SET row_count = ? WHERE id = ?", (int(row_count), dataset_id))
    conn.commit()


def get_dataset(conn: Any, dataset_id: int) -> Optional[Dict[str, Any]]:
    """Return the dataset record as a dict, or None when it does not exist."""
    cur = conn.cursor()
    cur.execute(f"SELECT {', '.join(_COLUMNS)} FROM datasets WHERE id = ?", (dataset_id,))
    row = cur.fetchone()
    return _row_to_dict(row) if row else None


def list_datasets(conn: Any) -> List[Dict[str, Any]]:
    cur = conn.cursor()
    cur.execute(f"SELECT {', '.join(_COLUMNS)} FROM datasets ORDER BY id ASC")
    return [_row_to_dict(r) for r in cur.fetchall()]


__all__ = ["create_dataset_record", "update_row_count", "get_dataset", "list_datasets"]

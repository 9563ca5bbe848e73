"""Repository helpers for dataset columns.

Provides `save_detected_columns` which inserts one row per detected column
(with its inferred type) into the `dataset_columns` table.
"""
from __future__ import annotations

from typing import Any, Dict, List


def save_detected_columns(conn: Any, dataset_id: int, col_types: Dict[str, str]) -> List[int]:
    """Persist detected columns for a dataset, replacing earlier ones.

    `col_types` maps column name -> inferred type; its iteration order is
    stored as the column position. Returns a list of inserted row ids.
    """
    cur = conn.cursor()
    cur.execute("DELETE FROM dataset_columns WHERE dataset_id = ?", (dataset_id,))

    inserted_ids: List[int] = []
    for position, (name, data_type) in enumerate(col_types.items()):
        cur.execute(
            "INSERT INTO dataset_columns (dataset_id, position, name, data_type) VALUES (?, ?, ?, ?)",
            (dataset_id, position, str(name), data_type),
        )
        inserted_ids.append(cur.lastrowid)

    conn.commit()
    return inserted_ids


def get_dataset_columns(conn: Any, dataset_id: int) -> List[Dict[str, Any]]:
    """Return the stored columns of a dataset in their original order."""
    cur = conn.cursor()
    cur.execute(
        "SELECT name, data_type FROM dataset_columns WHERE dataset_id = ? ORDER BY position ASC",
        (dataset_id,),
    )
    return [{"name": r[0], "type": r[1]} for r in cur.fetchall()]


__all__ = ["save_detected_columns", "get_dataset_columns"]

"""Repository helpers for audit runs and their mismatches.

A run row records the configuration and summary of one audit; each
mismatch row stores one MismatchRecord with its lists and dicts as JSON.
"""
from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import sqlite3
from typing import Any, Dict, Iterable, List, Optional

from ..pipeline.audit import AuditSpec, MismatchRecord


LOG = logging.getLogger(__name__)

RUN_STATUS_RUNNING = "running"
RUN_STATUS_DONE = "done"
RUN_STATUS_FAILED = "failed"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dumps(value: Any) -> str:
    # raw cells can hold Timestamps and other non-JSON types
    return json.dumps(value, default=str)


def _safe_json_load(text: Optional[str], default: Any) -> Any:
    if not text:
        return default
    try:
        return json.loads(text)
    except Exception:
        LOG.debug("Failed to parse JSON: %s", text, exc_info=True)
        return default


def create_audit_run(
    conn: sqlite3.Connection,
    primary_key: str,
    dataset_ids: List[int],
    specs: Iterable[AuditSpec],
    treat_missing_as_mismatch: bool,
) -> int:
    """Insert a run in `running` state and return its id."""
    cur = conn.cursor()
    cur.execute(
        """
        INSERT INTO audit_runs
        (primary_key, dataset_ids_json, specs_json, treat_missing_as_mismatch, status, started_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            primary_key,
            json.dumps([int(i) for i in dataset_ids]),
            json.dumps([{"name": s.name, "type": s.type} for s in specs]),
            int(bool(treat_missing_as_mismatch)),
            RUN_STATUS_RUNNING,
            _now(),
        ),
    )
    conn.commit()
    return cur.lastrowid


def finish_audit_run(conn: sqlite3.Connection, run_id: int, status: str, summary: Dict[str, Any]) -> None:
    cur = conn.cursor()
    cur.execute(
        "UPDATE audit_runs SET status = ?, finished_at = ?, summary_json = ? WHERE id = ?",
        (status, _now(), _dumps(summary), run_id),
    )
    conn.commit()


def save_mismatches(conn: sqlite3.Connection, run_id: int, records: Iterable[MismatchRecord]) -> int:
    """Insert all mismatch records of a run and return how many were saved."""
    cur = conn.cursor()
    params = [
        (run_id, r.key, json.dumps(list(r.mismatched_columns)), _dumps(r.per_dataset_data))
        for r in records
    ]
    if params:
        cur.executemany(
            """
            INSERT INTO audit_mismatches (run_id, row_key, mismatched_columns_json, per_dataset_json)
            VALUES (?, ?, ?, ?)
            """,
            params,
        )
    conn.commit()
    return len(params)


def get_audit_run(conn: sqlite3.Connection, run_id: int) -> Optional[Dict[str, Any]]:
    """Return a run as a dict, or None when it does not exist."""
    cur = conn.cursor()
    cur.execute(
        """
        SELECT id, primary_key, dataset_ids_json, specs_json, treat_missing_as_mismatch,
               status, started_at, finished_at, summary_json
        FROM audit_runs WHERE id = ?
        """,
        (run_id,),
    )
    r = cur.fetchone()
    if not r:
        return None
    return {
        "id": r[0],
        "primary_key": r[1],
        "dataset_ids": _safe_json_load(r[2], []),
        "specs": _safe_json_load(r[3], []),
        "treat_missing_as_mismatch": bool(r[4]),
        "status": r[5],
        "started_at": r[6],
        "finished_at": r[7],
        "summary": _safe_json_load(r[8], None),
    }


def get_mismatches_for_run(conn: sqlite3.Connection, run_id: int) -> List[MismatchRecord]:
    """Return all mismatch records of a run, in the order they were found."""
    cur = conn.cursor()
    cur.execute(
        "SELECT row_key, mismatched_columns_json, per_dataset_json FROM audit_mismatches WHERE run_id = ? ORDER BY id ASC",
        (run_id,),
    )
    return [
        MismatchRecord(
            key=r[0],
            mismatched_columns=_safe_json_load(r[1], []),
            per_dataset_data=_safe_json_load(r[2], []),
        )
        for r in cur.fetchall()
    ]


__all__ = [
    "RUN_STATUS_RUNNING",
    "RUN_STATUS_DONE",
    "RUN_STATUS_FAILED",
    "create_audit_run",
    "finish_audit_run",
    "save_mismatches",
    "get_audit_run",
    "get_mismatches_for_run",
]

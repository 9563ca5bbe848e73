"""Database schema for repository layer.

Defines SQL for the dataset and audit tables and a helper to create them.
"""
from __future__ import annotations

from typing import Any
import sqlite3


DATASETS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS datasets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT,
    format TEXT,
    storage_path TEXT,
    row_count INTEGER,
    created_at TEXT
);
"""


DATASET_COLUMNS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS dataset_columns (
    id INTEGER PRIMARY KEY,
    dataset_id INTEGER,
    position INTEGER,
    name TEXT,
    data_type TEXT
);
"""


AUDIT_RUNS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS audit_runs (
    id INTEGER PRIMARY KEY,
    primary_key TEXT,
    dataset_ids_json TEXT,
    specs_json TEXT,
    treat_missing_as_mismatch INTEGER,
    status TEXT,
    started_at TEXT,
    finished_at TEXT,
    summary_json TEXT
);
"""


AUDIT_MISMATCHES_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS audit_mismatches (
    id INTEGER PRIMARY KEY,
    run_id INTEGER,
    row_key TEXT,
    mismatched_columns_json TEXT,
    per_dataset_json TEXT
);
"""


def create_tables(conn: sqlite3.Connection | Any) -> None:
    """Create required tables on the given SQLite connection.

    The function will execute DDL statements and commit the transaction.
    """
    cur = conn.cursor()
    cur.execute(DATASETS_TABLE_SQL)
    cur.execute(DATASET_COLUMNS_TABLE_SQL)
    cur.execute(AUDIT_RUNS_TABLE_SQL)
    cur.execute(AUDIT_MISMATCHES_TABLE_SQL)
    cur.execute("CREATE INDEX IF NOT EXISTS idx_audit_mismatches_run ON audit_mismatches (run_id)")
    conn.commit()


__all__ = [
    "DATASETS_TABLE_SQL",
    "DATASET_COLUMNS_TABLE_SQL",
    "AUDIT_RUNS_TABLE_SQL",
    "AUDIT_MISMATCHES_TABLE_SQL",
    "create_tables",
]

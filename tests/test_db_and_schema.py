import importlib
import logging

from sheetaudit.core.config import Settings, settings
from sheetaudit.core.db import init_db, get_connection
from sheetaudit.repo import schema


def test_init_db_creates_file_and_tables(tmp_path, monkeypatch):
    # point DB_PATH to a temp file in a missing directory
    temp_db = tmp_path / "nested" / "test.db"
    monkeypatch.setattr(settings, "DB_PATH", str(temp_db))

    init_db()
    assert temp_db.exists()

    conn = get_connection()
    try:
        schema.create_tables(conn)
        # calling twice must be harmless
        schema.create_tables(conn)

        cur = conn.cursor()
        for table in ("datasets", "dataset_columns", "audit_runs", "audit_mismatches"):
            cur.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,))
            assert cur.fetchone() is not None
    finally:
        conn.close()


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("SHEETAUDIT_TREAT_MISSING_AS_MISMATCH", "yes")
    monkeypatch.setenv("SHEETAUDIT_INFER_SAMPLE_SIZE", "25")
    monkeypatch.setenv("SHEETAUDIT_LOG_LEVEL", "debug")

    cfg = Settings()
    assert cfg.TREAT_MISSING_AS_MISMATCH is True
    assert cfg.INFER_SAMPLE_SIZE == 25
    assert cfg.LOG_LEVEL == "DEBUG"


def test_settings_defaults(monkeypatch):
    for name in ("DB_PATH", "STORAGE_PATH", "TREAT_MISSING_AS_MISMATCH", "INFER_SAMPLE_SIZE", "LOG_LEVEL"):
        monkeypatch.delenv(f"SHEETAUDIT_{name}", raising=False)

    assert Settings().as_dict() == {
        "DB_PATH": "data/app.db",
        "STORAGE_PATH": "storage",
        "TREAT_MISSING_AS_MISMATCH": False,
        "INFER_SAMPLE_SIZE": 100,
        "LOG_LEVEL": "INFO",
    }


def test_startup_logs_effective_settings(caplog):
    import main

    with caplog.at_level(logging.INFO, logger="sheetaudit"):
        importlib.reload(main)
    assert "Starting SheetAudit with settings" in caplog.text
    assert "TREAT_MISSING_AS_MISMATCH" in caplog.text

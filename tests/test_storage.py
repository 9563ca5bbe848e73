from pathlib import Path

import pandas as pd

from sheetaudit.core.storage import export_to_excel, save_file
from sheetaudit.core.config import settings


def test_save_file_creates_storage_and_writes(tmp_path, monkeypatch):
    storage_dir = tmp_path / "storage"
    monkeypatch.setattr(settings, "STORAGE_PATH", str(storage_dir))

    file_bytes = b"id,status\n1,Active\n"
    filename = "../weird name.csv"

    abs_path = save_file(file_bytes, filename)
    p = Path(abs_path)
    assert p.exists()
    assert p.read_bytes() == file_bytes
    # ensure returned path is absolute and stays inside storage
    assert p.is_absolute()
    assert p.parent == (storage_dir / "uploads").resolve()
    assert p.name.endswith("weird_name.csv")


def test_same_name_uploads_do_not_collide(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "STORAGE_PATH", str(tmp_path / "storage"))
    first = save_file(b"a", "same.csv")
    second = save_file(b"b", "same.csv")
    assert first != second


def test_export_to_excel_creates_file(tmp_path):
    df = pd.DataFrame({"a": [1], "b": [2]})
    out = export_to_excel(df, tmp_path / "out" / "t.xlsx", sheet_name="data")
    p = Path(out)
    assert p.exists()
    assert pd.read_excel(p, sheet_name="data")["a"].tolist() == [1]

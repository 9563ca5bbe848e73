"""File storage helpers.

`save_file` writes uploaded bytes under the configured `STORAGE_PATH`;
`export_to_excel` writes a DataFrame to an XLSX file.
"""
from __future__ import annotations

import re
import uuid
from pathlib import Path
from typing import Union

import pandas as pd

from .config import settings


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _safe_filename(filename: str) -> str:
    name = Path(filename or "").name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "upload"


def save_file(file_bytes: bytes, filename: str) -> str:
    """Save `file_bytes` under `settings.STORAGE_PATH/uploads`.

    A short random prefix keeps two uploads with the same name apart.
    Returns the absolute path to the saved file as a string.
    """
    storage_dir = Path(settings.STORAGE_PATH) / "uploads"
    storage_dir.mkdir(parents=True, exist_ok=True)

    file_path = storage_dir / f"{uuid.uuid4().hex[:8]}_{_safe_filename(filename)}"
    file_path.write_bytes(file_bytes)

    return str(file_path.resolve())


def export_to_excel(df: pd.DataFrame, path: Union[str, Path], sheet_name: str = "Sheet1") -> str:
    """Export a DataFrame to an Excel file at `path`.

    Ensures the parent directory exists. Returns the absolute path to the
    written file as a string.
    """
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    with pd.ExcelWriter(file_path, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)

    return str(file_path.resolve())


__all__ = ["save_file", "export_to_excel"]

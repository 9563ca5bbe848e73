"""Importer utilities for the audit pipeline.

Small helpers to read incoming files (Excel/CSV) into DataFrames and to
turn a DataFrame into the row records the audit engine consumes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import logging

import pandas as pd


LOG = logging.getLogger(__name__)

# Supported formats
EXCEL_FORMATS = {"excel", "xls", "xlsx"}
TEXT_FORMATS = {"txt", "csv"}
ALLOWED_FORMATS = EXCEL_FORMATS | TEXT_FORMATS


def _path_to_pathlike(path: str | Path) -> Path:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {p}")
    return p


def _stringify_columns(df: pd.DataFrame) -> pd.DataFrame:
    df.columns = [str(c).strip() for c in df.columns]
    return df


def load_excel(path: str | Path, **kwargs: Any) -> pd.DataFrame:
    """Load the first sheet of an Excel file into a DataFrame.

    Blank cells are kept as empty strings. Raises FileNotFoundError when the
    path does not exist.
    """
    p = _path_to_pathlike(path)
    kwargs.setdefault("sheet_name", 0)
    df = pd.read_excel(p, **kwargs)
    return _stringify_columns(df.astype(object).where(pd.notna(df), ""))


def load_csv(path: str | Path, **kwargs: Any) -> pd.DataFrame:
    """Load a CSV/text file into a DataFrame of strings.

    Values are not converted (leading zeros in keys survive) and blank cells
    are kept as empty strings. Raises FileNotFoundError when the path does
    not exist.
    """
    p = _path_to_pathlike(path)
    kwargs.setdefault("dtype", str)
    kwargs.setdefault("keep_default_na", False)
    return _stringify_columns(pd.read_csv(p, **kwargs))


def format_from_filename(filename: str) -> str:
    """Return the lower-cased file extension used as a format token."""
    return Path(filename or "").suffix.lstrip(".").lower()


def resolve_format(fmt: Optional[str], filename: str) -> str:
    """Pick the explicit format token or fall back to the file extension.

    Raises ValueError for unsupported formats.
    """
    fmt_low = (fmt or "").strip().lower() or format_from_filename(filename)
    if fmt_low not in ALLOWED_FORMATS:
        raise ValueError(f"Unsupported format: {fmt or filename}. Use one of: {sorted(ALLOWED_FORMATS)}")
    return fmt_low


def load_table(path: str | Path, fmt: str, **kwargs: Any) -> pd.DataFrame:
    """Dispatch loader depending on `fmt` (case-insensitive).

    `fmt` is expected to be a simple token like 'xlsx' or 'csv'.
    """
    fmt_low = (fmt or "").strip().lower()
    if fmt_low in EXCEL_FORMATS:
        return load_excel(path, **kwargs)
    if fmt_low in TEXT_FORMATS:
        return load_csv(path, **kwargs)
    raise ValueError(f"Unsupported format: {fmt}")


def dataframe_to_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Convert a DataFrame into row records, NaN cells becoming ''."""
    if df is None or df.empty:
        return []
    clean = df.astype(object).where(pd.notna(df), "")
    clean.columns = [str(c) for c in clean.columns]
    return clean.to_dict(orient="records")


def load_rows(path: str | Path, fmt: str) -> List[Dict[str, Any]]:
    """Load a stored file straight into row records."""
    df = load_table(path, fmt)
    LOG.debug("Loaded %d rows x %d columns from %s", len(df.index), len(df.columns), path)
    return dataframe_to_rows(df)


__all__ = [
    "EXCEL_FORMATS",
    "TEXT_FORMATS",
    "ALLOWED_FORMATS",
    "load_excel",
    "load_csv",
    "format_from_filename",
    "resolve_format",
    "load_table",
    "dataframe_to_rows",
    "load_rows",
]

"""Export helpers: build the XLSX discrepancy report from audit mismatches.

The report has one row per (key, mismatched column) pair: the key, the
column name and the raw value each dataset holds for that column, with
"MISSING" where the dataset has no row for the key.
"""

from __future__ import annotations

import logging
import os
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from ..core.config import settings
from ..core.storage import export_to_excel
from .audit import MismatchRecord


LOG = logging.getLogger(__name__)

# Constants
REPORT_SHEET = "Audit Discrepancies"
MISSING_MARKER = "MISSING"
COLUMN_HEADER = "Discrepancy in Column"


def report_filename(day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"Audit_Report_{day.isoformat()}.xlsx"


def report_headers(primary_key: str, dataset_names: Sequence[str]) -> List[str]:
    return [f"Identifier ({primary_key})", COLUMN_HEADER] + [f"Value in {name}" for name in dataset_names]


def _cell(data: Optional[Dict[str, Any]], column: str) -> Any:
    if data is None:
        return MISSING_MARKER
    value = data.get(column)
    try:
        if value is None or pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return value


def build_report_rows(records: Iterable[MismatchRecord]) -> List[List[Any]]:
    rows: List[List[Any]] = []
    for record in records:
        for column in record.mismatched_columns:
            rows.append([record.key, column] + [_cell(d, column) for d in record.per_dataset_data])
    return rows


def build_report_frame(
    records: Iterable[MismatchRecord],
    primary_key: str,
    dataset_names: Sequence[str],
) -> pd.DataFrame:
    """Return the discrepancy report as a DataFrame.

    `dataset_names` labels the value columns; its length must match the
    number of datasets the records were produced from.
    """
    records = list(records)
    for record in records:
        if len(record.per_dataset_data) != len(dataset_names):
            raise ValueError(
                f"Record '{record.key}' has {len(record.per_dataset_data)} datasets, "
                f"expected {len(dataset_names)} names"
            )
    return pd.DataFrame(build_report_rows(records), columns=report_headers(primary_key, dataset_names))


def generate_audit_xlsx(
    records: Iterable[MismatchRecord],
    primary_key: str,
    dataset_names: Sequence[str],
    out_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Write the discrepancy report to XLSX.

    Defaults to `<STORAGE_PATH>/exports/Audit_Report_<date>.xlsx`.
    """
    df = build_report_frame(records, primary_key, dataset_names)
    if out_path is None:
        out_path = os.path.join(settings.STORAGE_PATH, "exports", report_filename())
    path = export_to_excel(df, out_path, sheet_name=REPORT_SHEET)
    LOG.info("Wrote audit report with %d rows to %s", len(df.index), path)
    return {"path": path, "rows": len(df.index), "columns": list(df.columns)}


__all__ = [
    "REPORT_SHEET",
    "MISSING_MARKER",
    "report_filename",
    "report_headers",
    "build_report_rows",
    "build_report_frame",
    "generate_audit_xlsx",
]

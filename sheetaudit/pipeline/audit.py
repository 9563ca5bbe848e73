"""Multi-source audit engine.

Compares N datasets row by row on a shared primary key and reports every
key whose audited columns disagree once normalized. The engine works on
in-memory row records only: it reads no files, keeps no state between
calls and never mutates the rows it is given.

Typical use::

    specs = [{"name": "status", "type": "string"}, {"name": "expire", "type": "date"}]
    mismatches = reconcile([rows_a, rows_b], "id", specs)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from .normalizer import COLUMN_TYPES, STRING, normalize, to_text


LOG = logging.getLogger(__name__)

Row = Mapping[str, Any]
Dataset = Union[Sequence[Row], pd.DataFrame]
SpecLike = Union["AuditSpec", Mapping[str, Any], Sequence[str], str]


class _Missing:
    """Marks a dataset that has no row for a key (distinct from an empty cell)."""

    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()
DEFAULT_TREAT_MISSING_AS_MISMATCH = False


class AuditConfigError(ValueError):
    """Raised when an audit configuration is rejected before scanning."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuditSpec:
    name: str
    type: str = STRING

    @classmethod
    def coerce(cls, spec: SpecLike) -> "AuditSpec":
        """Build an AuditSpec from an AuditSpec, a dict, a (name, type) pair or a bare name."""
        if isinstance(spec, AuditSpec):
            return spec
        if isinstance(spec, str):
            return cls(name=spec)
        if isinstance(spec, Mapping):
            if "name" not in spec:
                raise AuditConfigError(f"Audit spec without a column name: {dict(spec)}")
            return cls(name=spec["name"], type=spec.get("type") or STRING)
        if isinstance(spec, (list, tuple)) and len(spec) in (1, 2):
            return cls(name=spec[0], type=spec[1] if len(spec) == 2 else STRING)
        raise AuditConfigError(f"Unsupported audit spec: {spec!r}")


@dataclass
class MismatchRecord:
    """A key whose audited values diverge across datasets.

    `per_dataset_data[i]` holds the raw audited values of dataset `i`, or
    None when that dataset has no row for the key.
    """
    key: str
    mismatched_columns: List[str]
    per_dataset_data: List[Optional[Dict[str, Any]]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "mismatched_columns": list(self.mismatched_columns),
            "per_dataset_data": [dict(d) if d is not None else None for d in self.per_dataset_data],
        }


@dataclass
class DuplicateKey:
    dataset_index: int
    key: str
    occurrences: int

    def to_dict(self) -> Dict[str, Any]:
        return {"dataset_index": self.dataset_index, "key": self.key, "occurrences": self.occurrences}


@dataclass
class AuditResult:
    mismatches: List[MismatchRecord]
    duplicates: List[DuplicateKey] = field(default_factory=list)
    dataset_count: int = 0
    total_keys: int = 0

    def summary(self) -> Dict[str, Any]:
        column_counts: Dict[str, int] = {}
        for record in self.mismatches:
            for col in record.mismatched_columns:
                column_counts[col] = column_counts.get(col, 0) + 1
        return {
            "datasets": self.dataset_count,
            "total_keys": self.total_keys,
            "mismatched_keys": len(self.mismatches),
            "mismatches_by_column": column_counts,
            "duplicate_keys": len(self.duplicates),
        }


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def validate_specs(specs: Iterable[SpecLike], primary_key: str) -> List[AuditSpec]:
    """Validate and coerce audit specs before any row is read.

    Raises AuditConfigError for a blank primary key, unknown column types,
    blank or repeated column names, and a spec naming the primary key.
    """
    if primary_key is None or str(primary_key).strip() == "":
        raise AuditConfigError("A primary key column is required")

    validated: List[AuditSpec] = []
    seen = set()
    for raw in specs or []:
        spec = AuditSpec.coerce(raw)
        name = "" if spec.name is None else str(spec.name)
        if name.strip() == "":
            raise AuditConfigError("Audit spec column name must not be empty")
        col_type = str(spec.type).strip().lower()
        if col_type not in COLUMN_TYPES:
            raise AuditConfigError(
                f"Unknown column type '{spec.type}' for column '{name}'. Use one of: {list(COLUMN_TYPES)}"
            )
        if name == primary_key:
            raise AuditConfigError(f"The primary key column '{name}' cannot be audited")
        if name in seen:
            raise AuditConfigError(f"Column '{name}' is listed more than once")
        seen.add(name)
        validated.append(AuditSpec(name=name, type=col_type))
    return validated


# ---------------------------------------------------------------------------
# Key maps
# ---------------------------------------------------------------------------

def _rows(dataset: Dataset) -> Iterable[Row]:
    if isinstance(dataset, pd.DataFrame):
        return dataset.to_dict(orient="records")
    return dataset or []


def row_key(row: Row, primary_key: str) -> str:
    """Join key of a row: the trimmed string form of its primary key value."""
    return to_text(row.get(primary_key))


def build_key_map(rows: Iterable[Row], primary_key: str) -> Dict[str, Row]:
    """Map key -> row for one dataset.

    Rows with an empty key are skipped; a repeated key keeps its last row.
    """
    key_map: Dict[str, Row] = {}
    for row in rows:
        key = row_key(row, primary_key)
        if key:
            key_map[key] = row
    return key_map


def collect_keys(key_maps: Sequence[Mapping[str, Row]]) -> List[str]:
    """Union of keys in first-seen order, walking datasets in index order."""
    ordered: Dict[str, None] = {}
    for key_map in key_maps:
        for key in key_map:
            ordered.setdefault(key, None)
    return list(ordered)


def find_duplicate_keys(datasets: Sequence[Dataset], primary_key: str) -> List[DuplicateKey]:
    """Report keys that occur more than once inside a single dataset."""
    duplicates: List[DuplicateKey] = []
    for idx, dataset in enumerate(datasets):
        counts: Dict[str, int] = {}
        for row in _rows(dataset):
            key = row_key(row, primary_key)
            if key:
                counts[key] = counts.get(key, 0) + 1
        duplicates.extend(DuplicateKey(idx, key, n) for key, n in counts.items() if n > 1)
    return duplicates


# ---------------------------------------------------------------------------
# Comparison
# ---------------------------------------------------------------------------

def column_diverges(values: Sequence[Any], treat_missing_as_mismatch: bool = DEFAULT_TREAT_MISSING_AS_MISMATCH) -> bool:
    """Decide whether normalized values of one column disagree for one key.

    `values` holds one entry per dataset, MISSING where the dataset has no
    row. Present values must all equal the first present one. With
    `treat_missing_as_mismatch`, a key absent from some datasets but present
    in others also counts as a divergence.
    """
    present = [v for v in values if v is not MISSING]
    if not present:
        return False
    pivot = present[0]
    if any(v != pivot for v in present[1:]):
        return True
    return treat_missing_as_mismatch and len(present) < len(values)


def _audited_values(row: Row, specs: Sequence[AuditSpec]) -> Dict[str, Any]:
    return {spec.name: row.get(spec.name) for spec in specs}


def reconcile(
    datasets: Sequence[Dataset],
    primary_key: str,
    specs: Iterable[SpecLike],
    treat_missing_as_mismatch: bool = DEFAULT_TREAT_MISSING_AS_MISMATCH,
) -> List[MismatchRecord]:
    """Return one MismatchRecord per key with at least one divergent column.

    Records follow the order in which keys are first seen across datasets.
    """
    audit_specs = validate_specs(specs, primary_key)
    key_maps = [build_key_map(_rows(ds), primary_key) for ds in datasets]
    all_keys = collect_keys(key_maps)
    LOG.debug(
        "Reconciling %d datasets on '%s': %d keys, %d audited columns",
        len(key_maps), primary_key, len(all_keys), len(audit_specs),
    )

    mismatches: List[MismatchRecord] = []
    if not audit_specs:
        return mismatches

    for key in all_keys:
        rows = [key_map.get(key) for key_map in key_maps]
        mismatched_columns: List[str] = []

        for spec in audit_specs:
            values = [
                normalize(row.get(spec.name), spec.type) if row is not None else MISSING
                for row in rows
            ]
            if column_diverges(values, treat_missing_as_mismatch):
                mismatched_columns.append(spec.name)

        if mismatched_columns:
            mismatches.append(
                MismatchRecord(
                    key=key,
                    mismatched_columns=mismatched_columns,
                    per_dataset_data=[
                        _audited_values(row, audit_specs) if row is not None else None for row in rows
                    ],
                )
            )

    return mismatches


def run_audit(
    datasets: Sequence[Dataset],
    primary_key: str,
    specs: Iterable[SpecLike],
    treat_missing_as_mismatch: bool = DEFAULT_TREAT_MISSING_AS_MISMATCH,
) -> AuditResult:
    """Reconcile `datasets` and collect duplicate-key diagnostics and counts."""
    audit_specs = validate_specs(specs, primary_key)
    datasets = [list(_rows(ds)) for ds in datasets]
    mismatches = reconcile(datasets, primary_key, audit_specs, treat_missing_as_mismatch)
    total_keys = len(collect_keys([build_key_map(ds, primary_key) for ds in datasets]))
    result = AuditResult(
        mismatches=mismatches,
        duplicates=find_duplicate_keys(datasets, primary_key),
        dataset_count=len(datasets),
        total_keys=total_keys,
    )
    LOG.info(
        "Audit on '%s' finished: %d/%d keys mismatched, %d duplicate keys",
        primary_key, len(mismatches), total_keys, len(result.duplicates),
    )
    return result


# ---------------------------------------------------------------------------
# Result search
# ---------------------------------------------------------------------------

def filter_mismatches(records: Iterable[MismatchRecord], term: Optional[str]) -> List[MismatchRecord]:
    """Keep records whose key or any raw audited value contains `term`.

    Matching is case-insensitive on the trimmed string form; a blank term
    keeps everything.
    """
    records = list(records)
    needle = (term or "").strip().lower()
    if not needle:
        return records

    def _matches(record: MismatchRecord) -> bool:
        if needle in record.key.lower():
            return True
        for data in record.per_dataset_data:
            if data is None:
                continue
            if any(needle in to_text(v).lower() for v in data.values()):
                return True
        return False

    return [r for r in records if _matches(r)]


__all__ = [
    "MISSING",
    "AuditConfigError",
    "AuditSpec",
    "MismatchRecord",
    "DuplicateKey",
    "AuditResult",
    "validate_specs",
    "row_key",
    "build_key_map",
    "collect_keys",
    "find_duplicate_keys",
    "column_diverges",
    "reconcile",
    "run_audit",
    "filter_mismatches",
]

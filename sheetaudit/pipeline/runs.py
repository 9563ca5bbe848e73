"""Stored audit runs.

Loads uploaded datasets from storage, runs the audit engine over them and
persists the run with its mismatches. This is the only place where the
engine meets the database.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..repo.audit_results import (
    RUN_STATUS_DONE,
    RUN_STATUS_FAILED,
    create_audit_run,
    finish_audit_run,
    get_audit_run,
    get_mismatches_for_run,
    save_mismatches,
)
from ..repo.dataset_columns import get_dataset_columns
from ..repo.datasets import get_dataset
from .audit import AuditConfigError, AuditSpec, SpecLike, run_audit, validate_specs
from .exporter import generate_audit_xlsx
from .importer import load_rows


LOG = logging.getLogger(__name__)


class RecordNotFoundError(LookupError):
    """A dataset or audit run id that is not stored."""


def _load_dataset_records(conn, dataset_ids: Sequence[int]) -> List[Dict[str, Any]]:
    if not dataset_ids:
        raise AuditConfigError("At least one dataset is required")
    records = []
    for dataset_id in dataset_ids:
        record = get_dataset(conn, int(dataset_id))
        if record is None:
            raise RecordNotFoundError(f"Dataset not found: {dataset_id}")
        records.append(record)
    return records


def default_specs(conn, dataset_id: int, primary_key: str) -> List[AuditSpec]:
    """Every stored column of `dataset_id` except the key, with its inferred type."""
    return [
        AuditSpec(name=c["name"], type=c["type"] or "string")
        for c in get_dataset_columns(conn, dataset_id)
        if c["name"] != primary_key
    ]


def execute_audit_run(
    conn,
    dataset_ids: Sequence[int],
    primary_key: str,
    specs: Optional[Iterable[SpecLike]] = None,
    treat_missing_as_mismatch: bool = False,
) -> Dict[str, Any]:
    """Run and persist an audit over stored datasets.

    When `specs` is None every non-key column of the first dataset is
    audited with its inferred type. Configuration errors are raised before
    the run is recorded.
    """
    datasets_meta = _load_dataset_records(conn, dataset_ids)
    if specs is None:
        specs = default_specs(conn, datasets_meta[0]["id"], primary_key)
    audit_specs = validate_specs(specs, primary_key)

    run_id = create_audit_run(
        conn, primary_key, [d["id"] for d in datasets_meta], audit_specs, treat_missing_as_mismatch
    )
    try:
        datasets = [load_rows(d["storage_path"], d["format"]) for d in datasets_meta]
        result = run_audit(datasets, primary_key, audit_specs, treat_missing_as_mismatch)
        save_mismatches(conn, run_id, result.mismatches)
        summary = result.summary()
        summary["duplicates"] = [d.to_dict() for d in result.duplicates]
        finish_audit_run(conn, run_id, RUN_STATUS_DONE, summary)
    except Exception as exc:
        LOG.exception("Audit run %s failed", run_id)
        finish_audit_run(conn, run_id, RUN_STATUS_FAILED, {"error": str(exc)})
        raise

    return {
        "run_id": run_id,
        "status": RUN_STATUS_DONE,
        "primary_key": primary_key,
        "datasets": [{"id": d["id"], "name": d["name"]} for d in datasets_meta],
        "specs": [{"name": s.name, "type": s.type} for s in audit_specs],
        "treat_missing_as_mismatch": bool(treat_missing_as_mismatch),
        "summary": summary,
    }


def export_audit_run(conn, run_id: int, out_path: Optional[str] = None) -> Dict[str, Any]:
    """Write the XLSX discrepancy report of a stored run.

    Value columns are labelled with the uploaded file names.
    """
    run = get_audit_run(conn, run_id)
    if run is None:
        raise RecordNotFoundError(f"Audit run not found: {run_id}")

    names = []
    for dataset_id in run["dataset_ids"]:
        record = get_dataset(conn, int(dataset_id))
        names.append(record["name"] if record else f"dataset {dataset_id}")

    records = get_mismatches_for_run(conn, run_id)
    return generate_audit_xlsx(records, run["primary_key"], names, out_path=out_path)


__all__ = ["RecordNotFoundError", "default_specs", "execute_audit_run", "export_audit_run"]

"""API endpoints to run audits and browse their mismatches."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from ..core.config import settings
from ..core.db import init_db, get_connection
from ..repo.schema import create_tables
from ..repo.audit_results import get_audit_run, get_mismatches_for_run
from ..pipeline.audit import AuditConfigError, filter_mismatches
from ..pipeline.exporter import report_filename
from ..pipeline.normalizer import COLUMN_TYPES
from ..pipeline.runs import RecordNotFoundError, execute_audit_run, export_audit_run

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _init_db_conn():
    init_db()
    conn = get_connection()
    create_tables(conn)
    cur = conn.cursor()
    return conn, cur


class AuditSpecIn(BaseModel):
    name: str
    type: str = "string"


class AuditRunIn(BaseModel):
    dataset_ids: List[int] = Field(..., min_length=1)
    primary_key: str
    specs: Optional[List[AuditSpecIn]] = None
    treat_missing_as_mismatch: Optional[bool] = None


@router.get("/audits/types")
def get_column_types():
    """Return the column types an audit spec may declare."""
    return {"types": list(COLUMN_TYPES)}


@router.post("/audits")
def start_audit_run(payload: AuditRunIn):
    """Run an audit over uploaded datasets and return the run summary.

    When `specs` is omitted every non-key column of the first dataset is
    audited with its inferred type. `treat_missing_as_mismatch` falls back
    to the configured default.
    """
    treat_missing = payload.treat_missing_as_mismatch
    if treat_missing is None:
        treat_missing = settings.TREAT_MISSING_AS_MISMATCH
    specs = [s.model_dump() for s in payload.specs] if payload.specs is not None else None

    conn, cur = _init_db_conn()
    try:
        result = execute_audit_run(conn, payload.dataset_ids, payload.primary_key, specs, treat_missing)
        return {"run": result}
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except AuditConfigError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ValueError as ve:
        # stored file that pandas cannot decode or parse
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Could not read dataset: {ve}") from ve
    except Exception as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    finally:
        try:
            conn.close()
        except Exception:
            pass


@router.get("/audits/{run_id}")
def get_run_summary(run_id: int):
    """Return the configuration and summary of an audit run."""
    conn, cur = _init_db_conn()
    try:
        run = get_audit_run(conn, run_id)
        if run is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Run not found")
        return {"run": run}
    finally:
        conn.close()


@router.get("/audits/{run_id}/mismatches")
def list_run_mismatches(run_id: int, search: Optional[str] = None, limit: int = 100, offset: int = 0):
    """List mismatches of a run, optionally filtered by key or value, with pagination."""
    conn, cur = _init_db_conn()
    try:
        if get_audit_run(conn, run_id) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Run not found")
        records = filter_mismatches(get_mismatches_for_run(conn, run_id), search)
        page = records[max(offset, 0): max(offset, 0) + max(limit, 0)]
        return {
            "mismatches": [r.to_dict() for r in page],
            "total": len(records),
            "limit": limit,
            "offset": offset,
        }
    finally:
        conn.close()


@router.get("/audits/{run_id}/export")
def export_run_report(run_id: int):
    """Write the discrepancy report of a run to XLSX and return it for download."""
    conn, cur = _init_db_conn()
    try:
        export_path = Path(settings.STORAGE_PATH) / "exports" / f"audit_run_{run_id}.xlsx"
        export_audit_run(conn, run_id, out_path=str(export_path))
        return FileResponse(str(export_path), filename=report_filename(), media_type=XLSX_MEDIA_TYPE)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except Exception as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    finally:
        try:
            conn.close()
        except Exception:
            pass


@router.get("/health")
def health_check():
    """Simple health check endpoint."""
    return {"status": "ok"}


__all__ = ["router"]

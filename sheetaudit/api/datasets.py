"""API router for dataset uploads.

Provides POST /datasets which accepts a multipart file, saves it, registers
a dataset record and stores the detected columns with their inferred types.
"""
from __future__ import annotations

from fastapi import APIRouter, File, Form, UploadFile, HTTPException, status
from typing import Optional
import logging

from ..core.config import settings
from ..core.storage import save_file
from ..core.db import init_db, get_connection
from ..repo.schema import create_tables
from ..repo.datasets import create_dataset_record, get_dataset, list_datasets, update_row_count
from ..repo.dataset_columns import get_dataset_columns, save_detected_columns
from ..pipeline.importer import load_table, resolve_format
from ..pipeline.inference import infer_column_types

router = APIRouter()

LOG = logging.getLogger(__name__)


def _init_db_conn():
    """Ensure DB initialized and return (conn, cursor).

    Caller is responsible for closing `conn`.
    """
    init_db()
    conn = get_connection()
    create_tables(conn)
    cur = conn.cursor()
    return conn, cur


@router.post("/datasets")
async def upload_dataset(
    file: UploadFile = File(...),
    format: Optional[str] = Form(None),
):
    """Receive a dataset file, save it and register a dataset record.

    Returns the created `dataset_id`, the row count and the detected columns
    with their inferred types.
    """
    try:
        fmt = resolve_format(format, file.filename)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        content = await file.read()
    except Exception as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to read uploaded file") from exc

    try:
        storage_path = save_file(content, file.filename)
    except Exception as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save file") from exc

    conn, cur = _init_db_conn()
    try:
        dataset_id = create_dataset_record(conn, file.filename, fmt, storage_path)

        # Column detection is best-effort: the upload stays registered even if parsing fails.
        columns = []
        rows = None
        try:
            df = load_table(storage_path, fmt)
            col_types = infer_column_types(df, sample_size=settings.INFER_SAMPLE_SIZE)
            save_detected_columns(conn, dataset_id, col_types)
            rows = len(df.index)
            update_row_count(conn, dataset_id, rows)
            columns = [{"name": name, "type": t} for name, t in col_types.items()]
        except Exception:
            LOG.exception("Failed to detect columns for dataset %s", dataset_id)

        return {
            "dataset_id": dataset_id,
            "name": file.filename,
            "format": fmt,
            "rows": rows,
            "columns": columns,
        }
    except Exception as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create dataset record") from exc
    finally:
        try:
            conn.close()
        except Exception:
            pass


@router.get("/datasets")
def get_datasets():
    """Return all uploaded dataset records."""
    conn, cur = _init_db_conn()
    try:
        return {"datasets": list_datasets(conn)}
    finally:
        conn.close()


@router.get("/datasets/{dataset_id}")
def get_dataset_detail(dataset_id: int):
    """Return a dataset record with its detected columns."""
    conn, cur = _init_db_conn()
    try:
        record = get_dataset(conn, dataset_id)
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dataset not found")
        record["columns"] = get_dataset_columns(conn, dataset_id)
        return {"dataset": record}
    finally:
        conn.close()


__all__ = ["router"]

import io

import pandas as pd
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from sheetaudit.api.audits import router as audits_router
from sheetaudit.api.datasets import router as datasets_router
from sheetaudit.core.config import settings


app = FastAPI()
app.include_router(datasets_router)
app.include_router(audits_router)
client = TestClient(app)

CSV_A = b"id,status,expire\n1,Active,2024-01-01\n2,Inactive,2024-02-01\n"
CSV_B = b"id,status,expire\n1,Active,2024-01-01 10:00\n2,Active,2024-02-01\n"
CSV_PARTIAL = b"id,status,expire\n1,Active,2024-01-01\n"


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "STORAGE_PATH", str(tmp_path / "storage"))
    monkeypatch.setattr(settings, "DB_PATH", str(tmp_path / "test.db"))
    monkeypatch.setattr(settings, "TREAT_MISSING_AS_MISMATCH", False)
    return tmp_path


def _upload(name, content):
    files = {"file": (name, io.BytesIO(content), "text/csv")}
    resp = client.post("/datasets", files=files)
    assert resp.status_code == 200
    return resp.json()["dataset_id"]


def test_audit_run_and_endpoints(isolated):
    id_a = _upload("a.csv", CSV_A)
    id_b = _upload("b.csv", CSV_B)

    payload = {
        "dataset_ids": [id_a, id_b],
        "primary_key": "id",
        "specs": [{"name": "status", "type": "string"}, {"name": "expire", "type": "date"}],
    }
    resp = client.post("/audits", json=payload)
    assert resp.status_code == 200
    run = resp.json()["run"]
    assert run["summary"]["mismatched_keys"] == 1
    assert run["summary"]["total_keys"] == 2
    assert run["treat_missing_as_mismatch"] is False
    run_id = run["run_id"]

    summary = client.get(f"/audits/{run_id}")
    assert summary.status_code == 200
    assert summary.json()["run"]["status"] == "done"
    assert summary.json()["run"]["dataset_ids"] == [id_a, id_b]

    listing = client.get(f"/audits/{run_id}/mismatches").json()
    assert listing["total"] == 1
    record = listing["mismatches"][0]
    assert record["key"] == "2"
    assert record["mismatched_columns"] == ["status"]
    assert record["per_dataset_data"][0]["status"] == "Inactive"
    assert record["per_dataset_data"][1]["status"] == "Active"

    assert client.get(f"/audits/{run_id}/mismatches?search=inactive").json()["total"] == 1
    assert client.get(f"/audits/{run_id}/mismatches?search=zzz").json()["total"] == 0
    assert client.get(f"/audits/{run_id}/mismatches?offset=1").json()["mismatches"] == []

    export_resp = client.get(f"/audits/{run_id}/export")
    assert export_resp.status_code == 200
    assert "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet" in export_resp.headers.get("content-type", "")

    report = pd.read_excel(io.BytesIO(export_resp.content), sheet_name="Audit Discrepancies", dtype=str)
    assert list(report.columns) == ["Identifier (id)", "Discrepancy in Column", "Value in a.csv", "Value in b.csv"]
    assert report.values.tolist() == [["2", "status", "Inactive", "Active"]]


def test_default_specs_use_inferred_types(isolated):
    id_a = _upload("a.csv", CSV_A)
    id_b = _upload("b.csv", CSV_B)

    resp = client.post("/audits", json={"dataset_ids": [id_a, id_b], "primary_key": "id"})
    assert resp.status_code == 200
    run = resp.json()["run"]
    assert run["specs"] == [{"name": "status", "type": "string"}, {"name": "expire", "type": "date"}]
    assert run["summary"]["mismatched_keys"] == 1


def test_missing_policy_flag(isolated):
    id_a = _upload("a.csv", CSV_A)
    id_p = _upload("partial.csv", CSV_PARTIAL)
    base = {"dataset_ids": [id_a, id_p], "primary_key": "id", "specs": [{"name": "status"}]}

    default_run = client.post("/audits", json=base).json()["run"]
    assert default_run["summary"]["mismatched_keys"] == 0

    strict_run = client.post("/audits", json={**base, "treat_missing_as_mismatch": True}).json()["run"]
    assert strict_run["summary"]["mismatched_keys"] == 1

    listing = client.get(f"/audits/{strict_run['run_id']}/mismatches").json()
    assert listing["mismatches"][0]["per_dataset_data"][1] is None


def test_configuration_errors(isolated):
    id_a = _upload("a.csv", CSV_A)

    bad_type = client.post(
        "/audits",
        json={"dataset_ids": [id_a], "primary_key": "id", "specs": [{"name": "status", "type": "number"}]},
    )
    assert bad_type.status_code == 400

    key_audited = client.post(
        "/audits",
        json={"dataset_ids": [id_a], "primary_key": "id", "specs": [{"name": "id"}]},
    )
    assert key_audited.status_code == 400

    unknown_dataset = client.post("/audits", json={"dataset_ids": [id_a, 999], "primary_key": "id"})
    assert unknown_dataset.status_code == 404

    no_datasets = client.post("/audits", json={"dataset_ids": [], "primary_key": "id"})
    assert no_datasets.status_code == 422


def test_unknown_run_returns_404(isolated):
    assert client.get("/audits/12345").status_code == 404
    assert client.get("/audits/12345/mismatches").status_code == 404
    assert client.get("/audits/12345/export").status_code == 404


def test_types_and_health(isolated):
    assert client.get("/audits/types").json() == {"types": ["string", "boolean", "date"]}
    assert client.get("/health").json() == {"status": "ok"}


def test_unreadable_dataset_is_a_bad_request(isolated):
    id_a = _upload("a.csv", CSV_A)
    id_bad = _upload("b.csv", b"id,v\n1,\xff\xfe\xfa\n")

    listing = client.get("/datasets").json()
    assert id_bad in [d["id"] for d in listing["datasets"]]

    resp = client.post(
        "/audits", json={"dataset_ids": [id_a, id_bad], "primary_key": "id", "specs": [{"name": "status"}]}
    )
    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("Could not read dataset")

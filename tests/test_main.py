import json

import pytest
from fastapi.testclient import TestClient

import config
import main
from tests.sample_data import AUGMENTIN, BRUFEN, PANADOL

REPORT = {
    "patient_name": "Ali",
    "age": "40",
    "gender": "M",
    "condition": "Back pain",
    "severity": "Mild",
    "amount_mg": 5000,
    "description": "Stomach upset",
}


@pytest.fixture
def client(tmp_path, monkeypatch):
    dataset = tmp_path / "drap_drugs.json"
    dataset.write_text(json.dumps([PANADOL, BRUFEN, AUGMENTIN]), encoding="utf-8")
    monkeypatch.setattr(config, "DRUG_DATASET_FILE", str(dataset))
    monkeypatch.setattr(config, "REPORTS_FILE", str(tmp_path / "reports.json"))
    monkeypatch.setattr(config, "FALLBACK_ENABLED", False)
    with TestClient(main.app) as c:
        yield c


def test_health(client):
    body = client.get("/health").json()
    assert body["index_keys"] == 6
    assert body["fallback_enabled"] is False


def test_missing_dataset_is_fallback_only(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DRUG_DATASET_FILE", str(tmp_path / "missing.json"))
    monkeypatch.setattr(config, "REPORTS_FILE", str(tmp_path / "reports.json"))
    monkeypatch.setattr(config, "FALLBACK_ENABLED", False)
    with TestClient(main.app) as c:
        assert c.get("/health").json()["index_keys"] == 0
        body = c.post("/resolve", json={"text": "Amoxicillin"}).json()
        assert body["data"]["name"] == "Amoxicillin"
        assert body["data"]["manufacturer"] == "Unknown"


def test_resolve_and_current(client):
    assert client.get("/current").status_code == 404

    resp = client.post("/resolve", json={"text": " paracetamol 500mg tab ", "origin": "camera"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "success"
    assert body["data"]["name"] == "Panadol"
    assert body["data"]["max_dose_mg"] == 4000
    assert body["dose_hint"].startswith("Reference max dose: 4000 mg")

    assert client.get("/current").json()["name"] == "Panadol"


def test_blank_manual_search_rejected(client):
    assert client.post("/resolve", json={"text": "   ", "origin": "manual"}).status_code == 400


def test_quick_card(client):
    body = client.post("/quick-card", json={"text": "Brufen"}).json()
    assert body["matched"] is True
    assert body["manufacturer"] == "Abbott"


def test_dose_check(client):
    assert client.post("/dose-check", json={"drug_name": "Panadol", "amount_mg": 5000}).json()["high_dose"] is True
    assert client.post("/dose-check", json={"drug_name": "Panadol", "amount_mg": 3000}).json()["high_dose"] is False
    assert client.post("/dose-check", json={"drug_name": "Panadol", "amount_mg": "n/a"}).json()["high_dose"] is False


def test_report_lifecycle(client):
    client.post("/resolve", json={"text": "Panadol"})
    resp = client.post("/reports", json=REPORT)
    assert resp.status_code == 201
    report = resp.json()
    assert report["drug"] == "Panadol"
    assert report["batch"] == "PN1"
    assert report["high_dose"] is True

    assert client.get("/reports").json() == [report]
    assert client.get(f"/reports/{report['id']}").json() == report
    assert client.get("/reports/r_0").status_code == 404

    export = client.get("/reports/export")
    assert "attachment" in export.headers["content-disposition"]
    assert json.loads(export.text) == [report]

    assert client.delete("/reports").status_code == 204
    assert client.get("/reports").json() == []


def test_invalid_report_is_not_stored(client):
    resp = client.post("/reports", json=dict(REPORT, condition=""))
    assert resp.status_code == 422
    assert client.get("/reports").json() == []

from datetime import datetime, timezone

import pytest

from api_schema import Candidate, MergedRecord, ReportSubmission
from report_store import JsonFileKV, MemoryKV, ReportStore, ReportValidationError, build_report

NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

SUBMISSION = {
    "patient_name": "  Ayesha Khan ",
    "age": "34",
    "gender": "F",
    "phone": "",
    "condition": "Headache",
    "severity": "Moderate",
    "amount_mg": 5000,
    "description": "Dizziness after the second tablet",
}


def test_build_report_sets_high_dose_and_defaults(index):
    current = MergedRecord(name="Panadol", batch="PN1", max_dose_mg=4000)
    report = build_report(SUBMISSION, index, current=current, now=NOW)
    assert report.id == f"r_{int(NOW.timestamp() * 1000)}"
    assert report.drug == "Panadol"
    assert report.batch == "PN1"
    assert report.patient_name == "Ayesha Khan"
    assert report.date == "2025-03-01T12:00:00+00:00"
    assert report.high_dose is True


def test_build_report_prefers_submitted_drug_and_falls_back_to_candidate(index):
    report = build_report(dict(SUBMISSION, drug="Brufen"), index, now=NOW)
    assert report.drug == "Brufen"
    assert report.high_dose is False

    report = build_report(SUBMISSION, index, candidate=Candidate(name="Amoxil", batch="X1"), now=NOW)
    assert (report.drug, report.batch) == ("Amoxil", "X1")

    assert build_report(SUBMISSION, index, now=NOW).drug == "Unknown"


def test_missing_required_fields_rejected(index):
    with pytest.raises(ReportValidationError) as exc:
        build_report(dict(SUBMISSION, patient_name="   ", severity=""), index)
    assert exc.value.fields == ["patient_name", "severity"]


def test_submission_model_rejects_blank_description():
    with pytest.raises(ValueError):
        ReportSubmission.model_validate(dict(SUBMISSION, description=" "))


def test_append_and_read_back_unchanged(index):
    store = ReportStore(MemoryKV(), "reports")
    report = build_report(SUBMISSION, index, now=NOW)
    store.append_report(report)
    assert store.read_all_reports() == [report]


def test_file_store_order_history_and_clear(tmp_path, index):
    store = ReportStore(JsonFileKV(tmp_path / "kv" / "reports.json"), "reports")
    first = build_report(dict(SUBMISSION, drug="Panadol"), index, now=NOW)
    second = build_report(dict(SUBMISSION, drug="Brufen"),
                          index, now=datetime(2025, 3, 2, tzinfo=timezone.utc))
    store.append_report(first)
    store.append_report(second)

    # a fresh store over the same file sees both appends
    reopened = ReportStore(JsonFileKV(tmp_path / "kv" / "reports.json"), "reports")
    assert reopened.read_all_reports() == [first, second]
    assert reopened.history() == [second, first]
    assert reopened.get_report(second.id) == second
    assert reopened.get_report("r_missing") is None
    assert '"drug": "Brufen"' in reopened.export_json()

    reopened.clear_all()
    assert store.read_all_reports() == []


def test_clear_keeps_other_keys(tmp_path):
    kv = JsonFileKV(tmp_path / "reports.json")
    kv.set("other", "keep")
    ReportStore(kv, "reports").clear_all()
    assert kv.get("other") == "keep"

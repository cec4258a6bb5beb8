"""
report_store.py — append-only ADR report log on top of a small key-value store.

The whole log lives under one key as a JSON array (append order). Appends are
serialised with a lock and written atomically, so a read issued after an
append returns it.
"""

import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import ValidationError

import config
from api_schema import Candidate, MergedRecord, Report, ReportSubmission
from dose_check import check
from drug_matcher import LocalIndex

logger = logging.getLogger(__name__)


class ReportValidationError(ValueError):
    def __init__(self, fields: List[str]):
        self.fields = fields
        super().__init__("Please fill required fields: " + ", ".join(fields))


class MemoryKV:
    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str):
        self._data[key] = value

    def delete(self, key: str):
        self._data.pop(key, None)


class JsonFileKV:
    """String values in one JSON object on disk."""

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path or config.REPORTS_FILE)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str):
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def delete(self, key: str):
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)


class ReportStore:
    def __init__(self, kv=None, key: str = None):
        self.kv = kv if kv is not None else JsonFileKV()
        self.key = key or config.REPORTS_STORAGE_KEY
        self._lock = threading.Lock()

    def _load(self) -> List[dict]:
        raw = self.kv.get(self.key)
        if not raw:
            return []
        items = json.loads(raw)
        return items if isinstance(items, list) else []

    def append_report(self, report: Report):
        with self._lock:
            items = self._load()
            items.append(report.model_dump(mode="json"))
            self.kv.set(self.key, json.dumps(items, ensure_ascii=False))
        logger.info(f"Saved report {report.id} for '{report.drug}' (high_dose={report.high_dose})")

    def read_all_reports(self) -> List[Report]:
        with self._lock:
            items = self._load()
        return [Report.model_validate(item) for item in items]

    def history(self) -> List[Report]:
        """Newest first."""
        return list(reversed(self.read_all_reports()))

    def get_report(self, report_id: str) -> Optional[Report]:
        for r in self.read_all_reports():
            if r.id == report_id:
                return r
        return None

    def export_json(self) -> str:
        return json.dumps([r.model_dump(mode="json") for r in self.read_all_reports()],
                          indent=2, ensure_ascii=False)

    def clear_all(self):
        with self._lock:
            self.kv.delete(self.key)
        logger.info("Cleared all saved reports.")


def build_report(submission: Union[ReportSubmission, dict], index: LocalIndex,
                 current: Optional[MergedRecord] = None,
                 candidate: Optional[Candidate] = None,
                 now: Optional[datetime] = None) -> Report:
    """Validate a submission and turn it into a Report with its high-dose flag set."""
    if not isinstance(submission, ReportSubmission):
        try:
            submission = ReportSubmission.model_validate(submission)
        except ValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            raise ReportValidationError(fields) from e

    now = now or datetime.now(timezone.utc)
    drug = (submission.drug
            or (current.name if current is not None else "")
            or (candidate.name if candidate is not None else "")
            or "Unknown")
    batch = (submission.batch
             or (current.batch if current is not None else "")
             or (candidate.batch if candidate is not None else ""))

    return Report(
        id=f"r_{int(now.timestamp() * 1000)}",
        drug=drug,
        batch=batch,
        patient_name=submission.patient_name,
        age=submission.age,
        gender=submission.gender,
        phone=submission.phone,
        condition=submission.condition,
        severity=submission.severity,
        amount_mg=submission.amount_mg,
        description=submission.description,
        date=now.isoformat(),
        high_dose=check(drug, submission.amount_mg, index),
    )

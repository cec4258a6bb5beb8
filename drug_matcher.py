import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from pydantic import ValidationError
from rapidfuzz import fuzz, process

import config
from api_schema import DrugRecord

# Configure logging
logger = logging.getLogger(__name__)

# lowercase name-or-synonym -> record. Keys iterate in the order they were first
# inserted while walking the dataset; a later record that reuses a key replaces
# the value but keeps the key's position.
LocalIndex = Dict[str, DrugRecord]


@dataclass
class DatasetLoad:
    records: List[DrugRecord] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def load_dataset(path: Union[str, Path, None] = None) -> DatasetLoad:
    """Read the local drug dataset (a JSON list of records)."""
    path = Path(path or config.DRUG_DATASET_FILE)
    if not path.exists():
        return DatasetLoad(error=f"dataset not found at {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        return DatasetLoad(error=f"failed to read {path}: {e}")

    if not isinstance(data, list):
        return DatasetLoad(error=f"{path} has unexpected shape; expected a list of records")

    records = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            logger.warning(f"Skipping dataset entry {i}: not an object")
            continue
        try:
            records.append(DrugRecord.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping dataset entry {i}: {e.error_count()} invalid field(s)")
    return DatasetLoad(records=records)


def build_index(records: Iterable[DrugRecord]) -> LocalIndex:
    index: LocalIndex = {}
    for rec in records:
        if rec.name.strip():
            index[rec.name.lower()] = rec
        for syn in rec.synonyms:
            if syn.strip():
                index[syn.lower()] = rec
    return index


def lookup_exact(index: LocalIndex, name: str) -> Optional[DrugRecord]:
    """Case-insensitive exact key lookup; no fuzzy fallback."""
    if not name:
        return None
    return index.get(name.strip().lower())


def lookup(index: LocalIndex, name: str) -> Optional[DrugRecord]:
    """Match a drug name against the local index.

    Exact key first; otherwise the first key (in index order) contained in the
    name, or the first record whose synonyms contain the name. None means no
    local match and is what sends a resolution to the fallback lookup.
    """
    norm = (name or "").strip().lower()
    if not norm:
        return None

    rec = index.get(norm)
    if rec is not None:
        return rec

    for key, rec in index.items():
        if key in norm:
            return rec
        if any(norm in syn.lower() for syn in rec.synonyms):
            return rec
    return None


def suggest(index: LocalIndex, name: str, limit: Optional[int] = None, cutoff: Optional[int] = None) -> List[str]:
    """Closest local drug names for a term that did not match."""
    limit = config.SUGGESTION_LIMIT if limit is None else limit
    cutoff = config.SUGGESTION_CUTOFF if cutoff is None else cutoff
    if not name or not index or limit <= 0:
        return []

    results = process.extract(name.lower(), list(index.keys()), scorer=fuzz.token_sort_ratio,
                              limit=limit * 2, score_cutoff=cutoff)
    suggestions = []
    for key, score, _ in results:
        display = index[key].name or key
        if display not in suggestions:
            suggestions.append(display)
        if len(suggestions) >= limit:
            break
    return suggestions

"""
fallback_resolver.py — openFDA lookups used when the local dataset has no match.

Two independent queries per drug name:
 - label:  indications/purpose/description (uses) and dosage text
 - events: reported adverse reactions, ranked by frequency

Each query returns a FetchResult instead of raising; the caller decides how to
recover (FallbackPair.result() substitutes an empty part and logs the error).
"""

import logging
from collections import Counter
from concurrent.futures import Executor, Future, wait
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import requests

import config
from api_schema import FallbackResult

logger = logging.getLogger(__name__)

USES_FIELDS = ("indications_and_usage", "purpose", "description")
DOSAGE_FIELDS = ("dosage_and_administration", "how_supplied")


@dataclass(frozen=True)
class FetchResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value) -> "FetchResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "FetchResult":
        return cls(ok=False, error=error)


def _first_present(doc: dict, fields):
    for f in fields:
        if doc.get(f):
            return doc[f]
    return None


def extract_label(results: List[dict], uses_limit: int = None, dosage_limit: int = None) -> Tuple[List[str], str]:
    uses_limit = config.LABEL_USES_LIMIT if uses_limit is None else uses_limit
    dosage_limit = config.LABEL_DOSAGE_LIMIT if dosage_limit is None else dosage_limit
    doc = results[0] if results and isinstance(results[0], dict) else {}

    ind = _first_present(doc, USES_FIELDS)
    if isinstance(ind, list):
        uses = [str(x) for x in ind[:uses_limit]]
    elif isinstance(ind, str):
        uses = [ind]
    else:
        uses = []

    dosage = _first_present(doc, DOSAGE_FIELDS)
    if isinstance(dosage, list):
        dosage_text = " ".join(str(x) for x in dosage[:dosage_limit])
    else:
        dosage_text = str(dosage or "")
    return uses, dosage_text


def rank_reactions(events: List[dict], top_n: int = None) -> List[str]:
    """Most frequent reaction terms; equal counts keep first-seen order."""
    top_n = config.EVENT_TOP_N if top_n is None else top_n
    freq = Counter()
    for ev in events:
        if not isinstance(ev, dict):
            continue
        patient = ev.get("patient") or {}
        for rx in patient.get("reaction") or []:
            term = rx.get("reactionmeddrapt") if isinstance(rx, dict) else None
            if term:
                freq[term] += 1
    return [term for term, _ in freq.most_common(top_n)]


class OpenFDAClient:
    def __init__(self, base_url: str = None, timeout: float = None):
        self.base_url = (base_url or config.OPENFDA_BASE_URL).rstrip("/")
        self.timeout = config.HTTP_TIMEOUT if timeout is None else timeout

    def _search(self, endpoint: str, search: str, limit: int) -> FetchResult:
        url = f"{self.base_url}/{endpoint}"
        try:
            resp = requests.get(url, params={"search": search, "limit": limit}, timeout=self.timeout)
        except requests.RequestException as e:
            return FetchResult.failure(f"{endpoint} request failed: {e}")
        if not 200 <= resp.status_code < 300:
            return FetchResult.failure(f"{endpoint} returned HTTP {resp.status_code}")
        try:
            body = resp.json()
        except ValueError:
            return FetchResult.failure(f"{endpoint} returned malformed JSON")
        results = body.get("results") if isinstance(body, dict) else None
        if not isinstance(results, list):
            return FetchResult.failure(f"{endpoint} response has no results list")
        return FetchResult.success(results)

    def fetch_label(self, name: str) -> FetchResult:
        """Label info by exact brand name -> (uses, dosage text)."""
        res = self._search("label.json", f'openfda.brand_name:"{name}"', 1)
        if not res.ok:
            return res
        return FetchResult.success(extract_label(res.value))

    def fetch_events(self, name: str) -> FetchResult:
        """Adverse-event reports by exact product name -> ranked reaction terms."""
        res = self._search("event.json", f'patient.drug.medicinalproduct:"{name}"', config.EVENT_FETCH_LIMIT)
        if not res.ok:
            return res
        return FetchResult.success(rank_reactions(res.value))


class FallbackPair:
    """The label and event queries for one name, running side by side."""

    def __init__(self, name: str, label: Future, events: Future):
        self.name = name
        self.label = label
        self.events = events

    def cancel(self):
        # only futures that have not started yet can actually be cancelled
        self.label.cancel()
        self.events.cancel()

    def cancelled(self) -> bool:
        return self.label.cancelled() or self.events.cancelled()

    def _outcome(self, fut: Future, what: str) -> FetchResult:
        if fut.cancelled():
            return FetchResult.failure(f"{what} query cancelled")
        exc = fut.exception()
        if exc is not None:
            return FetchResult.failure(f"{what} query raised {exc!r}")
        return fut.result()

    def result(self) -> FallbackResult:
        """Wait for both queries and combine whatever succeeded."""
        wait([self.label, self.events])

        uses, dosage, adrs = [], "", []
        label = self._outcome(self.label, "label")
        if label.ok:
            uses, dosage = label.value
        else:
            logger.warning(f"openFDA label lookup for '{self.name}' failed: {label.error}")

        events = self._outcome(self.events, "event")
        if events.ok:
            adrs = events.value
        else:
            logger.warning(f"openFDA event lookup for '{self.name}' failed: {events.error}")

        return FallbackResult(uses_official=uses, dosage_official=dosage or None, adrs_reported=adrs)


class FallbackResolver:
    def __init__(self, client: OpenFDAClient = None):
        self.client = client or OpenFDAClient()

    def submit(self, name: str, executor: Executor) -> FallbackPair:
        return FallbackPair(
            name,
            executor.submit(self.client.fetch_label, name),
            executor.submit(self.client.fetch_events, name),
        )

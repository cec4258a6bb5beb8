"""
resolver.py — raw payload -> MergedRecord.

parse -> local index -> (miss) openFDA label+events in parallel -> merge.
ScanSession lets a newer scan/search supersede one still waiting on openFDA:
the older request's queued queries are cancelled and its record is never
published as the current one.
"""

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Optional, Tuple

import config
from api_schema import Candidate, MergedRecord, QuickCard
from dose_check import check
from drug_matcher import LocalIndex, lookup, lookup_exact, suggest
from fallback_resolver import FallbackPair, FallbackResolver
from merge_engine import merge
from payload_parser import parse

logger = logging.getLogger(__name__)


class Resolver:
    def __init__(self, index: LocalIndex, fallback: Optional[FallbackResolver] = None,
                 executor: Optional[Executor] = None, fallback_enabled: Optional[bool] = None):
        self.index = index
        self.fallback = fallback or FallbackResolver()
        self._own_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(max_workers=config.MAX_WORKERS,
                                                       thread_name_prefix="openfda")
        self.fallback_enabled = config.FALLBACK_ENABLED if fallback_enabled is None else fallback_enabled

    def quick_card(self, raw: str) -> QuickCard:
        """Immediate preview: exact local match only, no network."""
        cand = parse(raw)
        local = lookup_exact(self.index, cand.name)
        if local is not None:
            return QuickCard(name=local.name or cand.name, manufacturer=local.manufacturer or None,
                             batch=cand.batch or local.batch or "", expiry=cand.expiry or local.expiry or "",
                             matched=True)
        return QuickCard(name=cand.name, batch=cand.batch, expiry=cand.expiry)

    def resolve_candidate(self, candidate: Candidate,
                          on_fallback: Optional[Callable[[FallbackPair], None]] = None,
                          is_current: Optional[Callable[[], bool]] = None) -> MergedRecord:
        name = candidate.name.strip()
        if not name:
            logger.info("No drug name detected in payload.")
            return merge(candidate)

        local = lookup(self.index, name)
        if local is not None:
            logger.debug(f"Local match for '{name}': {local.name}")
            return merge(candidate, local)

        suggestions = suggest(self.index, name)
        if not self.fallback_enabled:
            return merge(candidate, suggestions=suggestions)
        if is_current is not None and not is_current():
            logger.info(f"Skipping openFDA lookup for superseded request '{name}'")
            return merge(candidate, suggestions=suggestions)

        pair = self.fallback.submit(name, self.executor)
        if on_fallback is not None:
            on_fallback(pair)
        return merge(candidate, None, pair.result(), suggestions=suggestions)

    def resolve(self, raw: str) -> MergedRecord:
        return self.resolve_candidate(parse(raw))

    def evaluate_dose(self, drug_name: str, amount_mg) -> bool:
        return check(drug_name, amount_mg, self.index)

    def shutdown(self):
        if self._own_executor:
            self.executor.shutdown(wait=False, cancel_futures=True)


class ScanSession:
    """Tracks the newest resolution; older in-flight ones are superseded."""

    def __init__(self, resolver: Resolver):
        self.resolver = resolver
        self._lock = threading.Lock()
        self._generation = 0
        self._inflight: Optional[FallbackPair] = None
        self.current: Optional[MergedRecord] = None
        self.candidate: Optional[Candidate] = None

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def submit(self, raw: str) -> Tuple[MergedRecord, bool]:
        """Resolve raw; returns (record, published)."""
        candidate = parse(raw)
        with self._lock:
            self._generation += 1
            generation = self._generation
            stale, self._inflight = self._inflight, None
            self.candidate = candidate
        if stale is not None:
            logger.info(f"Superseding openFDA lookup for '{stale.name}'")
            stale.cancel()

        def track(pair: FallbackPair):
            with self._lock:
                if generation == self._generation:
                    self._inflight = pair
                    return
            pair.cancel()

        record = self.resolver.resolve_candidate(candidate, on_fallback=track,
                                                 is_current=lambda: self.is_current(generation))

        with self._lock:
            if generation != self._generation:
                logger.info(f"Discarding stale result for '{record.name}'")
                return record, False
            self._inflight = None
            self.current = record
        return record, True

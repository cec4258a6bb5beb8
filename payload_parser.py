"""
payload_parser.py — raw scanned/typed text -> Candidate(name, batch, expiry).

Two payload shapes are understood:
 - structured JSON objects carrying drugName/name/productName, batch/lot, expiry
 - anything else, where GS1-style element strings may carry the batch "(10)"
   and a YYMMDD expiry "(17)"; the whole text is then used as the name.

parse() never raises.
"""

import json
import logging
import re
from typing import Any, Dict, Optional

from api_schema import Candidate

logger = logging.getLogger(__name__)

NAME_KEYS = ("drugName", "name", "productName")
BATCH_KEYS = ("batch", "lot")
EXPIRY_KEYS = ("expiry",)

# GS1 application identifiers: (10) batch/lot up to the next "(" and (17) expiry YYMMDD
BATCH_AI_REGEX = re.compile(r"\(10\)([A-Z0-9\-]+?)(?=\(|$)")
EXPIRY_AI_REGEX = re.compile(r"\(17\)(\d{6})")


def decode_structured(raw: str) -> Optional[Dict[str, Any]]:
    """Return the payload as a dict if it is a JSON object, otherwise None."""
    try:
        obj = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return obj if isinstance(obj, dict) else None


def _first_value(obj: Dict[str, Any], keys) -> str:
    for key in keys:
        value = obj.get(key)
        if value not in (None, "", False):
            return str(value)
    return ""


def parse(raw: str) -> Candidate:
    raw = raw or ""
    batch = expiry = ""

    obj = decode_structured(raw)
    if obj is not None:
        name = _first_value(obj, NAME_KEYS)
        batch = _first_value(obj, BATCH_KEYS)
        expiry = _first_value(obj, EXPIRY_KEYS)
        if name:
            return Candidate(name=name, batch=batch, expiry=expiry)
        logger.debug("Structured payload without a name field; treating as raw text.")

    m10 = BATCH_AI_REGEX.search(raw)
    if m10:
        batch = m10.group(1)
    m17 = EXPIRY_AI_REGEX.search(raw)
    if m17:
        expiry = m17.group(1)

    return Candidate(name=raw, batch=batch, expiry=expiry)

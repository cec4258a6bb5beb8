import logging
import math
from typing import Any, Optional

from api_schema import MergedRecord
from drug_matcher import LocalIndex, lookup_exact

logger = logging.getLogger(__name__)


def _positive_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or number <= 0:
        return None
    return number


def check(drug_name: str, amount_mg: Any, index: LocalIndex) -> bool:
    """True when amount_mg exceeds the dataset's reference maximum for drug_name.

    Only an exact (case-insensitive) name or synonym counts; missing data is
    "unknown", never a violation.
    """
    rec = lookup_exact(index, drug_name)
    if rec is None or rec.max_dose_mg is None:
        return False
    amount = _positive_number(amount_mg)
    if amount is None:
        return False
    high = amount > rec.max_dose_mg
    if high:
        logger.info(f"High dose for '{drug_name}': {amount:g} mg > {rec.max_dose_mg:g} mg")
    return high


def dose_hint(record: MergedRecord) -> Optional[str]:
    if record.max_dose_mg is None:
        return None
    return f"Reference max dose: {record.max_dose_mg:g} mg. Entered amount will be compared."

from typing import List, Optional

from api_schema import Candidate, DrugRecord, FallbackResult, MergedRecord


def merge(candidate: Candidate, local: Optional[DrugRecord] = None,
          fallback: Optional[FallbackResult] = None,
          suggestions: Optional[List[str]] = None) -> MergedRecord:
    """Combine the parsed candidate, the local match and the openFDA fallback.

    Local data wins field by field; fallback fields are only used when there is
    no local match. The candidate's batch/expiry (from the scanned code) beat
    the dataset's.
    """
    if local is not None:
        # fallback is never consulted for a local hit, even if one was passed
        fallback = None

    if local is not None:
        source = "local"
    elif fallback is not None and (fallback.uses_official or fallback.adrs_reported or fallback.dosage_official):
        source = "openfda"
    else:
        source = "none"

    return MergedRecord(
        name=(local.name if local is not None and local.name else candidate.name),
        manufacturer=(local.manufacturer if local is not None and local.manufacturer else "Unknown"),
        batch=candidate.batch or (local.batch if local is not None else None) or "",
        expiry=candidate.expiry or (local.expiry if local is not None else None) or "",
        uses_local=list(local.uses) if local is not None else [],
        uses_official=list(fallback.uses_official) if fallback is not None else [],
        adrs_local=list(local.adrs) if local is not None else [],
        adrs_reported=list(fallback.adrs_reported) if fallback is not None else [],
        dosage_official=((local.dosage if local is not None else None)
                         or (fallback.dosage_official if fallback is not None else None)
                         or ""),
        max_dose_mg=local.max_dose_mg if local is not None else None,
        suggestions=list(suggestions or []) if local is None else [],
        source=source,
    )

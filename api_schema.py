from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, List, Literal, Optional


def _as_str_list(value: Any) -> List[str]:
    # dataset files carry either a list or a single string for list-ish fields
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None and str(v).strip()]
    return []


class RawPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    origin: Literal["camera", "gallery", "manual"] = "manual"


class Candidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    batch: str = ""
    expiry: str = ""


class DrugRecord(BaseModel):
    """One entry of the authoritative local dataset (read-only once loaded)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    manufacturer: str = ""
    batch: Optional[str] = None
    expiry: Optional[str] = None
    uses: List[str] = []
    adrs: List[str] = []
    dosage: Optional[str] = None
    max_dose_mg: Optional[float] = Field(default=None, alias="maxDoseMg")
    synonyms: List[str] = []

    @field_validator("uses", "adrs", "synonyms", mode="before")
    @classmethod
    def _coerce_lists(cls, value):
        return _as_str_list(value)

    @field_validator("max_dose_mg", mode="before")
    @classmethod
    def _coerce_max_dose(cls, value):
        # zero, negative or unparsable maxima count as "not configured"
        if value is None or isinstance(value, bool):
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        return number if number > 0 else None


class FallbackResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    uses_official: List[str] = []         # at most LABEL_USES_LIMIT entries
    dosage_official: Optional[str] = None
    adrs_reported: List[str] = []         # frequency-ranked, at most EVENT_TOP_N


class MergedRecord(BaseModel):
    name: str
    manufacturer: str = "Unknown"
    batch: str = ""
    expiry: str = ""
    uses_local: List[str] = []
    uses_official: List[str] = []
    adrs_local: List[str] = []
    adrs_reported: List[str] = []
    dosage_official: str = ""
    max_dose_mg: Optional[float] = None
    suggestions: List[str] = []        # close local names when nothing matched
    source: Literal["local", "openfda", "none"] = "none"


class QuickCard(BaseModel):
    name: str
    manufacturer: Optional[str] = None
    batch: str = ""
    expiry: str = ""
    matched: bool = False


class ResolveResponse(BaseModel):
    status: str
    data: MergedRecord
    dose_hint: Optional[str] = None


class ReportSubmission(BaseModel):
    drug: Optional[str] = None
    batch: Optional[str] = None
    patient_name: str
    age: str
    gender: str
    phone: str = ""
    condition: str
    severity: str
    amount_mg: float = 0
    description: str

    @field_validator("drug", "batch", "patient_name", "age", "gender", "phone",
                     "condition", "severity", "description", mode="before")
    @classmethod
    def _strip(cls, value):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        return value.strip() if isinstance(value, str) else value

    @field_validator("patient_name", "age", "gender", "condition", "severity", "description")
    @classmethod
    def _required(cls, value: str):
        if not value:
            raise ValueError("field is required")
        return value

    @field_validator("amount_mg", mode="before")
    @classmethod
    def _blank_amount(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return 0
        return value


class Report(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    drug: str
    batch: str = ""
    patient_name: str
    age: str
    gender: str
    phone: str = ""
    condition: str
    severity: str
    amount_mg: float = 0
    description: str
    date: str
    high_dose: bool = False


class DoseCheckRequest(BaseModel):
    drug_name: str
    amount_mg: Any = None


class DoseCheckResponse(BaseModel):
    drug_name: str
    high_dose: bool


class ErrorResponse(BaseModel):
    status: str
    message: str

import os

# Logging level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Authoritative local dataset (list of drug records); missing file means fallback-only mode
DRUG_DATASET_FILE = os.getenv("DRUG_DATASET_FILE", "model_assets/drap_drugs.json")

# Submitted ADR reports are kept under one key of a small JSON key-value file
REPORTS_FILE = os.getenv("REPORTS_FILE", "data/mediscan_reports.json")
REPORTS_STORAGE_KEY = os.getenv("REPORTS_STORAGE_KEY", "mediscan_reports_v2")

# openFDA base URL, used for label/event lookups when the local dataset has no match
OPENFDA_BASE_URL = os.getenv("OPENFDA_BASE_URL", "https://api.fda.gov/drug")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "7"))

# Set FALLBACK_ENABLED=0 to run against the local dataset only
FALLBACK_ENABLED = os.getenv("FALLBACK_ENABLED", "1").lower() not in ("0", "false", "no")

# Thread pool size for the concurrent label/event queries
MAX_WORKERS = int(os.getenv("MAX_WORKERS", "2"))

LABEL_USES_LIMIT = int(os.getenv("LABEL_USES_LIMIT", "6"))
LABEL_DOSAGE_LIMIT = int(os.getenv("LABEL_DOSAGE_LIMIT", "2"))
EVENT_FETCH_LIMIT = int(os.getenv("EVENT_FETCH_LIMIT", "100"))
EVENT_TOP_N = int(os.getenv("EVENT_TOP_N", "12"))

# "Did you mean" suggestions from the local index (rapidfuzz score 0-100)
SUGGESTION_LIMIT = int(os.getenv("SUGGESTION_LIMIT", "3"))
SUGGESTION_CUTOFF = int(os.getenv("SUGGESTION_CUTOFF", "70"))

"""
Centralized configuration for ReceiptSplit with environment
"""

import os
from decimal import Decimal
from pathlib import Path


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


# OCR settings
OCR_PSM = int(os.getenv("RECEIPTSPLIT_OCR_PSM", "6"))
OCR_LANGUAGES = os.getenv("RECEIPTSPLIT_OCR_LANGUAGES", "eng")

# Cloud extraction
GEMINI_API_KEY = os.getenv("RECEIPTSPLIT_GEMINI_API_KEY", os.getenv("GEMINI_API_KEY", ""))
GEMINI_MODEL = os.getenv("RECEIPTSPLIT_GEMINI_MODEL", "gemini-2.0-flash")

# Runtime settings
DEFAULT_MAX_WORKERS = int(os.getenv("RECEIPTSPLIT_MAX_WORKERS", "4"))
EXTRACTION_FAIL_FAST = _env_flag("RECEIPTSPLIT_EXTRACTION_FAIL_FAST", "true")
RESET_CLEARS_ROSTER = _env_flag("RECEIPTSPLIT_RESET_CLEARS_ROSTER", "false")
DATA_DIR = Path(os.getenv("RECEIPTSPLIT_DATA_DIR", str(Path.home() / ".receiptsplit")))
LOG_LEVEL = os.getenv("RECEIPTSPLIT_LOG_LEVEL", "WARNING").upper()

# Thresholds
AMOUNT_TOLERANCE = Decimal(os.getenv("RECEIPTSPLIT_AMOUNT_TOLERANCE", "0.01"))
IMAGE_REGION_OVERLAP_PX = int(os.getenv("RECEIPTSPLIT_IMAGE_OVERLAP", "50"))
MAX_IMAGE_SIZE_BYTES = int(os.getenv("RECEIPTSPLIT_MAX_IMAGE_SIZE_BYTES", str(50 * 1024 * 1024)))

# Roster
RECENT_NAMES_LIMIT = int(os.getenv("RECEIPTSPLIT_RECENT_NAMES_LIMIT", "20"))
NAME_SUGGESTION_LIMIT = int(os.getenv("RECEIPTSPLIT_NAME_SUGGESTIONS", "5"))

# History
RECEIPT_HISTORY_LIMIT = int(os.getenv("RECEIPTSPLIT_HISTORY_LIMIT", "50"))

# Price normalization
ITEM_PRICE_MAX = float(os.getenv("RECEIPTSPLIT_ITEM_PRICE_MAX", "10000"))

# Workers bounds
WORKERS_MIN = int(os.getenv("RECEIPTSPLIT_WORKERS_MIN", "1"))
WORKERS_MAX = int(os.getenv("RECEIPTSPLIT_WORKERS_MAX", "16"))

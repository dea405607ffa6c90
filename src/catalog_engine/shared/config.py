"""
Engine configuration - read once from the environment (.env supported).
Every component takes explicit constructor arguments that default to these.
"""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

# ============================================================================
# ENVIRONMENT CONFIGURATION
# ============================================================================

load_dotenv()

BASE_DIR = Path(__file__).resolve().parents[3]  # repository root

# Catalog source file
CATALOG_PATH = os.getenv("CATALOG_PATH", str(BASE_DIR / "data" / "product_catalog.csv"))
CATALOG_DELIMITER = os.getenv("CATALOG_DELIMITER", ",")
CATEGORY_SEPARATOR = os.getenv("CATEGORY_SEPARATOR", "-")  # "DSK-0001" -> "DSK"
CATEGORY_TABLE_PATH = os.getenv("CATEGORY_TABLE_PATH")  # optional JSON {code: name}

# Memoization cache
CACHE_DEFAULT_TTL_SECONDS = float(os.getenv("CACHE_DEFAULT_TTL_SECONDS", "600"))
CACHE_SWEEP_INTERVAL_SECONDS = float(os.getenv("CACHE_SWEEP_INTERVAL_SECONDS", "60"))

# Call-rate limiter (guards the external model call)
RATE_LIMIT_MAX_REQUESTS = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100"))
RATE_LIMIT_WINDOW_SECONDS = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
RATE_LIMIT_MAX_SLEEP_SECONDS = 1.0  # longest single sleep while waiting for a slot
DEFAULT_IDENTITY = "default"

# Matching / validation
SEARCH_DEFAULT_LIMIT = 20
SUGGESTION_DEFAULT_LIMIT = 10
DID_YOU_MEAN_LIMIT = 3
CATEGORY_DEFAULT_LIMIT = 50
LOW_STOCK_THRESHOLD = int(os.getenv("LOW_STOCK_THRESHOLD", "10"))
NEEDS_REVIEW_THRESHOLD = float(os.getenv("NEEDS_REVIEW_THRESHOLD", "0.75"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR")  # no file sink when unset

# HTTP surface
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "8000"))


# ============================================================================
# CATEGORY AND TAG TABLES
# ============================================================================

DEFAULT_CATEGORY_NAMES: dict[str, str] = {
    "DSK": "Desks",
    "CHR": "Chairs",
    "DTB": "Dining Tables",
    "DCH": "Dining Chairs",
    "BSF": "Bookshelves",
    "SFA": "Sofas",
    "CFT": "Coffee Tables",
    "TVS": "TV Stands",
}

UNKNOWN_CATEGORY_NAME = "Unknown"

TAG_KEYWORDS: tuple[str, ...] = (
    # style
    "modern", "classic", "contemporary", "vintage", "minimalist",
    # material
    "wood", "metal", "glass", "fabric", "leather",
    # colour
    "black", "white", "brown", "gray", "blue", "red",
)


def load_category_names(path: str | None = CATEGORY_TABLE_PATH) -> dict[str, str]:
    """Return the code -> name table, merged with the JSON override file if one is set."""
    names = dict(DEFAULT_CATEGORY_NAMES)
    if not path:
        return names

    with open(path, encoding="utf-8") as f:
        override = json.load(f)

    if not isinstance(override, dict):
        raise ValueError(f"Category table at {path} must be a JSON object")

    names.update({str(code).upper(): str(name) for code, name in override.items()})
    return names

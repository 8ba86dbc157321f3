"""Central configuration for the Boundless activity feed engine.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Secrets are read from environment variables (optionally
via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Location handling
# ---------------------------------------------------------------------------
# Coordinate substituted when a stored record carries an unusable location.
# Every substitution is logged and recorded as an ingest warning.
FALLBACK_LATITUDE = _env_float("FEED_FALLBACK_LATITUDE", 25.0330)
FALLBACK_LONGITUDE = _env_float("FEED_FALLBACK_LONGITUDE", 121.5654)


# ---------------------------------------------------------------------------
# Filter defaults (browse screen)
# ---------------------------------------------------------------------------
DEFAULT_PRICE_RANGE = (0.0, _env_float("FEED_DEFAULT_MAX_PRICE", 1000.0))
DEFAULT_RADIUS_KM = _env_float("FEED_DEFAULT_RADIUS_KM", 12.0)
# The default time window spans this many days either side of "now".
DEFAULT_TIME_WINDOW_DAYS = _env_int("FEED_DEFAULT_TIME_WINDOW_DAYS", 14)
DEFAULT_REQUIRE_IMAGES = _env_bool("FEED_DEFAULT_REQUIRE_IMAGES", False)


# ---------------------------------------------------------------------------
# Activity store
# ---------------------------------------------------------------------------
# Change events received before the bulk load are held here and replayed once
# the load commits. Oldest events are dropped beyond this size.
PENDING_EVENT_BUFFER_SIZE = _env_int("FEED_PENDING_EVENT_BUFFER_SIZE", 1000)

# Deleted ids are remembered so a late duplicate insert cannot resurrect them.
TOMBSTONE_CACHE_SIZE = _env_int("FEED_TOMBSTONE_CACHE_SIZE", 4096)
TOMBSTONE_TTL_SECONDS = _env_int("FEED_TOMBSTONE_TTL_SECONDS", 6 * 3600)

# Number of ingest warnings (fallback locations, skipped rows) kept in memory.
INGEST_WARNING_HISTORY = _env_int("FEED_INGEST_WARNING_HISTORY", 500)


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------
MARKER_LABEL_MAX_CHARS = _env_int("FEED_MARKER_LABEL_MAX_CHARS", 24)
MARKER_MAP_ZOOM = _env_int("FEED_MARKER_MAP_ZOOM", 13)


# ---------------------------------------------------------------------------
# Backend (bulk fetch)
# ---------------------------------------------------------------------------
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
ACTIVITIES_TABLE = os.getenv("FEED_ACTIVITIES_TABLE", "activities")

# HTTP session pool sizes for concurrent requests.
HTTP_POOL_CONNECTIONS = 10
HTTP_POOL_MAXSIZE = 10

# Retries for idempotent reads that hit a 5xx or a dropped connection.
HTTP_RETRY_TOTAL = _env_int("FEED_HTTP_RETRY_TOTAL", 3)
HTTP_RETRY_BACKOFF = _env_float("FEED_HTTP_RETRY_BACKOFF", 1.0)

# Request timeout in seconds.
REQUEST_TIMEOUT = _env_int("FEED_REQUEST_TIMEOUT", 15)


# ---------------------------------------------------------------------------
# Geocoding
# ---------------------------------------------------------------------------
# Nominatim-compatible search endpoint. Leave empty to disable free-text
# geocoding in the CLI.
GEOCODER_URL = os.getenv("FEED_GEOCODER_URL", "")
GEOCODER_USER_AGENT = os.getenv("FEED_GEOCODER_USER_AGENT", "boundless-feed/0.1")
GEOCODE_CACHE_SIZE = _env_int("FEED_GEOCODE_CACHE_SIZE", 256)
GEOCODE_CACHE_TTL_SECONDS = _env_int("FEED_GEOCODE_CACHE_TTL_SECONDS", 24 * 3600)


# ---------------------------------------------------------------------------
# Excel formatting
# ---------------------------------------------------------------------------
# Automatically size columns after writing the export sheet (openpyxl only).
EXCEL_AUTOSIZE_COLUMNS = True
EXCEL_AUTOSIZE_MAX_WIDTH = 50  # characters
EXCEL_AUTOSIZE_MIN_WIDTH = 6  # characters
EXCEL_AUTOSIZE_PADDING = 2  # extra characters added to the detected max

EXPORT_COLUMN_ORDER = [
    "ID",
    "Title",
    "Category",
    "Kind",
    "Start",
    "End",
    "Price",
    "Unit",
    "Latitude",
    "Longitude",
    "Distance (km)",
    "Photos",
    "Created",
    "Owner",
]

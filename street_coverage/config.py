"""Central configuration for the street coverage matcher.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Secrets are read from environment variables (optionally
via a local `.env`).
"""

from __future__ import annotations

import os

from dotenv import load_dotenv


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


def _env_list(key: str, default: str) -> list[str]:
    return [
        item.strip() for item in os.getenv(key, default).split(",") if item.strip()
    ]


# Load .env from the current directory or any parent folder.
load_dotenv()


# ---------------------------------------------------------------------------
# Street matching
# ---------------------------------------------------------------------------
# Maximum distance (metres) between a GPS point and a street centerline for
# the point to be considered on that street.
STREET_MATCH_MAX_DISTANCE_M = _env_float("STREET_MATCH_MAX_DISTANCE_M", 25.0)

# Streets with fewer matched points are never marked FULL.
STREET_MATCH_MIN_POINTS_PER_STREET = _env_int("STREET_MATCH_MIN_POINTS_PER_STREET", 3)

# Streets with fewer matched points are dropped from the results entirely.
# The default keeps every street that received at least one point.
STREET_MATCH_MIN_RESULT_POINTS = _env_int("STREET_MATCH_MIN_RESULT_POINTS", 1)

# Maximum gap (percentage points) allowed at either end of the coverage
# interval when verifying an inflated (> 1.0) coverage ratio.
STREET_MATCH_MAX_END_GAP_PERCENT = _env_float("STREET_MATCH_MAX_END_GAP_PERCENT", 5.0)

# Trajectory-aware scoring weights (distance, alignment, continuity).
STREET_MATCH_DISTANCE_WEIGHT = 40.0
STREET_MATCH_ALIGNMENT_WEIGHT = 40.0
STREET_MATCH_CONTINUITY_BONUS = 20.0

# Map-snapping confidence bands.
CONFIDENCE_HIGH = _env_float("STREET_MATCH_CONFIDENCE_HIGH", 0.70)
CONFIDENCE_MEDIUM = _env_float("STREET_MATCH_CONFIDENCE_MEDIUM", 0.30)
CONFIDENCE_LOW = _env_float("STREET_MATCH_CONFIDENCE_LOW", 0.10)

# Length-dependent completion thresholds as (upper bound in metres, ratio).
# Streets at or above the last bound use COMPLETION_THRESHOLD_LONG.
COMPLETION_THRESHOLDS = (
    (50.0, 0.85),
    (100.0, 0.90),
    (300.0, 0.95),
)
COMPLETION_THRESHOLD_LONG = 0.98

# Rounding applied to returned values.
DISTANCE_DECIMALS = 2
RATIO_DECIMALS = 3


# ---------------------------------------------------------------------------
# Mapbox Map Matching
# ---------------------------------------------------------------------------
MAPBOX_ACCESS_TOKEN = os.getenv("MAPBOX_ACCESS_TOKEN", "")
MAPBOX_MATCHING_URL = os.getenv(
    "MAPBOX_MATCHING_URL", "https://api.mapbox.com/matching/v5/mapbox"
)
MAPBOX_PROFILE = os.getenv("MAPBOX_PROFILE", "walking")

# Mapbox accepts at most 100 coordinates per request.
MAPBOX_MAX_COORDINATES = _env_int("MAPBOX_MAX_COORDINATES", 100)

# Points shared between consecutive chunks of a long trace.
MAPBOX_CHUNK_OVERLAP = _env_int("MAPBOX_CHUNK_OVERLAP", 10)

# Search radius (metres) sent for every coordinate.
MAPBOX_RADIUS_M = _env_float("MAPBOX_RADIUS_M", 25.0)

# Request timeout in seconds.
MAPBOX_TIMEOUT_S = _env_float("MAPBOX_TIMEOUT_S", 30.0)

# Matches below this confidence are logged as low quality.
MAPBOX_LOW_CONFIDENCE_WARNING = _env_float("MAPBOX_LOW_CONFIDENCE_WARNING", 0.30)


# ---------------------------------------------------------------------------
# Overpass (street catalog provider)
# ---------------------------------------------------------------------------
OVERPASS_URLS = _env_list(
    "OVERPASS_URLS",
    "https://overpass-api.de/api/interpreter,"
    "https://overpass.kumi.systems/api/interpreter",
)
OVERPASS_TIMEOUT_S = _env_float("OVERPASS_TIMEOUT_S", 60.0)
OVERPASS_QUERY_TIMEOUT_S = _env_int("OVERPASS_QUERY_TIMEOUT_S", 60)
OVERPASS_MAX_RETRIES = _env_int("OVERPASS_MAX_RETRIES", 3)
OVERPASS_BACKOFF_MAX_S = _env_float("OVERPASS_BACKOFF_MAX_S", 5.0)

# Minimum delay between the start of consecutive Overpass requests.
OVERPASS_MIN_DELAY_S = _env_float("OVERPASS_MIN_DELAY_S", 1.5)

# Buffer added around a trace when building the catalog bounding box.
OVERPASS_BBOX_BUFFER_M = _env_float("OVERPASS_BBOX_BUFFER_M", 100.0)

OVERPASS_HIGHWAY_TYPES = _env_list(
    "OVERPASS_HIGHWAY_TYPES",
    "motorway,trunk,primary,secondary,tertiary,unclassified,residential,"
    "living_street,service,pedestrian,track,footway,path,cycleway,steps",
)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------
HTTP_POOL_CONNECTIONS = 10
HTTP_POOL_MAXSIZE = 10


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------
EXCEL_AUTOSIZE_COLUMNS = _env_bool("EXCEL_AUTOSIZE_COLUMNS", True)
EXCEL_AUTOSIZE_MAX_WIDTH = 50  # characters
EXCEL_AUTOSIZE_MIN_WIDTH = 6  # characters
EXCEL_AUTOSIZE_PADDING = 2  # extra characters added to the detected max

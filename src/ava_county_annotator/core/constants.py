from __future__ import annotations

# ---------------------------------------------------------------------
# Reference county boundaries (US Census TIGER)
# ---------------------------------------------------------------------

COUNTY_SHAPEFILE_URL = (
    "https://www2.census.gov/geo/tiger/TIGER_RD18/LAYER/COUNTY/"
    "tl_rd22_us_county.zip"
)

# Columns the county layer must carry; GEOID is the stable key, NAME the label
COUNTY_ID_COLUMN = "GEOID"
COUNTY_NAME_COLUMN = "NAME"

COUNTIES_COLLECTION = "counties"

# ---------------------------------------------------------------------
# CRS & area
# ---------------------------------------------------------------------

CANONICAL_EPSG = 4326
CANONICAL_CRS = f"EPSG:{CANONICAL_EPSG}"

# Ellipsoid used for geodesic area (square metres)
AREA_ELLIPSOID = "WGS84"

# Minimum county ∩ AVA area kept as an intersection (m², i.e. 10 km²)
DEFAULT_AREA_THRESHOLD = 1e7

# ---------------------------------------------------------------------
# Annotation
# ---------------------------------------------------------------------

COUNTY_ATTRIBUTE = "county"
LABEL_DELIMITER = "|"

# ---------------------------------------------------------------------
# Batch defaults
# ---------------------------------------------------------------------

DEFAULT_MAX_WORKERS = 10
DEFAULT_MAX_FILES = 300

REGION_FILE_PATTERN = "*.geojson"
# GDAL GeoJSON open options: date-like strings stay strings
GEOJSON_READ_OPTIONS = {"DATE_AS_STRING": "YES"}

# ---------------------------------------------------------------------
# HTTP & Request Settings
# ---------------------------------------------------------------------

HTTP_TIMEOUT = 120        # seconds (the county archive is ~100 MB)
HTTP_RETRIES = 3          # basic retry count
HTTP_BACKOFF = 2          # seconds between retries
HTTP_CHUNK_SIZE = 1024 * 1024

# ---------------------------------------------------------------------
# State split
# ---------------------------------------------------------------------

STATE_ATTRIBUTE = "state"

STATE_CODES = (
    "AR", "AZ", "CA", "CO", "CT", "GA", "HI", "IA", "ID", "IL", "IN",
    "KY", "LA", "MA", "MD", "MI", "MN", "MO", "MS", "NC", "NJ", "NM",
    "NY", "OH", "OR", "PA", "RI", "TN", "TX", "VA", "WA", "WI", "WV",
)

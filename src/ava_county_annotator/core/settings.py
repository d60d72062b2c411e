from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from ava_county_annotator.core.constants import (
    COUNTY_SHAPEFILE_URL as _DEFAULT_COUNTY_URL,
    DEFAULT_AREA_THRESHOLD,
    DEFAULT_MAX_FILES,
    DEFAULT_MAX_WORKERS,
)

# Load .env if available (keep only here)
load_dotenv()


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


# ---------------------------------------------------------------------
# Repo + data roots
# ---------------------------------------------------------------------

# Root of the repo (src/ava_county_annotator/core/settings.py -> up 3 levels)
REPO_ROOT = Path(__file__).resolve().parents[3]

AVAS_DIR = Path(os.environ.get("AVA_INPUT_DIR", str(REPO_ROOT / "avas")))
AVAS_UPDATED_DIR = Path(
    os.environ.get("AVA_OUTPUT_DIR", str(REPO_ROOT / "avas_updated"))
)
CACHE_DIR = Path(os.environ.get("AVA_CACHE_DIR", str(REPO_ROOT / ".tmp")))

# ---------------------------------------------------------------------
# County boundaries (auto-download)
# ---------------------------------------------------------------------

COUNTY_SHAPEFILE_URL = os.environ.get("COUNTY_SHAPEFILE_URL", _DEFAULT_COUNTY_URL)
AUTO_DOWNLOAD_COUNTIES = _as_bool(os.environ.get("AUTO_DOWNLOAD_COUNTIES"), default=True)

# ---------------------------------------------------------------------
# Annotation knobs
# ---------------------------------------------------------------------

AREA_THRESHOLD = float(os.environ.get("AVA_AREA_THRESHOLD", str(DEFAULT_AREA_THRESHOLD)))
MAX_WORKERS = int(os.environ.get("AVA_MAX_WORKERS", str(DEFAULT_MAX_WORKERS)))
MAX_FILES = int(os.environ.get("AVA_MAX_FILES", str(DEFAULT_MAX_FILES)))

# Overwrite the input GeoJSON files with changed outputs (explicit opt-in)
UPDATE_ORIGINALS = _as_bool(os.environ.get("AVA_UPDATE_ORIGINALS"), default=False)

# ---------------------------------------------------------------------
# PostGIS
# ---------------------------------------------------------------------

POSTGIS_HOST = os.environ.get("POSTGIS_HOST", "localhost")
POSTGIS_PORT = int(os.environ.get("POSTGIS_PORT", "5433"))
POSTGIS_DB = os.environ.get("POSTGIS_DB", "avasdb")
POSTGIS_USER = os.environ.get("POSTGIS_USER", "postgres")
POSTGIS_PASSWORD = os.environ.get("POSTGIS_PASSWORD", "")

# Full SQLAlchemy URL; wins over the POSTGIS_* parts when set
DATABASE_URL = os.environ.get("DATABASE_URL")

# ---------------------------------------------------------------------
# Logging / verbosity
# ---------------------------------------------------------------------

LOG_FILE = Path(os.environ.get("AVA_LOG_FILE", str(REPO_ROOT / "ava_county_update.log")))
VERBOSE = _as_bool(os.environ.get("VERBOSE"), default=False)


# ---------------------------------------------------------------------
# Debug
# ---------------------------------------------------------------------
def debug() -> None:
    print("=== SETTINGS ===")
    print("REPO_ROOT:               ", REPO_ROOT)
    print("AVAS_DIR:                ", AVAS_DIR)
    print("AVAS_UPDATED_DIR:        ", AVAS_UPDATED_DIR)
    print("CACHE_DIR:               ", CACHE_DIR)
    print("COUNTY_SHAPEFILE_URL:    ", COUNTY_SHAPEFILE_URL)
    print("AUTO_DOWNLOAD_COUNTIES:  ", AUTO_DOWNLOAD_COUNTIES)
    print("AREA_THRESHOLD:          ", AREA_THRESHOLD)
    print("MAX_WORKERS:             ", MAX_WORKERS)
    print("MAX_FILES:               ", MAX_FILES)
    print("UPDATE_ORIGINALS:        ", UPDATE_ORIGINALS)
    print("POSTGIS:                 ", f"{POSTGIS_USER}@{POSTGIS_HOST}:{POSTGIS_PORT}/{POSTGIS_DB}")
    print("LOG_FILE:                ", LOG_FILE)


if __name__ == "__main__":
    debug()

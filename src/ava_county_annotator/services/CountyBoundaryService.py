from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

import geopandas as gpd
from shapely.validation import make_valid

from ava_county_annotator.core import settings
from ava_county_annotator.core.constants import (
    CANONICAL_CRS,
    COUNTY_ID_COLUMN,
    COUNTY_NAME_COLUMN,
)
from ava_county_annotator.core.errors import ProvisioningError
from ava_county_annotator.core.HttpClient import HttpClient
from ava_county_annotator.core.models import ReferenceBoundary

LOG = logging.getLogger(__name__)


def fix_geometries(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    invalid_mask = ~gdf.geometry.is_valid
    if invalid_mask.any():
        LOG.info("Fixing %d invalid county geometries", int(invalid_mask.sum()))
        gdf = gdf.copy()
        gdf.loc[invalid_mask, gdf.geometry.name] = gdf.loc[invalid_mask, gdf.geometry.name].apply(make_valid)
    return gdf


def boundaries_from_frame(gdf: gpd.GeoDataFrame) -> List[ReferenceBoundary]:
    """County rows -> immutable ReferenceBoundary list (rows without geometry dropped)."""
    out: List[ReferenceBoundary] = []
    for geoid, name, geom in zip(gdf[COUNTY_ID_COLUMN], gdf[COUNTY_NAME_COLUMN], gdf.geometry):
        if geom is None or geom.is_empty:
            continue
        out.append(ReferenceBoundary(identifier=str(geoid), name=str(name), geometry=geom))
    return out


class CountyBoundaryService:
    """
    Data-access service for the TIGER county boundaries.
    Responsibilities:
      • Ensure the shapefile exists locally (download + unzip if needed)
      • Load, validate schema, reproject once to the canonical CRS
      • Hand out ReferenceBoundary objects

    Every failure surfaces as ProvisioningError: the pipeline must not run on
    partial or missing reference data.
    """

    REQUIRED_COLUMNS = {COUNTY_ID_COLUMN, COUNTY_NAME_COLUMN, "geometry"}

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------
    def __init__(
        self,
        url: str | None = None,
        cache_dir: Path | None = None,
        *,
        http: HttpClient | None = None,
        auto_download: bool | None = None,
    ) -> None:
        self.url = url or settings.COUNTY_SHAPEFILE_URL
        self.cache_dir = Path(cache_dir or settings.CACHE_DIR)
        self.http = http
        self.auto_download = (
            settings.AUTO_DOWNLOAD_COUNTIES if auto_download is None else auto_download
        )

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------
    @property
    def zip_filename(self) -> str:
        return Path(urlparse(self.url).path).name

    @property
    def zip_path(self) -> Path:
        return self.cache_dir / self.zip_filename

    @property
    def shapefile_dir(self) -> Path:
        return self.cache_dir / "shapefile_data"

    @property
    def shapefile_path(self) -> Path:
        return self.shapefile_dir / (Path(self.zip_filename).stem + ".shp")

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------
    def ensure_local(self) -> Path:
        """Return the local .shp path, downloading/unzipping only what is missing."""
        existing = self._find_shapefile()
        if existing is not None:
            return existing

        if not self.zip_path.exists():
            if not self.auto_download:
                raise ProvisioningError(f"County archive missing and auto-download disabled: {self.zip_path}")
            self._download()

        self._unzip()

        found = self._find_shapefile()
        if found is None:
            raise ProvisioningError(f"No .shp found after unzipping {self.zip_path}")
        return found

    def _find_shapefile(self) -> Optional[Path]:
        if self.shapefile_path.exists():
            return self.shapefile_path
        if self.shapefile_dir.exists():
            candidates = sorted(self.shapefile_dir.rglob("*.shp"))
            if candidates:
                return candidates[0]
        return None

    def _download(self) -> None:
        LOG.info("Downloading county shapefile from: %s to: %s", self.url, self.zip_path)
        http = self.http or HttpClient()
        try:
            http.download(self.url, self.zip_path)
        except (RuntimeError, OSError) as e:
            raise ProvisioningError(f"Error downloading county shapefile: {e}") from e

        size_mb = self.zip_path.stat().st_size / (1024 * 1024)
        LOG.info("Saved %s (%.2f MB)", self.zip_path.name, size_mb)

    def _unzip(self) -> None:
        LOG.info("Unzipping county shapefile to: %s", self.shapefile_dir)
        try:
            with zipfile.ZipFile(self.zip_path) as zf:
                zf.extractall(self.shapefile_dir)
        except (zipfile.BadZipFile, OSError) as e:
            raise ProvisioningError(f"Error unzipping {self.zip_path}: {e}") from e

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load_frame(self) -> gpd.GeoDataFrame:
        shp = self.ensure_local()
        LOG.info("Loading and transforming county shapefile from: %s", shp)

        try:
            gdf = gpd.read_file(shp)
        except Exception as e:
            raise ProvisioningError(f"Cannot read county shapefile {shp}: {e}") from e

        # Schema validation
        missing = self.REQUIRED_COLUMNS - set(gdf.columns)
        if missing:
            raise ProvisioningError(f"County dataset missing columns: {sorted(missing)}")
        if gdf.empty:
            raise ProvisioningError(f"County dataset is empty: {shp}")

        # The one authoritative reprojection of the run
        if gdf.crs is None:
            raise ProvisioningError(f"County dataset has no CRS: {shp}")
        gdf = gdf.to_crs(CANONICAL_CRS)

        gdf = fix_geometries(gdf)
        return gdf[[COUNTY_ID_COLUMN, COUNTY_NAME_COLUMN, gdf.geometry.name]]

    def load(self) -> List[ReferenceBoundary]:
        return boundaries_from_frame(self.load_frame())

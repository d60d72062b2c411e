from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence

import geopandas as gpd
import pandas as pd

from ava_county_annotator.core.constants import (
    GEOJSON_READ_OPTIONS,
    LABEL_DELIMITER,
    STATE_ATTRIBUTE,
    STATE_CODES,
)

LOG = logging.getLogger(__name__)

_SHAPEFILE_SIDECARS = (".shp", ".shx", ".dbf", ".prj", ".cpg")


@dataclass(frozen=True)
class StateSplitParams:
    aggregated_path: Path
    output_dir: Path
    states: Sequence[str] = STATE_CODES
    write_geopackage: bool = True
    write_shapefile_zip: bool = True


@dataclass(frozen=True)
class StateArtifacts:
    state: str
    features: int
    geojson: Path
    geopackage: Path | None = None
    shapefile_zip: Path | None = None


def states_of(value) -> List[str]:
    """'CA|OR' -> ['CA', 'OR']; blanks and NaN -> []."""
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return []
    return [s.strip() for s in str(value).split(LABEL_DELIMITER) if s.strip()]


class StateSplitPipeline:
    """
    Split an aggregated AVA collection into one file set per state.

    For every state code with at least one AVA:
      <output_dir>/<ST>_avas.geojson
      <output_dir>/<ST>_avas.gpkg                 (GeoPackage has no 10-char field limit)
      <output_dir>/<ST>_avas_shapefile.zip        (.shp/.shx/.dbf/.prj/.cpg)

    An AVA spanning several states (state = "CA|OR") lands in each of them.
    """

    def run(self, params: StateSplitParams) -> Dict[str, StateArtifacts]:
        avas = gpd.read_file(params.aggregated_path, **GEOJSON_READ_OPTIONS)
        if STATE_ATTRIBUTE not in avas.columns:
            raise ValueError(f"{params.aggregated_path} has no '{STATE_ATTRIBUTE}' attribute")

        params.output_dir.mkdir(parents=True, exist_ok=True)
        state_lists = avas[STATE_ATTRIBUTE].map(states_of)

        out: Dict[str, StateArtifacts] = {}
        for state in params.states:
            mask = state_lists.map(lambda codes: state in codes)
            subset = avas[mask.astype(bool)]
            LOG.info("%s_avas: %d features", state, len(subset))
            if subset.empty:
                continue
            out[state] = self._write_state(state, subset, params)

        print(f"[OUTPUT] Wrote file sets for {len(out)} states → {params.output_dir}")
        return out

    # -------------------
    # Internals
    # -------------------
    def _write_state(self, state: str, subset: gpd.GeoDataFrame, params: StateSplitParams) -> StateArtifacts:
        stem = f"{state}_avas"
        geojson = params.output_dir / f"{stem}.geojson"
        if geojson.exists():
            geojson.unlink()
        subset.to_file(geojson, driver="GeoJSON")

        gpkg = None
        if params.write_geopackage:
            gpkg = params.output_dir / f"{stem}.gpkg"
            if gpkg.exists():
                gpkg.unlink()
            subset.to_file(gpkg, layer=stem, driver="GPKG")

        shp_zip = None
        if params.write_shapefile_zip:
            shp_zip = self._write_shapefile_zip(stem, subset, params.output_dir)

        return StateArtifacts(
            state=state,
            features=len(subset),
            geojson=geojson,
            geopackage=gpkg,
            shapefile_zip=shp_zip,
        )

    @staticmethod
    def _write_shapefile_zip(stem: str, subset: gpd.GeoDataFrame, output_dir: Path) -> Path:
        staging = output_dir / f".{stem}_shp"
        staging.mkdir(parents=True, exist_ok=True)
        shp = staging / f"{stem}.shp"
        subset.to_file(shp, driver="ESRI Shapefile", encoding="UTF-8")

        zip_path = output_dir / f"{stem}_shapefile.zip"
        with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for suffix in _SHAPEFILE_SIDECARS:
                part = shp.with_suffix(suffix)
                if part.exists():
                    zf.write(part, arcname=part.name)

        # Leave the folder empty for the next state
        for part in staging.iterdir():
            part.unlink()
        staging.rmdir()
        return zip_path

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal, Mapping, Optional

import geopandas as gpd
import pandas as pd
import shapely
from shapely.geometry import GeometryCollection
from shapely.geometry.base import BaseGeometry

from ava_county_annotator.core.constants import CANONICAL_CRS, COUNTY_ATTRIBUTE

# Open attribute mapping of a region. The only key the pipeline owns is
# `county`; every other key is carried through untouched.
RegionAttributes = Mapping[str, Any]


def _to_python(value: Any) -> Any:
    """numpy/pandas scalars -> plain Python, NaN/NA -> None."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        # array-like values (lists in GeoJSON properties)
        return value
    if hasattr(value, "item"):
        return value.item()
    return value


@dataclass(frozen=True, eq=False)
class Region:
    """
    One AVA boundary file.

    `frame` keeps every feature of the source file (usually exactly one) so
    export writes back the same feature layout. The region geometry is the
    union of those features; the annotation is written to all of them.
    """

    identifier: str
    frame: gpd.GeoDataFrame
    crs_epsg: Optional[int]
    source_path: Optional[Path] = None
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_frame(
        cls,
        identifier: str,
        frame: gpd.GeoDataFrame,
        *,
        source_path: Optional[Path] = None,
    ) -> "Region":
        epsg = frame.crs.to_epsg() if frame.crs is not None else None
        return cls(identifier=identifier, frame=frame, crs_epsg=epsg, source_path=source_path)

    @classmethod
    def from_geometry(
        cls,
        identifier: str,
        geometry: BaseGeometry,
        attributes: Optional[Mapping[str, Any]] = None,
        *,
        crs: Optional[str] = CANONICAL_CRS,
    ) -> "Region":
        props = dict(attributes or {})
        frame = gpd.GeoDataFrame([props] if props else None, geometry=[geometry], crs=crs)
        return cls.from_frame(identifier, frame)

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------
    @property
    def geometry(self) -> BaseGeometry:
        geoms = [g for g in self.frame.geometry if g is not None and not g.is_empty]
        if not geoms:
            return GeometryCollection()
        if len(geoms) == 1:
            return geoms[0]
        return shapely.union_all(geoms)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        return tuple(float(v) for v in self.frame.total_bounds)

    @property
    def attributes(self) -> RegionAttributes:
        if self.frame.empty:
            return {}
        row = self.frame.iloc[0]
        geom_col = self.frame.geometry.name
        return {k: _to_python(row[k]) for k in self.frame.columns if k != geom_col}

    @property
    def county(self) -> Optional[str]:
        return self.attributes.get(COUNTY_ATTRIBUTE)

    def with_county(self, label: str) -> "Region":
        """New Region with `county` set on every feature; self is left as is."""
        frame = self.frame.copy()
        frame[COUNTY_ATTRIBUTE] = label
        return Region(
            identifier=self.identifier,
            frame=frame,
            crs_epsg=self.crs_epsg,
            source_path=self.source_path,
            loaded_at=self.loaded_at,
        )


@dataclass(frozen=True)
class ReferenceBoundary:
    identifier: str
    name: str
    geometry: BaseGeometry


@dataclass(frozen=True)
class IntersectionResult:
    region_id: str
    boundary_id: str
    boundary_name: str
    area: float  # m², geodesic


ChangeKind = Literal["added", "removed", "changed"]


@dataclass(frozen=True)
class ChangeRecord:
    region_id: str
    kind: ChangeKind
    attribute: Optional[str] = None
    old: Any = None
    new: Any = None
    feature_index: Optional[int] = None

from __future__ import annotations

import logging
from typing import Callable, List, Sequence

from shapely import make_valid
from shapely.errors import GEOSException
from shapely.geometry.base import BaseGeometry

from ava_county_annotator.core.constants import DEFAULT_AREA_THRESHOLD
from ava_county_annotator.core.errors import GeometryError
from ava_county_annotator.core.models import IntersectionResult, ReferenceBoundary, Region
from ava_county_annotator.geo.GeodesicArea import GeodesicAreaMeasurer

LOG = logging.getLogger(__name__)

AreaMeasure = Callable[[BaseGeometry], float]


class IntersectionEngine:
    """
    Exact region ∩ boundary intersection with an area floor.

    A result survives iff the geometries intersect with positive area and
    that area is >= `threshold` (inclusive). Point/line contacts are dropped
    even when the threshold is 0.

    Result order follows candidate order; callers must not rely on it.
    """

    def __init__(
        self,
        threshold: float = DEFAULT_AREA_THRESHOLD,
        measure: AreaMeasure | None = None,
    ) -> None:
        if threshold < 0:
            raise ValueError(f"area threshold must be >= 0, got {threshold}")
        self.threshold = float(threshold)
        self.measure = measure or GeodesicAreaMeasurer()

    def passes_threshold(self, area: float) -> bool:
        return area > 0.0 and area >= self.threshold

    def intersect(
        self,
        region: Region,
        candidates: Sequence[ReferenceBoundary],
    ) -> List[IntersectionResult]:
        region_geom = self._valid_geometry(region.geometry, region.identifier)

        results: List[IntersectionResult] = []
        for boundary in candidates:
            area = self._intersection_area(region, region_geom, boundary)
            if self.passes_threshold(area):
                results.append(
                    IntersectionResult(
                        region_id=region.identifier,
                        boundary_id=boundary.identifier,
                        boundary_name=boundary.name,
                        area=area,
                    )
                )
            elif area > 0.0:
                LOG.debug(
                    "Discarding %s ∩ %s: %.1f m² below threshold %.1f",
                    region.identifier, boundary.name, area, self.threshold,
                )

        return results

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _intersection_area(
        self,
        region: Region,
        region_geom: BaseGeometry,
        boundary: ReferenceBoundary,
    ) -> float:
        try:
            if not region_geom.intersects(boundary.geometry):
                return 0.0
            inter = region_geom.intersection(boundary.geometry)
            if inter.is_empty:
                return 0.0
            return float(self.measure(inter))
        except (GEOSException, ValueError) as e:
            raise GeometryError(
                f"intersection failed for region {region.identifier!r} "
                f"and boundary {boundary.identifier!r}: {e}"
            ) from e

    def _valid_geometry(self, geom: BaseGeometry, region_id: str) -> BaseGeometry:
        if geom.is_empty:
            raise GeometryError(f"region {region_id!r} has an empty geometry")
        if geom.is_valid:
            return geom

        LOG.warning("Region %s has an invalid geometry; repairing with make_valid", region_id)
        try:
            repaired = make_valid(geom)
        except GEOSException as e:
            raise GeometryError(f"region {region_id!r} geometry cannot be repaired: {e}") from e
        if repaired.is_empty:
            raise GeometryError(f"region {region_id!r} geometry is empty after repair")
        return repaired

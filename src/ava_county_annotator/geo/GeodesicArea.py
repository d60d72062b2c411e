from __future__ import annotations

from pyproj import Geod
from shapely.geometry import GeometryCollection, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient

from ava_county_annotator.core.constants import AREA_ELLIPSOID


def polygonal_part(geom: BaseGeometry) -> BaseGeometry:
    """
    Keep only the areal components of an intersection result.

    Intersections of adjacent polygons often come back as GeometryCollections
    mixing polygons with the shared edge (LineString) or corner (Point).
    """
    if geom.is_empty:
        return Polygon()
    if isinstance(geom, (Polygon, MultiPolygon)):
        return geom
    if isinstance(geom, GeometryCollection):
        polys = []
        for part in geom.geoms:
            part = polygonal_part(part)
            if isinstance(part, Polygon) and not part.is_empty:
                polys.append(part)
            elif isinstance(part, MultiPolygon):
                polys.extend(part.geoms)
        return MultiPolygon(polys) if polys else Polygon()
    # Point / LineString and their Multi* forms have no area
    return Polygon()


class GeodesicAreaMeasurer:
    """
    Area in square metres on the WGS84 ellipsoid for lon/lat geometries.

    Degree-squared planar area is never used: it shrinks with latitude and
    has no real-world unit.
    """

    def __init__(self, ellps: str = AREA_ELLIPSOID) -> None:
        self.geod = Geod(ellps=ellps)

    def __call__(self, geom: BaseGeometry) -> float:
        return self.area(geom)

    def area(self, geom: BaseGeometry) -> float:
        areal = polygonal_part(geom)
        if areal.is_empty:
            return 0.0
        parts = areal.geoms if isinstance(areal, MultiPolygon) else [areal]
        total = 0.0
        for part in parts:
            # Shell CCW, holes CW, so every part counts positive and holes subtract
            area, _ = self.geod.geometry_area_perimeter(orient(part, sign=1.0))
            total += float(area)
        return total

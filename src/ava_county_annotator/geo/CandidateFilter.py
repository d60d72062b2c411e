from __future__ import annotations

from typing import List, Sequence, Tuple

from shapely.strtree import STRtree

from ava_county_annotator.core.models import ReferenceBoundary, Region

Bounds = Tuple[float, float, float, float]


def bbox_overlaps(a: Bounds, b: Bounds) -> bool:
    """Closed-interval envelope test: touching edges count as overlap."""
    return a[0] <= b[2] and b[0] <= a[2] and a[1] <= b[3] and b[1] <= a[3]


def filter_candidates(region: Region, boundaries: Sequence[ReferenceBoundary]) -> List[ReferenceBoundary]:
    """Linear scan form of CandidateFilter.filter, same result and order."""
    region_geom = region.geometry
    if region_geom.is_empty:
        return []
    region_bounds = region_geom.bounds
    return [b for b in boundaries if bbox_overlaps(region_bounds, b.geometry.bounds)]


class CandidateFilter:
    """
    Cheap, conservative pre-filter of reference boundaries.

    Builds an STRtree over the boundary envelopes once; each query returns the
    boundaries whose bounding box overlaps the region's bounding box. This is
    an over-approximation of true intersection and never drops a boundary
    that actually intersects the region.

    The tree is read-only after construction and can be shared by workers.
    """

    def __init__(self, boundaries: Sequence[ReferenceBoundary]) -> None:
        self.boundaries: Tuple[ReferenceBoundary, ...] = tuple(boundaries)
        self._tree = STRtree([b.geometry for b in self.boundaries]) if self.boundaries else None

    def __len__(self) -> int:
        return len(self.boundaries)

    def filter(self, region: Region) -> List[ReferenceBoundary]:
        region_geom = region.geometry
        if self._tree is None or region_geom.is_empty:
            return []

        # No predicate: STRtree.query tests envelope intersection only
        hits = self._tree.query(region_geom)
        return [self.boundaries[i] for i in sorted(int(i) for i in hits)]

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Sequence, Tuple

from ava_county_annotator.core.models import IntersectionResult, ReferenceBoundary, Region
from ava_county_annotator.geo.AnnotationReducer import reduce
from ava_county_annotator.geo.CandidateFilter import CandidateFilter
from ava_county_annotator.geo.IntersectionEngine import IntersectionEngine

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class Annotation:
    region_id: str
    label: str
    results: Tuple[IntersectionResult, ...]
    candidates: int


class RegionAnnotationBuilder:
    """
    Candidate filter -> intersection engine -> reducer for one region.

    Holds only read-only state (the boundary index and engine settings), so a
    single instance is shared by all workers of a batch.
    """

    def __init__(self, boundaries: Sequence[ReferenceBoundary], engine: IntersectionEngine | None = None) -> None:
        self.candidate_filter = CandidateFilter(boundaries)
        self.engine = engine or IntersectionEngine()

    def annotate(self, region: Region) -> Annotation:
        start = time.perf_counter()

        candidates = self.candidate_filter.filter(region)
        LOG.info(
            "%s: %d candidate counties after bounding-box filter (of %d).",
            region.identifier, len(candidates), len(self.candidate_filter),
        )

        results = self.engine.intersect(region, candidates)
        label = reduce(region.identifier, results)

        if label:
            LOG.info("Intersecting counties for '%s': %s", region.identifier, label)
        else:
            LOG.info("No intersecting counties found for '%s'.", region.identifier)

        LOG.debug(
            "Completed intersecting counties for '%s' in %.3f seconds.",
            region.identifier, time.perf_counter() - start,
        )
        return Annotation(
            region_id=region.identifier,
            label=label,
            results=tuple(results),
            candidates=len(candidates),
        )

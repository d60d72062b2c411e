from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import List, Literal, Sequence, Tuple

from tqdm import tqdm

from ava_county_annotator.builders.RegionAnnotationBuilder import RegionAnnotationBuilder
from ava_county_annotator.core.constants import DEFAULT_MAX_WORKERS
from ava_county_annotator.core.errors import GeometryError, StoreError
from ava_county_annotator.core.models import ReferenceBoundary, Region
from ava_county_annotator.geo.IntersectionEngine import IntersectionEngine

LOG = logging.getLogger(__name__)

TaskStatus = Literal["annotated", "unchanged", "failed"]


@dataclass(frozen=True)
class TaskOutcome:
    """
    Per-region result handed back across the worker boundary.

    - annotated: non-empty label written to the store
    - unchanged: no significant intersections, nothing written
    - failed:    error captured in `error`, region excluded from output
    """
    region_id: str
    status: TaskStatus
    label: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status != "failed"


@dataclass(frozen=True)
class BatchReport:
    outcomes: Tuple[TaskOutcome, ...]

    def _with_status(self, *statuses: str) -> List[TaskOutcome]:
        return sorted((o for o in self.outcomes if o.status in statuses), key=lambda o: o.region_id)

    @property
    def succeeded(self) -> List[TaskOutcome]:
        return self._with_status("annotated", "unchanged")

    @property
    def failed(self) -> List[TaskOutcome]:
        return self._with_status("failed")

    @property
    def annotated(self) -> List[TaskOutcome]:
        return self._with_status("annotated")

    @property
    def unchanged(self) -> List[TaskOutcome]:
        return self._with_status("unchanged")


class AnnotateRegionsPipeline:
    """
    Fan out one annotation task per region, fan the outcomes back in.

    The executor lives only for the duration of `process()`; nothing about
    parallelism is global. Each task:
      1) opens exactly one store session (released on every exit path)
      2) reads its region collection
      3) runs filter -> intersection -> reducer
      4) replaces the collection only if the label is non-empty

    A region with no significant intersections is left exactly as stored,
    including any county label it already had.
    """

    def __init__(
        self,
        store,
        *,
        engine: IntersectionEngine | None = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        show_progress: bool = False,
    ) -> None:
        self.store = store
        self.engine = engine or IntersectionEngine()
        self.max_workers = max(1, int(max_workers))
        self.show_progress = show_progress

    # -------------------
    # Public API
    # -------------------
    def process(self, region_ids: Sequence[str], boundaries: Sequence[ReferenceBoundary]) -> BatchReport:
        builder = RegionAnnotationBuilder(boundaries, engine=self.engine)
        LOG.info(
            "Updating counties for %d regions (%d reference boundaries, workers=%d)",
            len(region_ids), len(boundaries), self.max_workers,
        )

        outcomes: List[TaskOutcome] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {pool.submit(self._process_one, rid, builder): rid for rid in region_ids}
            iterator = as_completed(futures)
            if self.show_progress:
                iterator = tqdm(iterator, total=len(futures), desc="Annotating regions")
            for fut in iterator:
                outcomes.append(fut.result())

        report = BatchReport(outcomes=tuple(sorted(outcomes, key=lambda o: o.region_id)))
        LOG.info(
            "Batch done: %d annotated, %d unchanged, %d failed",
            len(report.annotated), len(report.unchanged), len(report.failed),
        )
        return report

    # -------------------
    # Internals
    # -------------------
    def _process_one(self, region_id: str, builder: RegionAnnotationBuilder) -> TaskOutcome:
        LOG.info("Processing layer: '%s' in the database.", region_id)
        try:
            with self.store.session() as conn:
                frame = self.store.read_collection(conn, region_id)
                region = Region.from_frame(region_id, frame)

                annotation = builder.annotate(region)
                if not annotation.label:
                    LOG.info("No significant intersections found for '%s'.", region_id)
                    return TaskOutcome(region_id=region_id, status="unchanged")

                self.store.replace_collection(conn, region_id, region.with_county(annotation.label).frame)

            LOG.info("Updated sorted counties for '%s' in the database.", region_id)
            return TaskOutcome(region_id=region_id, status="annotated", label=annotation.label)

        except (GeometryError, StoreError) as e:
            LOG.error("Failed to process '%s': %s", region_id, e)
            return TaskOutcome(region_id=region_id, status="failed", error=str(e))
        except Exception as e:
            # Anything else still must not escape the worker
            LOG.exception("Unexpected error processing '%s'", region_id)
            return TaskOutcome(region_id=region_id, status="failed", error=f"{type(e).__name__}: {e}")

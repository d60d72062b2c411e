from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ava_county_annotator.core.constants import (
    COUNTIES_COLLECTION,
    DEFAULT_AREA_THRESHOLD,
    DEFAULT_MAX_FILES,
    DEFAULT_MAX_WORKERS,
)
from ava_county_annotator.core.errors import StoreError
from ava_county_annotator.core.models import ChangeRecord
from ava_county_annotator.geo.ChangeDetector import ChangeDetector, load_snapshot, log_report
from ava_county_annotator.geo.CrsValidator import CrsValidator
from ava_county_annotator.geo.IntersectionEngine import IntersectionEngine
from ava_county_annotator.pipelines.AnnotateRegionsPipeline import AnnotateRegionsPipeline
from ava_county_annotator.services.CountyBoundaryService import (
    CountyBoundaryService,
    boundaries_from_frame,
)
from ava_county_annotator.services.RegionRepository import RegionRepository

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvaCountyUpdateParams:
    input_dir: Path
    output_dir: Path
    cache_dir: Path
    county_shapefile_url: str

    area_threshold: float = DEFAULT_AREA_THRESHOLD
    max_workers: int = DEFAULT_MAX_WORKERS
    max_files: Optional[int] = DEFAULT_MAX_FILES

    # Copy changed outputs over the input files (explicit opt-in only)
    update_originals: bool = False
    show_progress: bool = False


@dataclass(frozen=True)
class RunSummary:
    validated: int
    rejected: int
    annotated: int
    unchanged: int
    failed: int
    changes: Tuple[ChangeRecord, ...] = ()
    rejected_ids: Tuple[str, ...] = ()
    failed_ids: Tuple[str, ...] = ()
    exported: Tuple[Path, ...] = ()
    updated_originals: Tuple[Path, ...] = ()

    def counts(self) -> Dict[str, int]:
        return {
            "validated": self.validated,
            "rejected": self.rejected,
            "annotated": self.annotated,
            "unchanged": self.unchanged,
            "failed": self.failed,
        }


class AvaCountyUpdatePipeline:
    """
    Orchestrates a full run:
      counties (download/load) -> regions (read/validate) -> PostGIS load
      -> per-region annotation -> GeoJSON export -> diff vs originals

    Provisioning failures and store setup failures abort the run (they
    propagate); per-region failures only reduce the output set.
    """

    def __init__(
        self,
        store,
        *,
        county_service: CountyBoundaryService | None = None,
        repository: RegionRepository | None = None,
        validator: CrsValidator | None = None,
    ) -> None:
        self.store = store
        self._county_service = county_service
        self._repository = repository
        self.validator = validator or CrsValidator()

    # -------------------
    # Public API
    # -------------------
    def run(self, params: AvaCountyUpdateParams) -> RunSummary:
        if params.update_originals:
            LOG.warning(
                "Running in UPDATE MODE. Original AVA GeoJSON files will be "
                "overwritten if differences are found."
            )

        repo = self._get_repository(params)
        repo.prepare_output_dir()

        # 1) Reference data: fatal if unavailable
        LOG.info("Starting county shapefile preparation...")
        counties_frame = self._get_county_service(params).load_frame()

        # 2) Regions + CRS gate
        LOG.info("Starting validation of GeoJSON files...")
        regions, unreadable = repo.read_all()
        valid, rejected = self.validator.validate_all(regions)
        failed_ids: List[str] = [p.stem for p, _ in unreadable]

        # 3) Store setup: fatal on failure
        self.store.check_connection()
        self.store.ensure_postgis()

        LOG.info("Importing county boundaries into PostGIS database.")
        self.store.load_collection(COUNTIES_COLLECTION, counties_frame)

        LOG.info("Importing AVA GeoJSON into PostGIS database.")
        loaded_ids: List[str] = []
        for region in valid:
            try:
                self.store.load_collection(region.identifier, region.frame)
                loaded_ids.append(region.identifier)
            except StoreError as e:
                LOG.error("Failed to import '%s' into PostGIS database: %s", region.identifier, e)
                failed_ids.append(region.identifier)

        # Counties are read back once and shared read-only by every task
        with self.store.session() as conn:
            boundaries = boundaries_from_frame(self.store.read_collection(conn, COUNTIES_COLLECTION))

        # 4) Annotate
        annotator = AnnotateRegionsPipeline(
            self.store,
            engine=IntersectionEngine(threshold=params.area_threshold),
            max_workers=params.max_workers,
            show_progress=params.show_progress,
        )
        report = annotator.process(loaded_ids, boundaries)
        failed_ids.extend(o.region_id for o in report.failed)

        # 5) Export
        LOG.info("Exporting updated layers from PostGIS database to individual GeoJSON files.")
        exported: List[Path] = []
        for outcome in report.succeeded:
            try:
                with self.store.session() as conn:
                    frame = self.store.read_collection(conn, outcome.region_id)
                exported.append(repo.export(outcome.region_id, frame))
            except (StoreError, OSError) as e:
                LOG.error("Failed to export '%s': %s", outcome.region_id, e)
                failed_ids.append(outcome.region_id)

        # 6) Diff against the originals that were part of this run
        listed = {r.identifier for r in regions} | {p.stem for p, _ in unreadable}
        before = {k: v for k, v in load_snapshot(repo.input_dir).items() if k in listed}
        after = load_snapshot(repo.output_dir)
        changes = ChangeDetector().diff(before, after)
        log_report(changes)

        updated: List[Path] = []
        if params.update_originals:
            updated = repo.update_originals(changes)

        failed_set = set(failed_ids)
        annotated = [o for o in report.annotated if o.region_id not in failed_set]
        unchanged = [o for o in report.unchanged if o.region_id not in failed_set]

        summary = RunSummary(
            validated=len(valid),
            rejected=len(rejected),
            annotated=len(annotated),
            unchanged=len(unchanged),
            failed=len(failed_set),
            changes=tuple(changes),
            rejected_ids=tuple(o.region.identifier for o in rejected),
            failed_ids=tuple(sorted(failed_set)),
            exported=tuple(exported),
            updated_originals=tuple(updated),
        )
        LOG.info("Script processing completed! %s", summary.counts())
        return summary

    # -------------------
    # Internals
    # -------------------
    def _get_repository(self, params: AvaCountyUpdateParams) -> RegionRepository:
        if self._repository is not None:
            return self._repository
        return RegionRepository(params.input_dir, params.output_dir, max_files=params.max_files)

    def _get_county_service(self, params: AvaCountyUpdateParams) -> CountyBoundaryService:
        if self._county_service is not None:
            return self._county_service
        return CountyBoundaryService(url=params.county_shapefile_url, cache_dir=params.cache_dir)

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import geopandas as gpd

from ava_county_annotator.core.constants import GEOJSON_READ_OPTIONS, REGION_FILE_PATTERN
from ava_county_annotator.core.models import ChangeRecord, Region

LOG = logging.getLogger(__name__)


class RegionRepository:
    """
    File-side access to AVA regions: one GeoJSON per region, region id = file stem.

    Reads from `input_dir`, exports to `output_dir`. The input directory is
    only ever written by `update_originals`, which callers gate behind an
    explicit opt-in.
    """

    def __init__(self, input_dir: Path, output_dir: Path, *, max_files: Optional[int] = None) -> None:
        self.input_dir = Path(input_dir)
        self.output_dir = Path(output_dir)
        self.max_files = max_files

        if self.input_dir.resolve() == self.output_dir.resolve():
            raise ValueError(
                f"output_dir must differ from input_dir ({self.input_dir}); "
                "use update_originals to write back"
            )

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------
    def list_files(self) -> List[Path]:
        if not self.input_dir.exists():
            raise FileNotFoundError(f"AVA input directory not found: {self.input_dir}")
        files = sorted(self.input_dir.glob(REGION_FILE_PATTERN))
        if self.max_files is not None:
            files = files[: self.max_files]
        LOG.info("%d GeoJSON files found in '%s'.", len(files), self.input_dir)
        return files

    @staticmethod
    def read(path: Path) -> Region:
        frame = gpd.read_file(path, **GEOJSON_READ_OPTIONS)
        return Region.from_frame(path.stem, frame, source_path=path)

    def read_all(self) -> Tuple[List[Region], List[Tuple[Path, str]]]:
        """
        Read every input file. Unreadable files are returned as (path, reason)
        instead of aborting the batch.
        """
        regions: List[Region] = []
        unreadable: List[Tuple[Path, str]] = []
        for path in self.list_files():
            try:
                regions.append(self.read(path))
            except Exception as e:
                LOG.error("Cannot read %s: %s", path, e)
                unreadable.append((path, str(e)))
        return regions, unreadable

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------
    def prepare_output_dir(self) -> Path:
        """Start every run from an empty output directory."""
        if self.output_dir.exists():
            LOG.info("Removing existing directory: %s", self.output_dir)
            shutil.rmtree(self.output_dir)
        LOG.info("Creating directory: %s", self.output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self.output_dir

    def output_path(self, region_id: str) -> Path:
        return self.output_dir / f"{region_id}.geojson"

    def export(self, region_id: str, frame: gpd.GeoDataFrame) -> Path:
        destination = self.output_path(region_id)
        destination.parent.mkdir(parents=True, exist_ok=True)
        if destination.exists():
            destination.unlink()
        frame.to_file(destination, driver="GeoJSON")
        LOG.info("Exported '%s' to GeoJSON at: %s", region_id, destination)
        return destination

    def export_regions(self, regions: Iterable[Region]) -> List[Path]:
        return [self.export(r.identifier, r.frame) for r in regions]

    # ------------------------------------------------------------------
    # Opt-in write-back
    # ------------------------------------------------------------------
    def update_originals(self, changes: Sequence[ChangeRecord]) -> List[Path]:
        """Copy changed output files over their originals."""
        changed_ids = sorted({c.region_id for c in changes if c.kind == "changed"})
        updated: List[Path] = []
        for region_id in changed_ids:
            source = self.output_path(region_id)
            target = self.input_dir / f"{region_id}.geojson"
            if not source.exists():
                continue
            shutil.copyfile(source, target)
            LOG.info("Updated original file with the updated one: %s", target)
            updated.append(target)
        return updated

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from ava_county_annotator.core import settings
from ava_county_annotator.core.errors import ProvisioningError, StoreError
from ava_county_annotator.core.pipeline_config import load_pipeline_config
from ava_county_annotator.geo.ChangeDetector import format_report
from ava_county_annotator.pipelines.AvaCountyUpdatePipeline import (
    AvaCountyUpdateParams,
    AvaCountyUpdatePipeline,
)
from ava_county_annotator.services.SpatialStore import SpatialStore
from ava_county_annotator.utils.log_parameters import log_parameters
from ava_county_annotator.utils.logging_setup import configure_logging

LOG = logging.getLogger(__name__)


PARAMETER_DOCS = {
    "input_dir": "Folder with one AVA GeoJSON per region.",
    "output_dir": "Folder receiving the annotated GeoJSON files (emptied first).",
    "cache_dir": "Download/unzip cache for the county shapefile.",
    "county_shapefile_url": "Zipped TIGER county shapefile.",
    "area_threshold": "Minimum AVA ∩ county area kept, in m².",
    "max_workers": "Parallel region tasks (also the DB connection cap).",
    "max_files": "Maximum number of GeoJSON files to process.",
    "update_originals": "Overwrite input files whose content changed.",
}


def _as_bool01(x: str) -> bool:
    x = x.strip().lower()
    if x in {"1", "true", "yes", "y"}:
        return True
    if x in {"0", "false", "no", "n"}:
        return False
    raise argparse.ArgumentTypeError(f"Expected boolean 0/1 or true/false, got: {x}")


def build_parser(cfg=None) -> argparse.ArgumentParser:
    cfg = cfg or load_pipeline_config()

    p = argparse.ArgumentParser(
        description="Annotate AVA GeoJSON files with the counties they intersect."
    )
    p.add_argument("--config", type=Path, default=None, help="Pipeline YAML (default config/pipeline.ava.yaml).")
    p.add_argument("--input-dir", type=Path, default=cfg.input_dir, help="AVA GeoJSON folder.")
    p.add_argument("--output-dir", type=Path, default=cfg.output_dir, help="Annotated GeoJSON folder.")
    p.add_argument("--cache-dir", type=Path, default=cfg.cache_dir, help="County shapefile cache.")
    p.add_argument("--county-url", default=cfg.county_shapefile_url, help="County shapefile ZIP URL.")
    p.add_argument("--area-threshold", type=float, default=cfg.area_threshold, help="Minimum intersection area (m²).")
    p.add_argument("--max-workers", type=int, default=cfg.max_workers, help="Worker pool size.")
    p.add_argument("--max-files", type=int, default=cfg.max_files, help="Maximum files to process.")
    p.add_argument(
        "--update-originals",
        type=_as_bool01,
        default=cfg.update_originals,
        help="Overwrite input files that changed (0/1, true/false).",
    )
    p.add_argument("--database-url", default=None, help="SQLAlchemy URL of the PostGIS database.")
    p.add_argument("--log-file", type=Path, default=settings.LOG_FILE, help="Append-mode log file.")
    p.add_argument("--progress", action="store_true", help="Show a progress bar.")
    p.add_argument("--verbose", action="store_true", default=settings.VERBOSE, help="Debug logging.")
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    # --config has to be known before the other defaults are resolved
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", type=Path, default=None)
    known, _ = pre.parse_known_args(argv)
    cfg = load_pipeline_config(known.config)

    args = build_parser(cfg).parse_args(argv)
    configure_logging(args.log_file, verbose=args.verbose)

    params = AvaCountyUpdateParams(
        input_dir=args.input_dir,
        output_dir=args.output_dir,
        cache_dir=args.cache_dir,
        county_shapefile_url=args.county_url,
        area_threshold=args.area_threshold,
        max_workers=args.max_workers,
        max_files=args.max_files,
        update_originals=args.update_originals,
        show_progress=args.progress,
    )
    log_parameters("UpdateAvaCounties", params, PARAMETER_DOCS, {"log_file": args.log_file})

    store = SpatialStore(args.database_url or cfg.database_url, max_connections=args.max_workers)
    try:
        summary = AvaCountyUpdatePipeline(store).run(params)
    except (ProvisioningError, StoreError) as e:
        LOG.error("Script terminated: %s", e)
        return 1
    except Exception:
        LOG.exception("An unanticipated error occurred; script terminated.")
        return 1
    finally:
        store.dispose()

    print(f"[OUTPUT] Regions: {summary.counts()}")
    for line in format_report(list(summary.changes)):
        print(f"[DIFF] {line}")
    if summary.failed_ids:
        print(f"[WARN] Failed regions: {', '.join(summary.failed_ids)}")
    print(f"[OUTPUT] Annotated GeoJSON saved to: {params.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

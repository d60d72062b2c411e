from __future__ import annotations

import argparse
from pathlib import Path

from ava_county_annotator.core import settings
from ava_county_annotator.core.constants import STATE_CODES
from ava_county_annotator.pipelines.StateSplitPipeline import StateSplitParams, StateSplitPipeline
from ava_county_annotator.utils.log_parameters import log_parameters
from ava_county_annotator.utils.logging_setup import configure_logging


PARAMETER_DOCS = {
    "aggregated_path": "Single GeoJSON holding every AVA.",
    "output_dir": "Folder receiving the per-state file sets.",
    "states": "State codes to split out.",
}


def main() -> None:
    p = argparse.ArgumentParser(description="Split aggregated AVAs into per-state GeoJSON/GPKG/shapefile sets.")
    p.add_argument(
        "--aggregated",
        default=str(settings.REPO_ROOT / "avas_aggregated_files" / "avas.geojson"),
        help="Aggregated AVA GeoJSON.",
    )
    p.add_argument(
        "--output-dir",
        default=str(settings.REPO_ROOT / "avas_by_state"),
        help="Output folder.",
    )
    p.add_argument(
        "--states",
        default=",".join(STATE_CODES),
        help="Comma-separated state codes.",
    )
    p.add_argument("--no-gpkg", action="store_true", help="Skip GeoPackage output.")
    p.add_argument("--no-shapefile", action="store_true", help="Skip zipped shapefile output.")
    args = p.parse_args()

    configure_logging(settings.LOG_FILE, verbose=settings.VERBOSE)

    params = StateSplitParams(
        aggregated_path=Path(args.aggregated),
        output_dir=Path(args.output_dir),
        states=tuple(s.strip().upper() for s in args.states.split(",") if s.strip()),
        write_geopackage=not args.no_gpkg,
        write_shapefile_zip=not args.no_shapefile,
    )
    log_parameters("SplitAvasByState", params, PARAMETER_DOCS)

    StateSplitPipeline().run(params)


if __name__ == "__main__":
    main()

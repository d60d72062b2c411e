from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from sqlalchemy.engine import URL

from ava_county_annotator.core import settings


CONFIG_PATH = settings.REPO_ROOT / "config" / "pipeline.ava.yaml"


@dataclass(frozen=True)
class PipelineConfig:
    raw: Dict[str, Any]

    # ---- folders ----
    @property
    def input_dir(self) -> Path:
        paths = self.raw.get("paths", {})
        return Path(paths.get("input_dir", settings.AVAS_DIR))

    @property
    def output_dir(self) -> Path:
        paths = self.raw.get("paths", {})
        return Path(paths.get("output_dir", settings.AVAS_UPDATED_DIR))

    @property
    def cache_dir(self) -> Path:
        paths = self.raw.get("paths", {})
        return Path(paths.get("cache_dir", settings.CACHE_DIR))

    # ---- reference dataset ----
    @property
    def county_shapefile_url(self) -> str:
        return self.raw.get("counties", {}).get("url", settings.COUNTY_SHAPEFILE_URL)

    # ---- annotation ----
    @property
    def area_threshold(self) -> float:
        annotation = self.raw.get("annotation", {})
        return float(annotation.get("area_threshold", settings.AREA_THRESHOLD))

    @property
    def max_workers(self) -> int:
        annotation = self.raw.get("annotation", {})
        return int(annotation.get("max_workers", settings.MAX_WORKERS))

    @property
    def max_files(self) -> int:
        annotation = self.raw.get("annotation", {})
        return int(annotation.get("max_files", settings.MAX_FILES))

    @property
    def update_originals(self) -> bool:
        return bool(self.raw.get("update_originals", settings.UPDATE_ORIGINALS))

    # ---- datastore ----
    @property
    def database_url(self) -> str:
        """
        Explicit `postgis.url` (or DATABASE_URL) wins; otherwise the URL is
        assembled from the individual host/port/db/user/password values.
        """
        pg = self.raw.get("postgis", {})
        if pg.get("url"):
            return pg["url"]
        if settings.DATABASE_URL:
            return settings.DATABASE_URL

        url = URL.create(
            "postgresql+psycopg2",
            username=pg.get("user", settings.POSTGIS_USER),
            password=pg.get("password", settings.POSTGIS_PASSWORD) or None,
            host=pg.get("host", settings.POSTGIS_HOST),
            port=int(pg.get("port", settings.POSTGIS_PORT)),
            database=pg.get("db", settings.POSTGIS_DB),
        )
        return url.render_as_string(hide_password=False)


def load_pipeline_config(path: Optional[Path] = None) -> PipelineConfig:
    cfg_path = path or CONFIG_PATH
    if not cfg_path.exists():
        # settings/env defaults only
        return PipelineConfig(raw={})
    with cfg_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return PipelineConfig(raw=data)

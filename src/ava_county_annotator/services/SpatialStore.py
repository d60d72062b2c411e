from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, List

import geopandas as gpd
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ava_county_annotator.core.constants import CANONICAL_EPSG, DEFAULT_MAX_WORKERS
from ava_county_annotator.core.errors import StoreError

LOG = logging.getLogger(__name__)

GEOMETRY_COLUMN = "geometry"
# Preserves feature order across the round trip through the database
ROW_ORDER_COLUMN = "_row_order"


class SpatialStore:
    """
    PostGIS-backed feature collections, one table per collection.

    Only four things are asked of the database: bulk-load a collection,
    index it, read it back, and replace it after annotation. Server
    lifecycle is someone else's job.

    The connection pool is capped at `max_connections` (no overflow) so the
    number of open connections never exceeds the worker pool size. Every
    unit of work goes through `session()`, which commits on success, rolls
    back on error and always returns the connection to the pool.
    """

    def __init__(self, url: str | None = None, *, engine: Engine | None = None, max_connections: int = DEFAULT_MAX_WORKERS) -> None:
        if engine is None:
            if not url:
                raise ValueError("SpatialStore needs a database URL or an engine")
            engine = create_engine(
                url,
                pool_size=max(1, int(max_connections)),
                max_overflow=0,
                pool_pre_ping=True,
            )
        self.engine = engine

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------
    @contextmanager
    def session(self) -> Iterator[Connection]:
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as e:
            raise StoreError(f"spatial store operation failed: {e}") from e

    def check_connection(self) -> None:
        """Fail fast (StoreError) when the database is unreachable."""
        with self.session() as conn:
            conn.execute(text("SELECT 1"))
        LOG.info("Connected to spatial store at %s", self.engine.url.render_as_string(hide_password=True))

    def ensure_postgis(self) -> None:
        with self.session() as conn:
            conn.execute(text("CREATE EXTENSION IF NOT EXISTS postgis"))

    def dispose(self) -> None:
        self.engine.dispose()

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------
    def _quote(self, name: str) -> str:
        return self.engine.dialect.identifier_preparer.quote_identifier(name)

    def index_name(self, name: str) -> str:
        return f"{name}_geom_idx"

    def list_collections(self) -> List[str]:
        try:
            return sorted(inspect(self.engine).get_table_names())
        except SQLAlchemyError as e:
            raise StoreError(f"cannot list collections: {e}") from e

    def load_collection(self, name: str, frame: gpd.GeoDataFrame) -> None:
        """Replace collection `name` with `frame` and give it a spatial index."""
        with self.session() as conn:
            self.replace_collection(conn, name, frame)
            self.create_spatial_index(conn, name)
        LOG.info("Imported '%s' into PostGIS (%d features) with spatial index.", name, len(frame))

    def create_spatial_index(self, conn: Connection, name: str) -> None:
        sql = (
            f"CREATE INDEX IF NOT EXISTS {self._quote(self.index_name(name))} "
            f"ON {self._quote(name)} USING GIST ({self._quote(GEOMETRY_COLUMN)})"
        )
        conn.execute(text(sql))

    def read_collection(self, conn: Connection, name: str) -> gpd.GeoDataFrame:
        sql = f"SELECT * FROM {self._quote(name)}"
        gdf = gpd.read_postgis(text(sql), conn, geom_col=GEOMETRY_COLUMN)
        if ROW_ORDER_COLUMN in gdf.columns:
            gdf = gdf.sort_values(ROW_ORDER_COLUMN).drop(columns=ROW_ORDER_COLUMN).reset_index(drop=True)
        if gdf.crs is None:
            gdf = gdf.set_crs(epsg=CANONICAL_EPSG)
        return gdf

    def replace_collection(self, conn: Connection, name: str, frame: gpd.GeoDataFrame) -> None:
        """Replace (never append) the contents of collection `name`."""
        if frame.geometry.name != GEOMETRY_COLUMN:
            frame = frame.rename_geometry(GEOMETRY_COLUMN)
        frame = frame.reset_index(drop=True)
        frame.to_postgis(name, conn, if_exists="replace", index=True, index_label=ROW_ORDER_COLUMN)

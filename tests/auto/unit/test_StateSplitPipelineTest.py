from __future__ import annotations

import tempfile
import unittest
import zipfile
from pathlib import Path

import geopandas as gpd
from shapely.geometry import box

from ava_county_annotator.pipelines.StateSplitPipeline import (
    StateSplitParams,
    StateSplitPipeline,
    states_of,
)

from tests.fixtures.generators.AvaTestDataGenerator import write_geojson


class StateSplitPipelineTest(unittest.TestCase):

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        avas = gpd.GeoDataFrame(
            {
                "ava_id": ["napa", "columbia", "puget"],
                "state": ["CA", "OR|WA", "WA"],
                "county": ["Napa", "Umatilla|Walla Walla", "King"],
            },
            geometry=[box(-122.5, 38.2, -122.2, 38.6), box(-119.5, 45.5, -118.5, 46.5), box(-122.5, 47.0, -122.0, 47.5)],
            crs="EPSG:4326",
        )
        self.aggregated = write_geojson(self.root / "avas.geojson", avas)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def testStatesOf(self):
        self.assertEqual(states_of("OR|WA"), ["OR", "WA"])
        self.assertEqual(states_of(" CA "), ["CA"])
        self.assertEqual(states_of(None), [])
        self.assertEqual(states_of(float("nan")), [])

    def testSplitWritesOneFileSetPerNonEmptyState(self):
        out_dir = self.root / "avas_by_state"
        params = StateSplitParams(
            aggregated_path=self.aggregated,
            output_dir=out_dir,
            states=("CA", "OR", "WA", "NY"),
        )

        artifacts = StateSplitPipeline().run(params)

        self.assertEqual(sorted(artifacts), ["CA", "OR", "WA"])
        self.assertEqual(artifacts["WA"].features, 2)
        self.assertFalse((out_dir / "NY_avas.geojson").exists())

        wa = gpd.read_file(artifacts["WA"].geojson)
        self.assertEqual(sorted(wa["ava_id"]), ["columbia", "puget"])

        self.assertTrue(artifacts["CA"].geopackage.exists())
        with zipfile.ZipFile(artifacts["OR"].shapefile_zip) as zf:
            names = set(zf.namelist())
        self.assertTrue({"OR_avas.shp", "OR_avas.shx", "OR_avas.dbf", "OR_avas.prj"} <= names)

        # Staging folders are cleaned up
        self.assertEqual(sorted(p.name for p in out_dir.iterdir() if p.name.startswith(".")), [])

    def testOptionalFormatsCanBeSkipped(self):
        params = StateSplitParams(
            aggregated_path=self.aggregated,
            output_dir=self.root / "geojson_only",
            states=("CA",),
            write_geopackage=False,
            write_shapefile_zip=False,
        )
        artifacts = StateSplitPipeline().run(params)
        self.assertIsNone(artifacts["CA"].geopackage)
        self.assertIsNone(artifacts["CA"].shapefile_zip)

    def testMissingStateAttribute(self):
        plain = write_geojson(
            self.root / "plain.geojson",
            gpd.GeoDataFrame({"ava_id": ["x"]}, geometry=[box(0, 0, 1, 1)], crs="EPSG:4326"),
        )
        with self.assertRaises(ValueError):
            StateSplitPipeline().run(StateSplitParams(aggregated_path=plain, output_dir=self.root / "o"))


if __name__ == "__main__":
    unittest.main()

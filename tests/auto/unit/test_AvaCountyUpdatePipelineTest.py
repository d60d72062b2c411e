from __future__ import annotations

import json
import unittest
from dataclasses import replace

from ava_county_annotator.core.errors import ProvisioningError, StoreError
from ava_county_annotator.geo.ChangeDetector import ChangeDetector, load_snapshot
from ava_county_annotator.pipelines.AvaCountyUpdatePipeline import (
    AvaCountyUpdateParams,
    AvaCountyUpdatePipeline,
)
from ava_county_annotator.services.CountyBoundaryService import CountyBoundaryService

from tests.fixtures.generators.AvaTestDataGenerator import (
    COUNTY_URL,
    GENERATED_DIR,
    AvaTestDataConfig,
    AvaTestDataGenerator,
)
from tests.mocks.FakeSpatialStore import FakeSpatialStore


class AvaCountyUpdatePipelineTest(unittest.TestCase):
    """
    End-to-end run on generated data, PostGIS replaced by FakeSpatialStore.

    Artifacts (kept on disk for manual inspection):

      tests/fixtures/generated/ava_update/avas/*.geojson
      tests/fixtures/generated/ava_update/avas_updated/*.geojson
    """

    def setUp(self) -> None:
        self.gen = AvaTestDataGenerator(AvaTestDataConfig(output_dir=GENERATED_DIR / "ava_update"))
        self.artifacts = self.gen.run()
        self.params = AvaCountyUpdateParams(
            input_dir=self.artifacts["input_dir"],
            output_dir=self.artifacts["output_dir"],
            cache_dir=self.artifacts["cache_dir"],
            county_shapefile_url=COUNTY_URL,
            area_threshold=1e7,
            max_workers=3,
            max_files=300,
        )

    def _pipeline(self, store: FakeSpatialStore) -> AvaCountyUpdatePipeline:
        counties = CountyBoundaryService(
            url=COUNTY_URL,
            cache_dir=self.artifacts["cache_dir"],
            auto_download=False,
        )
        return AvaCountyUpdatePipeline(store, county_service=counties)

    def testFullRun(self):
        store = FakeSpatialStore()
        summary = self._pipeline(store).run(self.params)

        self.assertEqual(summary.counts(), {
            "validated": 3,
            "rejected": 1,
            "annotated": 2,
            "unchanged": 1,
            "failed": 0,
        })
        self.assertEqual(summary.rejected_ids, ("wrong_crs",))

        out = load_snapshot(self.params.output_dir)
        self.assertEqual(sorted(out), ["alpha_beta", "mostly_a", "outside"])

        def county(region_id):
            return out[region_id]["features"][0]["properties"].get("county")

        for region_id, label in AvaTestDataGenerator.EXPECTED_LABELS.items():
            self.assertEqual(county(region_id), label)
        self.assertEqual(county("outside"), "Legacy")

        county_changes = {
            r.region_id: r.new for r in summary.changes
            if r.kind == "changed" and r.attribute == "county"
        }
        self.assertEqual(county_changes, AvaTestDataGenerator.EXPECTED_LABELS)
        self.assertIn(("wrong_crs", "removed"), {(r.region_id, r.kind) for r in summary.changes})

        # Inputs are untouched without update_originals
        self.assertEqual(summary.updated_originals, ())
        originals = load_snapshot(self.params.input_dir)
        self.assertNotIn("county", originals["mostly_a"]["features"][0]["properties"])

        self.assertEqual(store.acquired, store.released)
        self.assertIn("counties", store.list_collections())

    def testSecondRunProducesIdenticalOutput(self):
        self._pipeline(FakeSpatialStore()).run(self.params)
        first = load_snapshot(self.params.output_dir)

        self._pipeline(FakeSpatialStore()).run(self.params)
        second = load_snapshot(self.params.output_dir)

        self.assertEqual(ChangeDetector().diff(first, second), [])

    def testFailedRegionExcludedFromOutput(self):
        store = FakeSpatialStore(fail_on_read={"mostly_a"}, fail_on_load={"outside"})
        summary = self._pipeline(store).run(self.params)

        self.assertEqual(summary.failed_ids, ("mostly_a", "outside"))
        self.assertEqual(summary.annotated, 1)
        self.assertEqual(sorted(load_snapshot(self.params.output_dir)), ["alpha_beta"])

    def testUpdateOriginalsWritesBack(self):
        params = replace(self.params, update_originals=True)
        summary = self._pipeline(FakeSpatialStore()).run(params)

        updated = {p.stem for p in summary.updated_originals}
        self.assertLessEqual({"alpha_beta", "mostly_a"}, updated)
        self.assertNotIn("wrong_crs", updated)
        originals = load_snapshot(self.params.input_dir)
        self.assertEqual(originals["mostly_a"]["features"][0]["properties"]["county"], "CountyA")

    def _write_hand_made_original(self):
        # Written by hand: no name/crs members, and a date kept as a plain string
        doc = {
            "type": "FeatureCollection",
            "features": [{
                "type": "Feature",
                "properties": {"ava_id": "hand", "created": "2019-12-06"},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [[[0.2, 0.5], [0.4, 0.5], [0.4, 0.7], [0.2, 0.7], [0.2, 0.5]]],
                },
            }],
        }
        path = self.params.input_dir / "hand.geojson"
        path.write_text(json.dumps(doc), encoding="utf-8")
        return path

    def testDateAttributesPassThroughUnchanged(self):
        self._write_hand_made_original()
        params = replace(self.params, update_originals=True)

        summary = self._pipeline(FakeSpatialStore()).run(params)

        hand_changes = [(r.kind, r.attribute, r.old, r.new) for r in summary.changes if r.region_id == "hand"]
        self.assertEqual(hand_changes, [("changed", "county", None, "CountyB")])
        self.assertEqual(
            {r.attribute for r in summary.changes if r.kind == "changed"},
            {"county"},
        )

        out = load_snapshot(self.params.output_dir)["hand"]["features"][0]["properties"]
        self.assertEqual(out["created"], "2019-12-06")
        original = load_snapshot(self.params.input_dir)["hand"]["features"][0]["properties"]
        self.assertEqual(original, {"ava_id": "hand", "created": "2019-12-06", "county": "CountyB"})

    def testStoreUnavailableIsFatal(self):
        with self.assertRaises(StoreError):
            self._pipeline(FakeSpatialStore(connection_error=True)).run(self.params)

    def testMissingCountiesIsFatal(self):
        missing = CountyBoundaryService(
            url="https://example.invalid/none.zip",
            cache_dir=self.artifacts["cache_dir"] / "empty",
            auto_download=False,
        )
        with self.assertRaises(ProvisioningError):
            AvaCountyUpdatePipeline(FakeSpatialStore(), county_service=missing).run(self.params)


if __name__ == "__main__":
    unittest.main()

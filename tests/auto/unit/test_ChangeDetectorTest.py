from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path

from ava_county_annotator.geo.ChangeDetector import ChangeDetector, format_report, load_snapshot


def _collection(props, coords=((0, 0), (1, 0), (1, 1), (0, 0))):
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": dict(props),
                "geometry": {"type": "Polygon", "coordinates": [[list(c) for c in coords]]},
            }
        ],
    }


class ChangeDetectorTest(unittest.TestCase):

    def setUp(self) -> None:
        self.detector = ChangeDetector()

    def testCountyAddedIsTheOnlyChange(self):
        before = {"X": _collection({"name": "X"})}
        after = {"X": _collection({"name": "X", "county": "Alpha|Beta"})}

        records = self.detector.diff(before, after)

        self.assertEqual(len(records), 1)
        rec = records[0]
        self.assertEqual((rec.region_id, rec.kind, rec.attribute), ("X", "changed", "county"))
        self.assertIsNone(rec.old)
        self.assertEqual(rec.new, "Alpha|Beta")
        self.assertEqual(rec.feature_index, 0)

    def testKeyOrderIsNotAChange(self):
        doc = _collection({"name": "X", "county": "Napa"})
        reordered = json.loads(json.dumps(doc, sort_keys=True))
        reordered["features"][0] = dict(reversed(list(reordered["features"][0].items())))
        reordered["features"][0]["properties"] = {"county": "Napa", "name": "X"}

        self.assertEqual(self.detector.diff({"X": doc}, {"X": reordered}), [])

    def testWriterStampedMembersIgnored(self):
        # Hand-written original without the name/crs members GDAL adds on export
        before = {"hand": _collection({"ava_id": "hand"})}
        after_doc = _collection({"ava_id": "hand", "county": "Napa"})
        after_doc["name"] = "hand"
        after_doc["crs"] = {"type": "name", "properties": {"name": "urn:ogc:def:crs:OGC:1.3:CRS84"}}
        after_doc["bbox"] = [0, 0, 1, 1]

        records = self.detector.diff(before, {"hand": after_doc})

        self.assertEqual([r.attribute for r in records], ["bbox", "county"])

    def testAddedAndRemovedRegions(self):
        before = {"gone": _collection({}), "same": _collection({})}
        after = {"same": _collection({}), "new": _collection({})}

        records = self.detector.diff(before, after)
        self.assertEqual(
            [(r.region_id, r.kind) for r in records],
            [("gone", "removed"), ("new", "added")],
        )

    def testGeometryAndFeatureCountChanges(self):
        before = {"X": _collection({"name": "X"})}
        after_doc = _collection({"name": "X"}, coords=((0, 0), (2, 0), (2, 2), (0, 0)))
        after_doc["features"].append(_collection({"name": "X2"})["features"][0])

        records = self.detector.diff(before, {"X": after_doc})
        attrs = [r.attribute for r in records]
        self.assertEqual(attrs, ["feature_count", "geometry"])
        self.assertEqual((records[0].old, records[0].new), (1, 2))
        self.assertEqual((records[1].old, records[1].new), ("Polygon", "Polygon"))

    def testBareFeatureComparedAsCollection(self):
        feature = _collection({"name": "X"})["features"][0]
        self.assertEqual(self.detector.diff({"X": feature}, {"X": _collection({"name": "X"})}), [])

    def testReportAndSnapshot(self):
        self.assertEqual(format_report([]), ["No differences between original and updated GeoJSON files."])

        with tempfile.TemporaryDirectory() as tmp:
            d = Path(tmp)
            (d / "a.geojson").write_text(json.dumps(_collection({"name": "A"})), encoding="utf-8")
            (d / "notes.txt").write_text("ignored", encoding="utf-8")
            snap = load_snapshot(d)
            self.assertEqual(list(snap), ["a"])
            self.assertEqual(load_snapshot(d / "missing"), {})

        records = self.detector.diff({"X": _collection({})}, {"X": _collection({"county": "Napa"})})
        lines = format_report(records)
        self.assertEqual(lines[0], "The following GeoJSON attributes have changed:")
        self.assertIn("X[0] county", lines[1])


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

import itertools
import unittest

from shapely.geometry import GeometryCollection, Polygon, box

from ava_county_annotator.core.errors import GeometryError
from ava_county_annotator.core.models import ReferenceBoundary, Region
from ava_county_annotator.geo.AnnotationReducer import reduce
from ava_county_annotator.geo.GeodesicArea import GeodesicAreaMeasurer, polygonal_part
from ava_county_annotator.geo.IntersectionEngine import IntersectionEngine

COUNTY_A = ReferenceBoundary("90001", "CountyA", box(-1, 0, 0, 1))
COUNTY_B = ReferenceBoundary("90002", "CountyB", box(0, 0, 1, 1))


class IntersectionEngineTest(unittest.TestCase):
    """
    Exact intersection + geodesic area + inclusive threshold.
    """

    def testMostlyCountyAScenario(self):
        """
        R = [-0.16, 0.04] x [0, 0.01] at the equator:
          R ∩ A ≈ 1.97e7 m² (kept), R ∩ B ≈ 4.9e6 m² (dropped) -> "CountyA"
        """
        region = Region.from_geometry("R", box(-0.16, 0.0, 0.04, 0.01))
        engine = IntersectionEngine(threshold=1e7)

        measure = GeodesicAreaMeasurer()
        area_a = measure(region.geometry.intersection(COUNTY_A.geometry))
        area_b = measure(region.geometry.intersection(COUNTY_B.geometry))
        self.assertAlmostEqual(area_a / 1.97e7, 1.0, delta=0.01)
        self.assertAlmostEqual(area_b / 4.92e6, 1.0, delta=0.01)

        results = engine.intersect(region, [COUNTY_A, COUNTY_B])
        self.assertEqual([r.boundary_name for r in results], ["CountyA"])
        self.assertEqual(reduce("R", results), "CountyA")

    def testThresholdIsInclusive(self):
        region = Region.from_geometry("R", box(-0.5, 0.2, -0.4, 0.3))

        exact = IntersectionEngine(threshold=1e7, measure=lambda g: 1e7)
        self.assertEqual(len(exact.intersect(region, [COUNTY_A])), 1)

        just_below = IntersectionEngine(threshold=1e7, measure=lambda g: 1e7 - 1e-3)
        self.assertEqual(just_below.intersect(region, [COUNTY_A]), [])

    def testZeroAreaIsNeverKept(self):
        engine = IntersectionEngine(threshold=0.0)
        self.assertFalse(engine.passes_threshold(0.0))
        self.assertTrue(engine.passes_threshold(1e-9))

        # Shares only the x=1 edge with CountyB
        touching = Region.from_geometry("T", box(1, 0.2, 2, 0.4))
        self.assertEqual(engine.intersect(touching, [COUNTY_B]), [])

        # Shares only part of the y=1 edge
        edge = Region.from_geometry("E", box(0, 1, 0.5, 1.5))
        self.assertEqual(engine.intersect(edge, [COUNTY_B]), [])

    def testNegativeThresholdRejected(self):
        with self.assertRaises(ValueError):
            IntersectionEngine(threshold=-1.0)

    def testCandidateOrderDoesNotChangeLabel(self):
        region = Region.from_geometry("R", box(-0.1, 0.2, 0.1, 0.4))
        engine = IntersectionEngine()
        labels = {
            reduce("R", engine.intersect(region, list(perm)))
            for perm in itertools.permutations([COUNTY_B, COUNTY_A])
        }
        self.assertEqual(labels, {"CountyA|CountyB"})

    def testSameNameCountedOnce(self):
        # Two boundaries sharing a name (split county) give one label entry
        split = ReferenceBoundary("90009", "CountyA", box(-2, 0, -1, 1))
        region = Region.from_geometry("R", box(-1.1, 0.2, -0.9, 0.4))
        results = IntersectionEngine().intersect(region, [COUNTY_A, split])
        self.assertEqual(len(results), 2)
        self.assertEqual(reduce("R", results), "CountyA")

    def testInvalidRegionIsRepaired(self):
        bowtie = Polygon([(-0.5, 0.2), (-0.3, 0.4), (-0.3, 0.2), (-0.5, 0.4)])
        self.assertFalse(bowtie.is_valid)
        region = Region.from_geometry("B", bowtie)

        results = IntersectionEngine().intersect(region, [COUNTY_A])
        self.assertEqual([r.boundary_name for r in results], ["CountyA"])
        self.assertGreater(results[0].area, 1e7)

    def testEmptyRegionRaisesGeometryError(self):
        region = Region.from_geometry("E", GeometryCollection())
        with self.assertRaises(GeometryError):
            IntersectionEngine().intersect(region, [COUNTY_A])

    def testPolygonalPartDropsLinesAndPoints(self):
        inter = COUNTY_A.geometry.intersection(COUNTY_B.geometry)
        self.assertTrue(polygonal_part(inter).is_empty)
        self.assertEqual(GeodesicAreaMeasurer().area(inter), 0.0)


if __name__ == "__main__":
    unittest.main()

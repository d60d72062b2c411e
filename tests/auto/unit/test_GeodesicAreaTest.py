from __future__ import annotations

import unittest

from shapely.geometry import MultiPolygon, Polygon, box
from shapely.geometry.polygon import orient

from ava_county_annotator.geo.GeodesicArea import GeodesicAreaMeasurer


class GeodesicAreaTest(unittest.TestCase):

    def setUp(self) -> None:
        self.measure = GeodesicAreaMeasurer()
        self.cell = box(-0.1, 0.2, 0.0, 0.4)
        self.cell_area = self.measure.area(self.cell)

    def testClockwiseRingMeasuresTheSame(self):
        self.assertGreater(self.cell_area, 2.0e8)
        self.assertAlmostEqual(self.measure.area(orient(self.cell, sign=-1.0)), self.cell_area, delta=1.0)

    def testMixedOrientationPartsAdd(self):
        # Same latitude band, so both parts have the same area
        clockwise = orient(self.cell, sign=-1.0)
        counter_clockwise = orient(box(0.5, 0.2, 0.6, 0.4), sign=1.0)

        area = self.measure.area(MultiPolygon([clockwise, counter_clockwise]))

        self.assertAlmostEqual(area, 2 * self.cell_area, delta=1.0)

    def testHoleIsSubtractedWhateverItsWinding(self):
        shell = box(0.0, 0.0, 1.0, 1.0)
        hole = box(0.25, 0.25, 0.75, 0.75)
        # box() rings are counter-clockwise, so shell and hole share a winding
        holed = Polygon(shell.exterior.coords, [hole.exterior.coords])

        expected = self.measure.area(shell) - self.measure.area(hole)

        self.assertAlmostEqual(self.measure.area(holed), expected, delta=1.0)
        self.assertLess(self.measure.area(holed), self.measure.area(shell))


if __name__ == "__main__":
    unittest.main()

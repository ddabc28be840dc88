"""Tests for clipping cells to masks."""

import pytest
from shapely.errors import GEOSException
from shapely.geometry import Point, box

from py_zones.core import geometry
from py_zones.core.clipping import clip_cells
from py_zones.core.points import LabeledPoint
from py_zones.core.styling import zone_color
from py_zones.core.tessellation import voronoi_cells

MASK = box(7.0, 48.0, 8.0, 49.0)


def group():
    return [
        LabeledPoint(7.25, 48.5, "PAS A", "STRASBOURG 1"),
        LabeledPoint(7.75, 48.5, "PAS B", "STRASBOURG 1"),
    ]


class TestClipCells:
    """Test cell clipping and attribution."""

    def test_two_point_group(self):
        points = group()
        clipped = clip_cells(voronoi_cells(points), points, MASK)

        assert [c.zone for c in clipped] == ["PAS A", "PAS B"]
        for cell, point in zip(clipped, points):
            assert cell.clipped
            assert cell.sub_region == "STRASBOURG 1"
            assert cell.color == zone_color(point.zone)
            assert MASK.buffer(1e-9).contains(cell.geometry)
            assert cell.geometry.contains(Point(point.coords))
            assert cell.geometry.area == pytest.approx(0.5)

    def test_zone_filter(self):
        points = group()
        clipped = clip_cells(voronoi_cells(points), points, MASK, zone_filter={"PAS B"})

        assert [c.zone for c in clipped] == ["PAS B"]

    def test_empty_filter_keeps_nothing(self):
        points = group()
        assert clip_cells(voronoi_cells(points), points, MASK, zone_filter=set()) == []

    def test_missing_cells_skipped(self):
        points = group()
        cells = voronoi_cells(points)
        clipped = clip_cells([None, cells[1]], points, MASK)

        assert [c.zone for c in clipped] == ["PAS B"]

    def test_cell_outside_mask_dropped(self):
        points = group()
        cells = voronoi_cells(points)
        clipped = clip_cells(cells, points, box(7.6, 48.0, 8.0, 49.0))

        assert [c.zone for c in clipped] == ["PAS B"]

    def test_no_mask_keeps_uncut_cells(self):
        points = group()
        cells = voronoi_cells(points)
        clipped = clip_cells(cells, points, None)

        assert len(clipped) == 2
        assert not any(c.clipped for c in clipped)
        assert clipped[0].geometry is cells[0]

    def test_intersection_failure_keeps_uncut_cell(self, monkeypatch):
        calls = []

        def flaky(a, b):
            calls.append(a)
            if len(calls) == 1:
                raise GEOSException("TopologyException")
            return a.intersection(b)

        monkeypatch.setattr(geometry, "_intersection", flaky)
        points = group()
        cells = voronoi_cells(points)
        clipped = clip_cells(cells, points, MASK)

        assert len(clipped) == 2
        assert not clipped[0].clipped
        assert clipped[0].geometry is cells[0]
        assert clipped[1].clipped
        assert clipped[1].geometry.area == pytest.approx(0.5)

"""Tests for the safe geometry wrappers."""

import pytest
from shapely.errors import GEOSException
from shapely.geometry import GeometryCollection, LineString, MultiPolygon, Point, Polygon, box

from py_zones.core import geometry
from py_zones.core.geometry import (
    largest_part, polygon_parts, polygonal, repair, safe_intersection, safe_union
)


class TestPolygonalParts:
    """Test extraction of areal parts."""

    def test_collection_drops_lines(self):
        collection = GeometryCollection([box(0, 0, 1, 1), LineString([(1, 0), (2, 0)])])
        result = polygonal(collection)

        assert isinstance(result, Polygon)
        assert result.area == pytest.approx(1.0)

    def test_empty_and_none(self):
        assert polygonal(None) is None
        assert polygonal(Point(0, 0)) is None
        assert polygon_parts(Polygon()) == []

    def test_largest_part_prefers_first_on_tie(self):
        first = box(0, 0, 1, 1)
        second = box(5, 5, 6, 6)
        assert largest_part([first, second]) is first
        assert largest_part([first, box(0, 0, 2, 2)]).area == pytest.approx(4.0)


class TestRepair:
    """Test zero-distance buffer repair."""

    def test_bowtie_keeps_one_valid_part(self):
        bowtie = Polygon([(0, 0), (2, 2), (2, 0), (0, 2), (0, 0)])
        outcome = repair(bowtie)

        assert outcome.ok
        assert isinstance(outcome.geometry, Polygon)
        assert outcome.geometry.is_valid
        assert outcome.geometry.area == pytest.approx(1.0)

    def test_multipart_keeps_largest(self):
        parts = MultiPolygon([box(0, 0, 1, 1), box(3, 3, 6, 6)])
        outcome = repair(parts)

        assert outcome.geometry.equals(box(3, 3, 6, 6))

    def test_degenerate_polygon_repairs_to_nothing(self):
        flat = Polygon([(0, 0), (1, 1), (2, 2), (0, 0)])
        outcome = repair(flat)

        assert outcome.ok
        assert outcome.geometry is None
        assert outcome.is_empty


class TestSafeOperations:
    """Test fallback behavior of intersection and union."""

    def test_intersection(self):
        outcome = safe_intersection(box(0, 0, 2, 2), box(1, 1, 3, 3))

        assert outcome.ok
        assert outcome.geometry.area == pytest.approx(1.0)

    def test_disjoint_intersection_is_empty_but_ok(self):
        outcome = safe_intersection(box(0, 0, 1, 1), box(5, 5, 6, 6))

        assert outcome.ok
        assert outcome.is_empty

    def test_intersection_without_mask_keeps_cell(self):
        cell = box(0, 0, 1, 1)
        outcome = safe_intersection(cell, None)

        assert not outcome.ok
        assert outcome.geometry is cell

    def test_intersection_failure_keeps_cell(self, monkeypatch):
        def broken(a, b):
            raise GEOSException("TopologyException: side location conflict")

        monkeypatch.setattr(geometry, "_intersection", broken)
        cell = box(0, 0, 1, 1)
        outcome = safe_intersection(cell, box(0, 0, 2, 2))

        assert not outcome.ok
        assert outcome.geometry is cell
        assert "side location conflict" in outcome.error

    def test_union(self):
        outcome = safe_union(box(0, 0, 1, 1), box(1, 0, 2, 1))

        assert outcome.ok
        assert outcome.geometry.area == pytest.approx(2.0)

    def test_union_failure_keeps_accumulator(self, monkeypatch):
        def broken(a, b):
            raise GEOSException("boom")

        monkeypatch.setattr(geometry, "_union", broken)
        accumulator = box(0, 0, 1, 1)
        outcome = safe_union(accumulator, box(1, 0, 2, 1))

        assert not outcome.ok
        assert outcome.geometry is accumulator

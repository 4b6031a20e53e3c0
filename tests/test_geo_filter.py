"""Tests for great-circle distance and radius filtering."""

import pytest

from safealert.models.location import Coordinate
from safealert.services import geo_filter
from conftest import ORIGIN, north_of


class TestDistance:

    def test_identical_points_are_zero(self):
        assert geo_filter.distance(ORIGIN, ORIGIN) == 0.0

    def test_one_degree_of_latitude(self):
        d = geo_filter.distance(Coordinate(0.0, 0.0), Coordinate(1.0, 0.0))
        assert d == pytest.approx(111195, rel=1e-3)

    def test_symmetric(self):
        a = Coordinate(32.0, 34.0)
        b = Coordinate(32.05, 34.07)
        assert geo_filter.distance(a, b) == pytest.approx(geo_filter.distance(b, a))


class TestWithinRadius:

    def test_boundary_is_inclusive(self):
        point = north_of(ORIGIN, 1000)
        radius = geo_filter.distance(ORIGIN, point)
        assert geo_filter.is_within(radius, ORIGIN, point)
        assert not geo_filter.is_within(radius - 1, ORIGIN, point)

    def test_keeps_input_order_and_reports_distance(self):
        items = [("far", north_of(ORIGIN, 6000)), ("a", north_of(ORIGIN, 1500)), ("b", ORIGIN)]
        result = geo_filter.within_radius(2000, ORIGIN, items, lambda item: item[1])

        assert [item[0] for item, _ in result] == ["a", "b"]
        assert result[0][1] == pytest.approx(1500, abs=0.01)
        assert result[1][1] == 0.0

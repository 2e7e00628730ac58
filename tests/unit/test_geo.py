"""
Unit tests for great-circle distance helpers
"""

import math
import os
import sys

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.geo import PHNOM_PENH, distance_from_reference, haversine_km

ANGKOR = (13.3667, 103.8667)

POINTS = [
    (0.0, 0.0),
    (11.5564, 104.9282),
    (13.3667, 103.8667),
    (-33.8688, 151.2093),
    (89.9, -179.9),
    (-90.0, 180.0),
]


class TestHaversine:
    """Test cases for haversine_km"""

    @pytest.mark.parametrize("lat,lon", POINTS)
    def test_identity_is_zero(self, lat, lon):
        """Distance from a point to itself is exactly zero"""
        assert haversine_km(lat, lon, lat, lon) == 0.0

    @pytest.mark.parametrize("a", POINTS)
    @pytest.mark.parametrize("b", POINTS)
    def test_symmetric_and_non_negative(self, a, b):
        """d(A,B) == d(B,A) and never negative"""
        d_ab = haversine_km(a[0], a[1], b[0], b[1])
        d_ba = haversine_km(b[0], b[1], a[0], a[1])
        assert d_ab >= 0.0
        assert d_ab == pytest.approx(d_ba, rel=1e-12, abs=1e-9)

    def test_capital_to_angkor_great_circle(self):
        """Straight-line distance Phnom Penh -> Angkor Wat"""
        d = haversine_km(PHNOM_PENH[0], PHNOM_PENH[1], ANGKOR[0], ANGKOR[1])
        assert d == pytest.approx(232.0, abs=2.0)

    def test_antipodal_points(self):
        """Half the circumference for antipodes (no domain error at a == 1)"""
        d = haversine_km(0.0, 0.0, 0.0, 180.0)
        assert d == pytest.approx(math.pi * 6371.0, rel=1e-9)

    def test_one_degree_of_latitude(self):
        """One degree along a meridian is ~111.19 km with R = 6371 km"""
        assert haversine_km(10.0, 100.0, 11.0, 100.0) == pytest.approx(111.195, abs=0.01)

    def test_small_moves_are_continuous(self):
        """Tiny coordinate changes produce tiny distance changes"""
        d1 = haversine_km(11.5, 104.9, 11.6, 104.9)
        d2 = haversine_km(11.5, 104.9, 11.6 + 1e-9, 104.9)
        assert abs(d2 - d1) < 1e-6

    def test_nan_propagates(self):
        """NaN input yields NaN rather than an exception"""
        assert math.isnan(haversine_km(float("nan"), 0.0, 1.0, 1.0))
        assert math.isnan(haversine_km(0.0, 0.0, 1.0, float("nan")))


class TestDistanceFromReference:
    """Test cases for distance_from_reference"""

    def test_zero_at_reference(self):
        """Distance from the reference point to itself"""
        assert distance_from_reference(*PHNOM_PENH) == pytest.approx(0.0, abs=1e-9)

    def test_angkor_is_roughly_314_km_by_road(self):
        """Capital -> Angkor Wat travel distance is ~314 km"""
        d = distance_from_reference(*ANGKOR)
        assert 309.0 < d < 319.0

    def test_straight_line_factor(self):
        """road_factor=1.0 gives the plain great-circle value"""
        d = distance_from_reference(ANGKOR[0], ANGKOR[1], road_factor=1.0)
        assert d == pytest.approx(haversine_km(PHNOM_PENH[0], PHNOM_PENH[1], *ANGKOR))

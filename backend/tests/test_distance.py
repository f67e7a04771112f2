"""Tests for haversine distance and the inclusive radius check."""
from __future__ import annotations

import pytest

from concierge.services.distance import GeoPoint, haversine_miles, within_radius

CENTER = GeoPoint(34.14352, -84.29926)


def test_distance_to_self_is_zero() -> None:
    check = within_radius(CENTER.lat, CENTER.lon, CENTER, 20)

    assert check.distance_miles == pytest.approx(0.0, abs=1e-9)
    assert check.allowed


def test_radius_boundary_is_inclusive() -> None:
    distance = haversine_miles(34.0, -84.0, CENTER.lat, CENTER.lon)

    assert within_radius(34.0, -84.0, CENTER, distance).allowed
    assert not within_radius(34.0, -84.0, CENTER, distance - 1e-6).allowed


def test_nearby_point_distance() -> None:
    check = within_radius(34.0, -84.0, CENTER, 20)

    assert check.distance_miles == pytest.approx(19.79, abs=0.05)
    assert check.allowed


def test_point_outside_radius_is_denied() -> None:
    check = within_radius(33.8, -84.29926, CENTER, 20)

    assert check.distance_miles == pytest.approx(23.74, abs=0.05)
    assert not check.allowed


def test_distance_is_symmetric() -> None:
    forward = haversine_miles(33.749, -84.388, 40.7128, -74.006)
    backward = haversine_miles(40.7128, -74.006, 33.749, -84.388)

    assert forward == pytest.approx(backward)
    assert forward == pytest.approx(747, rel=0.01)

"""
Tests for distance, bounding box and geocenter validation.
"""
import math

import pytest
from hypothesis import given, settings, strategies as st

from listings_api.geo import (
    GeocenterError, ProximityFilter, bounding_box, build_proximity_filter,
    haversine_meters, validate_geocenter,
)


latitudes = st.floats(min_value=-90, max_value=90, allow_nan=False)
longitudes = st.floats(min_value=-180, max_value=180, allow_nan=False)


def test_same_point_is_zero():
    assert haversine_meters(17.9757, 102.6331, 17.9757, 102.6331) == 0


def test_one_degree_along_equator_and_meridian():
    # 6371 km * pi / 180 = 111194.93 m
    assert haversine_meters(0, 0, 1, 0) == 111195
    assert haversine_meters(0, 0, 0, 1) == 111195


def test_distance_matches_formula_in_meters():
    lat1, lon1, lat2, lon2 = 17.9757, 102.6331, 18.0500, 102.6331
    d_lat = math.radians(lat2 - lat1)
    expected = 6371 * 2 * math.atan2(math.sqrt(math.sin(d_lat / 2) ** 2),
                                     math.sqrt(1 - math.sin(d_lat / 2) ** 2)) * 1000
    assert haversine_meters(lat1, lon1, lat2, lon2) == math.floor(expected + 0.5)
    assert 8200 < haversine_meters(lat1, lon1, lat2, lon2) < 8300


def test_antipodal_points_do_not_fail():
    assert haversine_meters(0, 0, 0, 180) == round(6371000 * math.pi)


@given(latitudes, longitudes, latitudes, longitudes)
@settings(max_examples=200)
def test_distance_is_symmetric_and_bounded(lat1, lon1, lat2, lon2):
    d = haversine_meters(lat1, lon1, lat2, lon2)
    assert isinstance(d, int)
    assert 0 <= d <= math.ceil(6371000 * math.pi)
    assert d == haversine_meters(lat2, lon2, lat1, lon1)


def test_bounding_box_at_equator():
    box = bounding_box(0, 0, 111.32)
    assert box.min_lat == pytest.approx(-1.0)
    assert box.max_lat == pytest.approx(1.0)
    assert box.min_lng == pytest.approx(-1.0)
    assert box.max_lng == pytest.approx(1.0)


def test_bounding_box_widens_with_latitude():
    box = bounding_box(60, 10, 111.32)
    assert box.min_lat == pytest.approx(59.0)
    assert box.max_lat == pytest.approx(61.0)
    # cos(60 deg) = 0.5, so two degrees of longitude each way
    assert box.min_lng == pytest.approx(8.0)
    assert box.max_lng == pytest.approx(12.0)


def test_bounding_box_is_clamped():
    box = bounding_box(89.9, 179.9, 50)
    assert box.max_lat == 90.0
    assert box.max_lng == 180.0
    assert box.contains(89.95, 179.95)


def test_missing_center_is_allowed():
    validate_geocenter(None, None)
    assert build_proximity_filter(None, None, 5000) is None


@pytest.mark.parametrize("lat, lng", [
    (17.9757, None),
    (None, 102.6331),
    (999, 102.6331),
    (-90.5, 0),
    (0, 180.01),
    (0, -181),
])
def test_invalid_center_is_rejected(lat, lng):
    with pytest.raises(GeocenterError):
        validate_geocenter(lat, lng)


def test_negative_radius_is_rejected():
    with pytest.raises(GeocenterError):
        build_proximity_filter(17.9757, 102.6331, -1)


def test_range_edges_are_valid():
    validate_geocenter(90, 180)
    validate_geocenter(-90, -180)


def test_proximity_predicate_caps_distance():
    proximity = ProximityFilter(17.9757, 102.6331, 10000)
    predicate = proximity.predicate()
    assert "distance_m(?, ?, latitude, longitude) <= ?" in predicate.conditions
    assert "latitude BETWEEN ? AND ?" in predicate.conditions
    assert predicate.parameters[-3:] == (17.9757, 102.6331, 10000)
    assert proximity.distance_to(17.9757, 102.6331) == 0


@given(
    st.floats(min_value=-89, max_value=89, allow_nan=False), longitudes,
    st.floats(min_value=-89, max_value=89, allow_nan=False), longitudes,
)
@settings(max_examples=200)
def test_latitude_band_never_excludes_points_in_range(lat, lng, point_lat, point_lng):
    radius = haversine_meters(lat, lng, point_lat, point_lng)
    band = ProximityFilter(lat, lng, radius).prefilter_box()
    assert band.min_lat <= point_lat <= band.max_lat


def test_proximity_bounding_box_uses_kilometers():
    proximity = ProximityFilter(0, 0, 111320)
    box = proximity.bounding_box()
    assert box.max_lat == pytest.approx(1.0)

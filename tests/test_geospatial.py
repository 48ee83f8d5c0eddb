import math

import numpy as np
import pytest

from delivery_engine.exceptions import ValidationError
from delivery_engine.models.domain import GeoPoint
from delivery_engine.services.geospatial import (
    bounding_box,
    haversine_meters,
    haversine_meters_many,
    offset_point,
    travel_minutes,
)

CONNAUGHT_PLACE = GeoPoint(28.6139, 77.2090)


def test_haversine_is_zero_for_identical_points():
    assert haversine_meters(CONNAUGHT_PLACE, CONNAUGHT_PLACE) == 0.0


def test_haversine_is_symmetric():
    other = GeoPoint(28.6200, 77.2150)
    assert haversine_meters(CONNAUGHT_PLACE, other) == pytest.approx(haversine_meters(other, CONNAUGHT_PLACE))


def test_one_degree_of_latitude_is_about_111_km():
    distance = haversine_meters(GeoPoint(0.0, 0.0), GeoPoint(1.0, 0.0))
    assert distance == pytest.approx(111_195, rel=1e-3)


def test_haversine_across_antimeridian_is_short():
    distance = haversine_meters(GeoPoint(0.0, 179.99), GeoPoint(0.0, -179.99))
    assert distance == pytest.approx(2_224, rel=1e-2)


def test_vectorised_haversine_matches_scalar():
    points = [GeoPoint(28.62, 77.215), GeoPoint(28.70, 77.10), GeoPoint(-33.86, 151.21)]
    many = haversine_meters_many(
        CONNAUGHT_PLACE,
        [p.latitude for p in points],
        [p.longitude for p in points],
    )
    assert isinstance(many, np.ndarray)
    for value, point in zip(many.tolist(), points):
        assert value == pytest.approx(haversine_meters(CONNAUGHT_PLACE, point), rel=1e-9)


def test_travel_minutes_rounds_up():
    assert travel_minutes(896.0, 250.0) == 4
    assert travel_minutes(1000.0, 250.0) == 4
    assert travel_minutes(0.0, 250.0) == 0


def test_travel_minutes_rejects_non_positive_speed():
    with pytest.raises(ValueError):
        travel_minutes(100.0, 0.0)


def test_bounding_box_covers_full_longitude_near_pole():
    lat_min, lat_max, lon_min, lon_max = bounding_box(GeoPoint(89.99, 10.0), 5_000)
    assert lat_max == 90.0
    assert (lon_min, lon_max) == (-180.0, 180.0)


def test_bounding_box_contains_circle():
    lat_min, lat_max, lon_min, lon_max = bounding_box(CONNAUGHT_PLACE, 5_000)
    north = offset_point(CONNAUGHT_PLACE, north_meters=4_999)
    east = offset_point(CONNAUGHT_PLACE, east_meters=4_999)
    assert lat_min < CONNAUGHT_PLACE.latitude < north.latitude < lat_max
    assert lon_min < CONNAUGHT_PLACE.longitude < east.longitude < lon_max


def test_offset_point_north_moves_expected_distance():
    moved = offset_point(CONNAUGHT_PLACE, north_meters=4_999)
    assert haversine_meters(CONNAUGHT_PLACE, moved) == pytest.approx(4_999, abs=0.01)


@pytest.mark.parametrize("lat, lon", [(90.1, 0.0), (-91.0, 0.0), (0.0, 180.5), (math.nan, 0.0)])
def test_geopoint_rejects_out_of_range_coordinates(lat, lon):
    with pytest.raises(ValidationError):
        GeoPoint(lat, lon)


def test_haversine_handles_near_antipodal_points():
    seller = GeoPoint(80.56911163447666, 100.20360423777566)
    buyer = GeoPoint(-80.56911163447666, -79.79639576222434)

    distance = haversine_meters(seller, buyer)

    assert distance == pytest.approx(math.pi * 6_371_000, rel=1e-6)


def test_feasibility_for_antipodal_buyer_is_outside_radius():
    from delivery_engine.models.domain import DeliveryPolicy, FeasibilityReason, Product
    from delivery_engine.services.delivery.feasibility import FeasibilityEvaluator

    seller = GeoPoint(80.56911163447666, 100.20360423777566)
    product = Product(product_id="P1", seller_id="S1", price_minor=100, stock=1, policy=DeliveryPolicy(origin=seller))

    result = FeasibilityEvaluator().evaluate(product, GeoPoint(-80.56911163447666, -79.79639576222434))

    assert result.reason is FeasibilityReason.OUTSIDE_RADIUS

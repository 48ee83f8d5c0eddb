from dataclasses import replace
from datetime import date, time, timedelta

import pytest

from delivery_engine.exceptions import CacheUnavailableError, NotFoundError, ValidationError
from delivery_engine.models.domain import AvailabilityWindow, CartItem, DeliveryPolicy, GeoPoint, Product
from delivery_engine.services.cache import InMemoryResultCache, NullResultCache
from delivery_engine.services.delivery.feasibility import FeasibilityEvaluator
from delivery_engine.services.delivery.service import LocalDeliveryService, NearbyQuery
from delivery_engine.services.geospatial import offset_point

BUYER = GeoPoint(28.6200, 77.2150)
SELLER = GeoPoint(28.6139, 77.2090)
TODAY = date(2026, 10, 16)


def _product(product_id: str = "P1", seller_id: str = "S1", *, stock: int = 5, pincode: str | None = "110001") -> Product:
    policy = DeliveryPolicy(
        origin=SELLER,
        pincode=pincode,
        availability=(AvailabilityWindow("monday", time(9, 0), time(11, 0), max_orders_per_hour=4),),
    )
    return Product(product_id=product_id, seller_id=seller_id, price_minor=600, stock=stock, policy=policy)


class BrokenCache(NullResultCache):
    def get(self, key):
        raise CacheUnavailableError("redis down")

    def set(self, key, value, ttl_seconds, tags=()):
        raise CacheUnavailableError("redis down")

    def invalidate_tags(self, tags):
        raise CacheUnavailableError("redis down")


def _service(cache=None, bookings=None) -> LocalDeliveryService:
    service = LocalDeliveryService(
        evaluator=FeasibilityEvaluator(speed_m_per_min=250.0, free_distance_meters=2000.0),
        cache=cache if cache is not None else InMemoryResultCache(max_entries=100),
        bookings=bookings or (lambda seller_id, day: {}),
    )
    service.load_catalog([_product()])
    return service


def test_check_delivery_for_known_product():
    result = _service().check_delivery("P1", BUYER)

    assert result.can_deliver is True
    assert result.total_estimated_minutes == 14
    assert result.fee_minor == 0


def test_check_delivery_unknown_product_raises_not_found():
    with pytest.raises(NotFoundError):
        _service().check_delivery("missing", BUYER)


def test_check_delivery_is_served_from_cache_until_product_changes():
    service = _service()
    first = service.check_delivery("P1", BUYER)
    assert service.cache.stats()["entries"] == 1

    service.upsert_product(_product(stock=0))
    second = service.check_delivery("P1", BUYER)

    assert first.can_deliver is True
    assert second.can_deliver is False
    assert second.reason.value == "OUT_OF_STOCK"


def test_nearby_results_refresh_after_seller_update():
    service = _service()
    query = NearbyQuery(radius_meters=5_000)
    assert service.find_nearby(BUYER, query).total == 1

    moved = _product()
    moved = replace(moved, policy=replace(moved.policy, origin=offset_point(SELLER, north_meters=20_000)))
    service.upsert_product(moved)

    assert service.find_nearby(BUYER, query).total == 0


def test_remove_product_invalidates_results():
    service = _service()
    query = NearbyQuery(radius_meters=5_000)
    service.find_nearby(BUYER, query)

    assert service.remove_product("P1") is True
    assert service.remove_product("P1") is False
    assert service.find_nearby(BUYER, query).total == 0


def test_unavailable_cache_degrades_to_direct_computation():
    service = _service(cache=BrokenCache())

    assert service.check_delivery("P1", BUYER).can_deliver is True
    assert service.find_nearby(BUYER, NearbyQuery(radius_meters=5_000)).total == 1
    service.upsert_product(_product("P2"))
    assert service.get_product("P2") is not None


def test_get_slots_uses_booked_counts():
    monday = date(2026, 10, 19)
    service = _service(bookings=lambda seller_id, day: {"09:00": 3})

    slots = service.get_slots("P1", monday, today=TODAY)

    assert [s.remaining_capacity for s in slots] == [1, 4]


def test_get_slots_rejects_dates_beyond_horizon():
    with pytest.raises(ValidationError):
        _service().get_slots("P1", TODAY + timedelta(days=8), today=TODAY)


def test_estimate_cart_requires_items():
    with pytest.raises(ValidationError):
        _service().estimate_cart([], BUYER)


def test_estimate_cart_single_seller():
    estimate = _service().estimate_cart([CartItem("P1", 1)], BUYER)

    assert estimate.overall_can_deliver is True
    assert estimate.max_estimated_minutes == 14


def test_delivery_zone_counts_distinct_sellers():
    service = _service()
    service.upsert_product(_product("P2", "S1"))
    service.upsert_product(_product("P3", "S2"))
    service.upsert_product(_product("P4", "S3", pincode="110002"))

    zone = service.get_delivery_zone("110001")

    assert zone["available_sellers"] == 2
    assert zone["delivery_available"] is True
    assert service.get_delivery_zone("999999")["delivery_available"] is False

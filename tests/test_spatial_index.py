from dataclasses import replace
from datetime import datetime, timezone

import pytest

from delivery_engine.exceptions import ValidationError
from delivery_engine.models.domain import DeliveryPolicy, GeoPoint, Product
from delivery_engine.services.delivery.feasibility import FeasibilityEvaluator
from delivery_engine.services.geospatial import offset_point
from delivery_engine.services.spatial import GridSpatialIndex, NearbyFilters

BUYER = GeoPoint(28.6139, 77.2090)


def _product(
    product_id: str,
    location: GeoPoint,
    *,
    seller_id: str = "S1",
    price: int = 100,
    stock: int = 10,
    radius: float = 10_000,
    **fields,
) -> Product:
    policy = DeliveryPolicy(origin=location, max_radius_meters=radius)
    return Product(
        product_id=product_id,
        seller_id=seller_id,
        price_minor=price,
        stock=stock,
        policy=policy,
        **fields,
    )


@pytest.fixture
def index() -> GridSpatialIndex:
    evaluator = FeasibilityEvaluator(speed_m_per_min=250.0, free_distance_meters=2000.0)
    return GridSpatialIndex(cell_degrees=0.05, evaluator=evaluator)


def test_find_within_returns_only_products_inside_radius(index):
    index.bulk_load(
        [
            _product("near", offset_point(BUYER, north_meters=1_000)),
            _product("mid", offset_point(BUYER, east_meters=4_000)),
            _product("far", offset_point(BUYER, north_meters=20_000)),
        ]
    )

    page = index.find_within(BUYER, 5_000)

    assert [m.product.product_id for m in page.items] == ["near", "mid"]
    assert page.total == 2
    assert all(m.distance_meters <= 5_000 for m in page.items)


def test_results_match_brute_force_scan(index):
    products = [
        _product(f"P{i:02d}", offset_point(BUYER, north_meters=(i - 10) * 700, east_meters=(i % 7 - 3) * 900))
        for i in range(21)
    ]
    index.bulk_load(products)

    page = index.find_within(BUYER, 6_000, limit=100)

    from delivery_engine.services.geospatial import haversine_meters

    expected = sorted(p.product_id for p in products if haversine_meters(BUYER, p.location) <= 6_000)
    assert sorted(m.product.product_id for m in page.items) == expected


def test_equal_distances_tie_break_by_product_id(index):
    spot = offset_point(BUYER, north_meters=800)
    index.bulk_load([_product("b", spot), _product("c", spot), _product("a", spot)])

    page = index.find_within(BUYER, 2_000)

    assert [m.product.product_id for m in page.items] == ["a", "b", "c"]


def test_pagination_reports_totals(index):
    index.bulk_load([_product(f"P{i}", offset_point(BUYER, north_meters=100 * (i + 1))) for i in range(5)])

    first = index.find_within(BUYER, 2_000, skip=0, limit=2)
    last = index.find_within(BUYER, 2_000, skip=4, limit=2)

    assert [m.product.product_id for m in first.items] == ["P0", "P1"]
    assert first.total == 5
    assert first.has_next_page is True
    assert [m.product.product_id for m in last.items] == ["P4"]
    assert last.has_next_page is False


def test_unlisted_products_are_excluded(index):
    spot = offset_point(BUYER, north_meters=500)
    index.bulk_load(
        [
            _product("ok", spot),
            _product("empty", spot, stock=0),
            _product("inactive", spot, status="inactive"),
            replace(_product("disabled", spot), policy=DeliveryPolicy(origin=spot, enabled=False)),
        ]
    )

    page = index.find_within(BUYER, 2_000)

    assert [m.product.product_id for m in page.items] == ["ok"]


def test_seller_radius_limits_results(index):
    index.upsert(_product("small-radius", offset_point(BUYER, north_meters=3_000), radius=2_000))

    assert index.find_within(BUYER, 10_000).total == 0
    assert index.find_within(BUYER, 10_000, filters=NearbyFilters(deliverable_only=False)).total == 1


def test_attribute_filters(index):
    spot = offset_point(BUYER, north_meters=600)
    index.bulk_load(
        [
            _product("cheap", spot, price=50, category="grocery", rating=3.0),
            _product("pricey", spot, price=900, category="grocery", rating=4.8),
            _product("shirt", spot, price=400, category="clothing", rating=4.5),
        ]
    )

    grocery = index.find_within(BUYER, 2_000, filters=NearbyFilters(category="Grocery"))
    priced = index.find_within(BUYER, 2_000, filters=NearbyFilters(min_price_minor=100, max_price_minor=500))
    rated = index.find_within(BUYER, 2_000, filters=NearbyFilters(min_rating=4.5))

    assert {m.product.product_id for m in grocery.items} == {"cheap", "pricey"}
    assert [m.product.product_id for m in priced.items] == ["shirt"]
    assert {m.product.product_id for m in rated.items} == {"pricey", "shirt"}


def test_max_delivery_minutes_filter(index):
    index.bulk_load(
        [
            # 10 prep + 2 travel
            _product("quick", offset_point(BUYER, north_meters=400)),
            # 10 prep + 17 travel
            _product("slow", offset_point(BUYER, north_meters=4_100)),
        ]
    )

    page = index.find_within(BUYER, 5_000, filters=NearbyFilters(max_delivery_minutes=15))

    assert [m.product.product_id for m in page.items] == ["quick"]
    assert page.items[0].estimated_minutes == 12


def test_sort_options(index):
    index.bulk_load(
        [
            _product(
                "A",
                offset_point(BUYER, north_meters=300),
                price=500,
                rating=3.5,
                total_orders=10,
                created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
            ),
            _product(
                "B",
                offset_point(BUYER, north_meters=900),
                price=100,
                rating=4.9,
                total_orders=300,
                created_at=datetime(2026, 6, 1, tzinfo=timezone.utc),
            ),
            _product(
                "C",
                offset_point(BUYER, north_meters=1_500),
                price=250,
                rating=4.0,
                total_orders=50,
            ),
        ]
    )

    def order(sort_by: str) -> list[str]:
        return [m.product.product_id for m in index.find_within(BUYER, 2_000, sort_by=sort_by).items]

    assert order("distance") == ["A", "B", "C"]
    assert order("price_low") == ["B", "C", "A"]
    assert order("price_high") == ["A", "C", "B"]
    assert order("rating") == ["B", "C", "A"]
    assert order("popularity") == ["B", "C", "A"]
    assert order("newest") == ["B", "A", "C"]
    assert order("unknown") == ["A", "B", "C"]


def test_upsert_relocates_product(index):
    index.upsert(_product("moving", offset_point(BUYER, north_meters=500)))
    index.upsert(_product("moving", offset_point(BUYER, north_meters=30_000)))

    assert len(index) == 1
    assert index.find_within(BUYER, 5_000).total == 0
    far_center = offset_point(BUYER, north_meters=30_000)
    assert index.find_within(far_center, 1_000).total == 1


def test_remove_product(index):
    index.upsert(_product("gone", offset_point(BUYER, north_meters=500)))

    removed = index.remove("gone")

    assert removed is not None and removed.product_id == "gone"
    assert index.remove("gone") is None
    assert index.get("gone") is None
    assert index.find_within(BUYER, 5_000).total == 0


def test_search_across_antimeridian(index):
    center = GeoPoint(-17.0, 179.99)
    index.bulk_load(
        [
            _product("west-of-line", GeoPoint(-17.0, 179.97)),
            _product("east-of-line", GeoPoint(-17.0, -179.98)),
        ]
    )

    page = index.find_within(center, 5_000)

    assert {m.product.product_id for m in page.items} == {"west-of-line", "east-of-line"}


def test_search_near_pole(index):
    index.upsert(_product("polar", GeoPoint(89.995, -120.0)))

    page = index.find_within(GeoPoint(89.99, 60.0), 5_000)

    assert [m.product.product_id for m in page.items] == ["polar"]


@pytest.mark.parametrize("radius, skip, limit", [(0, 0, 10), (1_000, -1, 10), (1_000, 0, 0)])
def test_invalid_query_arguments(index, radius, skip, limit):
    with pytest.raises(ValidationError):
        index.find_within(BUYER, radius, skip=skip, limit=limit)


def test_concurrent_upserts_and_queries(index):
    from concurrent.futures import ThreadPoolExecutor

    def writer(worker: int) -> None:
        for i in range(200):
            product_id = f"W{worker}-{i % 20}"
            index.upsert(_product(product_id, offset_point(BUYER, north_meters=(i % 20) * 100)))
            if i % 3 == 0:
                index.remove(product_id)

    def reader(_: int) -> int:
        total = 0
        for _ in range(200):
            page = index.find_within(BUYER, 5_000, limit=100)
            assert all(m.distance_meters <= 5_000 for m in page.items)
            total += page.total
        return total

    with ThreadPoolExecutor(max_workers=8) as pool:
        writes = [pool.submit(writer, w) for w in range(4)]
        reads = [pool.submit(reader, r) for r in range(4)]
        for future in writes + reads:
            future.result()

    page = index.find_within(BUYER, 5_000, limit=100)
    assert page.total == len(index)
    assert sorted(m.product.product_id for m in page.items) == sorted(p.product_id for p in index.products())

"""High-level orchestration for local delivery requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from typing import Any, Callable, Optional, Sequence

from ...config import settings
from ...data.bookings_repository import booked_lookup_from_counts, get_booked_counts
from ...data.catalog_repository import load_products
from ...exceptions import CacheUnavailableError, NotFoundError, ValidationError
from ...models.domain import (
    CartEstimate,
    CartItem,
    DeliverySlot,
    FeasibilityResult,
    GeoPoint,
    NearbyPage,
    Product,
)
from ..cache import (
    NEARBY_TAG,
    InMemoryResultCache,
    NullResultCache,
    ResultCache,
    make_cache_key,
    product_tag,
    seller_tag,
)
from ..spatial import GridSpatialIndex, NearbyFilters, SpatialIndex
from .cart import CartAggregator
from .feasibility import FeasibilityEvaluator
from .slots import BookedCountLookup, SlotProvider

logger = logging.getLogger(__name__)

BookingsSource = Callable[[str, date], dict[str, int]]


@dataclass(frozen=True, slots=True)
class NearbyQuery:
    radius_meters: float
    filters: NearbyFilters = NearbyFilters()
    sort_by: str = "distance"
    skip: int = 0
    limit: int = 20


class LocalDeliveryService:
    """Facade used by the HTTP layer.

    The cache is advisory: any CacheUnavailableError is logged and the request
    is answered from the index/evaluator directly.
    """

    def __init__(
        self,
        *,
        index: SpatialIndex | None = None,
        evaluator: FeasibilityEvaluator | None = None,
        cache: ResultCache | None = None,
        slot_provider: SlotProvider | None = None,
        bookings: BookingsSource | None = None,
    ) -> None:
        self.evaluator = evaluator or FeasibilityEvaluator()
        self.index = index if index is not None else GridSpatialIndex(evaluator=self.evaluator)
        self.cache = cache if cache is not None else NullResultCache()
        self.slot_provider = slot_provider or SlotProvider()
        self.cart_aggregator = CartAggregator(self.get_product, self.evaluator)
        self._bookings = bookings or get_booked_counts

    # catalog maintenance -------------------------------------------------

    def load_catalog(self, products: Sequence[Product]) -> None:
        self.index.bulk_load(products)
        self._safe_cache_call(self.cache.clear)
        logger.info(f"Catalog loaded with {len(self.index)} products")

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.index.get(product_id)

    def upsert_product(self, product: Product) -> None:
        previous = self.index.get(product.product_id)
        self.index.upsert(product)
        tags = {product_tag(product.product_id), seller_tag(product.seller_id), NEARBY_TAG}
        if previous is not None:
            tags.add(seller_tag(previous.seller_id))
        self._invalidate(tags)

    def remove_product(self, product_id: str) -> bool:
        removed = self.index.remove(product_id)
        if removed is None:
            return False
        self._invalidate({product_tag(product_id), seller_tag(removed.seller_id), NEARBY_TAG})
        return True

    def invalidate_seller(self, seller_id: str) -> None:
        self._invalidate({seller_tag(seller_id), NEARBY_TAG})

    # queries -------------------------------------------------------------

    def find_nearby(self, location: GeoPoint, query: NearbyQuery) -> NearbyPage:
        key = make_cache_key(
            "nearby",
            lat=location.latitude,
            lng=location.longitude,
            radius=query.radius_meters,
            filters={
                "category": query.filters.category,
                "min_price": query.filters.min_price_minor,
                "max_price": query.filters.max_price_minor,
                "min_rating": query.filters.min_rating,
                "max_minutes": query.filters.max_delivery_minutes,
                "deliverable_only": query.filters.deliverable_only,
            },
            sort_by=query.sort_by,
            skip=query.skip,
            limit=query.limit,
        )
        cached = self._safe_cache_call(self.cache.get, key)
        if cached is not None:
            logger.debug(f"Cache hit for nearby products {key}")
            return cached

        page = self.index.find_within(
            location,
            query.radius_meters,
            filters=query.filters,
            sort_by=query.sort_by,
            skip=query.skip,
            limit=query.limit,
        )
        self._safe_cache_call(self.cache.set, key, page, settings.nearby_cache_ttl_seconds, (NEARBY_TAG,))
        logger.info(
            f"Nearby search at ({location.latitude:.4f}, {location.longitude:.4f}) "
            f"radius={query.radius_meters:.0f}m returned {len(page.items)}/{page.total}"
        )
        return page

    def check_delivery(
        self,
        product_id: str,
        location: GeoPoint,
        quantity: int = 1,
        *,
        express: bool = False,
    ) -> FeasibilityResult:
        product = self._require_product(product_id)
        key = make_cache_key(
            "feasibility",
            product_id=product_id,
            lat=location.latitude,
            lng=location.longitude,
            quantity=quantity,
            express=express,
        )
        cached = self._safe_cache_call(self.cache.get, key)
        if cached is not None:
            logger.debug(f"Cache hit for feasibility {key}")
            return cached

        result = self.evaluator.evaluate(product, location, quantity, express=express)
        self._safe_cache_call(
            self.cache.set,
            key,
            result,
            settings.feasibility_cache_ttl_seconds,
            (product_tag(product_id), seller_tag(product.seller_id)),
        )
        logger.info(f"Delivery feasibility for {product_id}: {result.reason.value}")
        return result

    def get_slots(
        self,
        product_id: str,
        day: date,
        *,
        booked: BookedCountLookup | None = None,
        today: Optional[date] = None,
    ) -> list[DeliverySlot]:
        product = self._require_product(product_id)
        self.slot_provider.validate_date(day, today=today)
        if booked is None:
            booked = booked_lookup_from_counts(self._bookings(product.seller_id, day))
        return self.slot_provider.get_slots(product.policy, day, booked=booked, today=today)

    def estimate_cart(
        self,
        items: Sequence[CartItem],
        location: GeoPoint,
        *,
        express: bool = False,
    ) -> CartEstimate:
        if not items:
            raise ValidationError("Cart must contain at least one item", field="items")
        estimate = self.cart_aggregator.estimate(items, location, express=express)
        logger.info(
            f"Cart estimate for {len(items)} items across {len(estimate.sellers)} sellers: "
            f"can_deliver={estimate.overall_can_deliver} fee={estimate.total_fee_minor} "
            f"minutes={estimate.max_estimated_minutes}"
        )
        return estimate

    def get_delivery_zone(self, pincode: str) -> dict:
        sellers = {
            product.seller_id
            for product in self.index.products()
            if product.policy.pincode == pincode and product.policy.enabled and product.status == "active"
        }
        return {
            "pincode": pincode,
            "available_sellers": len(sellers),
            "delivery_available": bool(sellers),
            "estimated_time": settings.zone_estimated_time,
            "delivery_fee_minor": settings.zone_delivery_fee_minor,
            "free_delivery_threshold_minor": settings.zone_free_delivery_threshold_minor,
            "express_delivery_available": settings.zone_express_delivery_available,
        }

    def stats(self) -> dict:
        return {
            "products": len(self.index),
            "cache": self._safe_cache_call(self.cache.stats) or {},
        }

    # helpers -------------------------------------------------------------

    def _require_product(self, product_id: str) -> Product:
        product = self.get_product(product_id)
        if product is None:
            raise NotFoundError(f"Product '{product_id}' not found", resource_id=product_id)
        return product

    def _invalidate(self, tags: set[str]) -> None:
        removed = self._safe_cache_call(self.cache.invalidate_tags, sorted(tags))
        logger.info(f"Invalidated {removed or 0} cached results for {sorted(tags)}")

    @staticmethod
    def _safe_cache_call(func: Callable[..., Any], *args: Any) -> Any:
        try:
            return func(*args)
        except CacheUnavailableError as e:
            logger.warning(f"Cache unavailable, continuing uncached: {e}")
            return None


def build_default_cache() -> ResultCache:
    if not settings.cache_enabled:
        return NullResultCache()
    return InMemoryResultCache(max_entries=settings.cache_max_entries)


@lru_cache(maxsize=1)
def get_delivery_service() -> LocalDeliveryService:
    """Process-wide service instance built from the configured catalog."""
    service = LocalDeliveryService(cache=build_default_cache())
    try:
        products = load_products()
    except FileNotFoundError as e:
        logger.warning(f"{e}; starting with an empty catalog")
        products = ()
    service.load_catalog(products)
    return service

"""Base classes for spatial index implementations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from ...models.domain import GeoPoint, NearbyPage, NearbyProduct, Product

SORT_OPTIONS: tuple[str, ...] = (
    "distance",
    "time",
    "rating",
    "price_low",
    "price_high",
    "popularity",
    "newest",
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _created_ts(product: Product) -> float:
    created = product.created_at
    if created is None:
        return _EPOCH.timestamp()
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created.timestamp()


_SORT_KEYS: dict[str, Callable[[NearbyProduct], tuple]] = {
    "distance": lambda m: (m.distance_meters, m.estimated_minutes, m.product.product_id),
    "time": lambda m: (m.estimated_minutes, m.distance_meters, m.product.product_id),
    "rating": lambda m: (-m.product.rating, m.distance_meters, m.product.product_id),
    "price_low": lambda m: (m.product.price_minor, m.distance_meters, m.product.product_id),
    "price_high": lambda m: (-m.product.price_minor, m.distance_meters, m.product.product_id),
    "popularity": lambda m: (-m.product.total_orders, m.distance_meters, m.product.product_id),
    "newest": lambda m: (-_created_ts(m.product), m.distance_meters, m.product.product_id),
}


def sort_key_for(sort_by: str | None) -> Callable[[NearbyProduct], tuple]:
    """Return the ordering for a sort option, falling back to distance."""
    return _SORT_KEYS.get(sort_by or "distance", _SORT_KEYS["distance"])


@dataclass(frozen=True, slots=True)
class NearbyFilters:
    category: Optional[str] = None
    min_price_minor: Optional[int] = None
    max_price_minor: Optional[int] = None
    min_rating: float = 0.0
    max_delivery_minutes: Optional[int] = None
    deliverable_only: bool = True

    def accepts(self, product: Product) -> bool:
        """Attribute checks that do not depend on the buyer position."""
        if self.deliverable_only and not product.is_listed:
            return False
        if self.category and (product.category or "").lower() != self.category.lower():
            return False
        if self.min_price_minor is not None and product.price_minor < self.min_price_minor:
            return False
        if self.max_price_minor is not None and product.price_minor > self.max_price_minor:
            return False
        if product.rating < self.min_rating:
            return False
        return True


class SpatialIndex(ABC):
    """Contract for point indexes over product/seller coordinates."""

    @abstractmethod
    def upsert(self, product: Product) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove(self, product_id: str) -> Optional[Product]:
        raise NotImplementedError

    @abstractmethod
    def get(self, product_id: str) -> Optional[Product]:
        raise NotImplementedError

    @abstractmethod
    def find_within(
        self,
        center: GeoPoint,
        radius_meters: float,
        *,
        filters: NearbyFilters | None = None,
        sort_by: str = "distance",
        skip: int = 0,
        limit: int = 20,
    ) -> NearbyPage:
        raise NotImplementedError

    @abstractmethod
    def products(self) -> list[Product]:
        raise NotImplementedError

    @abstractmethod
    def __len__(self) -> int:
        raise NotImplementedError

    def bulk_load(self, products: list[Product] | tuple[Product, ...]) -> None:
        for product in products:
            self.upsert(product)

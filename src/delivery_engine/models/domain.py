"""Domain models for products, delivery policies and delivery results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from ..exceptions import ValidationError

WEEKDAYS: tuple[str, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A WGS84 coordinate."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValidationError(f"latitude {self.latitude} outside [-90, 90]", field="latitude")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValidationError(f"longitude {self.longitude} outside [-180, 180]", field="longitude")


@dataclass(frozen=True, slots=True)
class AvailabilityWindow:
    """A weekly window during which a seller accepts deliveries."""

    day_of_week: str
    start_time: time
    end_time: time
    max_orders_per_hour: int = 10
    is_available: bool = True


@dataclass(frozen=True, slots=True)
class DeliveryPolicy:
    """Seller-configured delivery rules attached to a product."""

    origin: GeoPoint
    enabled: bool = True
    max_radius_meters: float = 5000.0
    preparation_time_minutes: int = 10
    base_fee_minor: int = 25
    free_delivery_threshold_minor: int = 500
    express_available: bool = True
    express_surcharge_minor: int = 20
    cod_available: bool = False
    availability: tuple[AvailabilityWindow, ...] = ()
    pincode: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Product:
    """Catalog entry as seen by the delivery engine (read-only)."""

    product_id: str
    seller_id: str
    price_minor: int
    stock: int
    policy: DeliveryPolicy
    name: str = ""
    category: Optional[str] = None
    status: str = "active"
    rating: float = 0.0
    total_orders: int = 0
    created_at: Optional[datetime] = None

    @property
    def location(self) -> GeoPoint:
        return self.policy.origin

    @property
    def is_listed(self) -> bool:
        """True when the product can appear in delivery searches at all."""
        return self.policy.enabled and self.status == "active" and self.stock > 0


class FeasibilityReason(str, Enum):
    OK = "OK"
    OUTSIDE_RADIUS = "OUTSIDE_RADIUS"
    DISABLED = "DISABLED"
    OUT_OF_STOCK = "OUT_OF_STOCK"


@dataclass(frozen=True, slots=True)
class FeasibilityResult:
    """Verdict and estimate for delivering one product to one buyer location."""

    can_deliver: bool
    reason: FeasibilityReason
    distance_meters: Optional[float] = None
    max_radius_meters: Optional[float] = None
    travel_time_minutes: Optional[int] = None
    preparation_time_minutes: Optional[int] = None
    total_estimated_minutes: Optional[int] = None
    fee_minor: int = 0
    free_delivery_eligible: bool = False
    express_applied: bool = False
    cod_available: bool = False


@dataclass(frozen=True, slots=True)
class CartItem:
    product_id: str
    quantity: int = 1


@dataclass(slots=True)
class CartItemEstimate:
    product_id: str
    quantity: int
    result: FeasibilityResult
    seller_id: Optional[str] = None
    found: bool = True


@dataclass(slots=True)
class SellerQuote:
    """Per-seller share of a cart estimate."""

    seller_id: str
    product_ids: list[str]
    subtotal_minor: int
    can_deliver: bool
    fee_minor: int
    estimated_minutes: Optional[int]
    distance_meters: Optional[float]


@dataclass(slots=True)
class CartEstimate:
    items: list[CartItemEstimate]
    sellers: list[SellerQuote]
    overall_can_deliver: bool
    total_fee_minor: int
    max_estimated_minutes: int
    blocking_items: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class DeliverySlot:
    day: str
    date: date
    start_time: time
    end_time: time
    max_orders: int
    remaining_capacity: int

    @property
    def available(self) -> bool:
        return self.remaining_capacity > 0


@dataclass(frozen=True, slots=True)
class NearbyProduct:
    product: Product
    distance_meters: float
    estimated_minutes: int
    fee_minor: int


@dataclass(frozen=True, slots=True)
class NearbyPage:
    items: tuple[NearbyProduct, ...]
    total: int
    skip: int
    limit: int

    @property
    def has_next_page(self) -> bool:
        return self.skip + len(self.items) < self.total

"""Delivery request/response schemas."""

from __future__ import annotations

import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config import settings
from ..models.domain import (
    CartEstimate,
    DeliverySlot,
    FeasibilityResult,
    GeoPoint,
    NearbyPage,
    NearbyProduct,
)

SortOption = Literal["distance", "time", "rating", "price_low", "price_high", "popularity", "newest"]
ReasonCode = Literal["OK", "OUTSIDE_RADIUS", "DISABLED", "OUT_OF_STOCK"]


class LocationModel(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    def to_point(self) -> GeoPoint:
        return GeoPoint(latitude=self.latitude, longitude=self.longitude)


class DeliveryCheckRequest(LocationModel):
    quantity: int = Field(default=1, ge=1, le=settings.max_item_quantity)
    express: bool = Field(default=False, description="Request express delivery where the seller offers it.")


class CartItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId", min_length=1)
    quantity: int = Field(default=1, ge=1, le=settings.max_item_quantity)


class CartEstimateRequest(LocationModel):
    items: List[CartItemRequest] = Field(..., min_length=1, max_length=settings.max_cart_items)
    express: bool = False


class FeasibilityResultModel(BaseModel):
    can_deliver: bool
    reason: ReasonCode
    distance_meters: Optional[float] = None
    max_radius_meters: Optional[float] = None
    travel_time_minutes: Optional[int] = None
    preparation_time_minutes: Optional[int] = None
    total_estimated_minutes: Optional[int] = None
    fee_minor: int = 0
    free_delivery_eligible: bool = False
    express_applied: bool = False
    cod_available: bool = False

    @classmethod
    def from_domain(cls, result: FeasibilityResult) -> "FeasibilityResultModel":
        return cls(
            can_deliver=result.can_deliver,
            reason=result.reason.value,
            distance_meters=result.distance_meters,
            max_radius_meters=result.max_radius_meters,
            travel_time_minutes=result.travel_time_minutes,
            preparation_time_minutes=result.preparation_time_minutes,
            total_estimated_minutes=result.total_estimated_minutes,
            fee_minor=result.fee_minor,
            free_delivery_eligible=result.free_delivery_eligible,
            express_applied=result.express_applied,
            cod_available=result.cod_available,
        )


class DeliveryCheckResponse(FeasibilityResultModel):
    product_id: str


class NearbyProductModel(BaseModel):
    product_id: str
    seller_id: str
    name: str
    category: Optional[str] = None
    price_minor: int
    stock: int
    rating: float
    total_orders: int
    seller_location: LocationModel
    distance_meters: float
    estimated_minutes: int
    fee_minor: int

    @classmethod
    def from_domain(cls, match: NearbyProduct) -> "NearbyProductModel":
        product = match.product
        return cls(
            product_id=product.product_id,
            seller_id=product.seller_id,
            name=product.name,
            category=product.category,
            price_minor=product.price_minor,
            stock=product.stock,
            rating=product.rating,
            total_orders=product.total_orders,
            seller_location=LocationModel(
                latitude=product.location.latitude,
                longitude=product.location.longitude,
            ),
            distance_meters=match.distance_meters,
            estimated_minutes=match.estimated_minutes,
            fee_minor=match.fee_minor,
        )


class NearbyProductsResponse(BaseModel):
    items: List[NearbyProductModel]
    page: int
    limit: int
    total: int
    has_next_page: bool
    search_radius_meters: float
    sort_by: str

    @classmethod
    def from_domain(cls, page: NearbyPage, *, page_number: int, radius: float, sort_by: str) -> "NearbyProductsResponse":
        return cls(
            items=[NearbyProductModel.from_domain(match) for match in page.items],
            page=page_number,
            limit=page.limit,
            total=page.total,
            has_next_page=page.has_next_page,
            search_radius_meters=radius,
            sort_by=sort_by,
        )


class DeliverySlotModel(BaseModel):
    day: str
    date: datetime.date
    start_time: str
    end_time: str
    max_orders: int
    remaining_capacity: int
    available: bool

    @classmethod
    def from_domain(cls, slot: DeliverySlot) -> "DeliverySlotModel":
        return cls(
            day=slot.day,
            date=slot.date,
            start_time=slot.start_time.strftime("%H:%M"),
            end_time=slot.end_time.strftime("%H:%M"),
            max_orders=slot.max_orders,
            remaining_capacity=slot.remaining_capacity,
            available=slot.available,
        )


class DeliverySlotsResponse(BaseModel):
    product_id: str
    date: datetime.date
    slots: List[DeliverySlotModel]


class CartItemEstimateModel(BaseModel):
    product_id: str
    seller_id: Optional[str] = None
    quantity: int
    found: bool
    result: FeasibilityResultModel


class SellerQuoteModel(BaseModel):
    seller_id: str
    product_ids: List[str]
    subtotal_minor: int
    can_deliver: bool
    fee_minor: int
    estimated_minutes: Optional[int] = None
    distance_meters: Optional[float] = None


class CartEstimateResponse(BaseModel):
    items: List[CartItemEstimateModel]
    sellers: List[SellerQuoteModel]
    overall_can_deliver: bool
    total_fee_minor: int
    max_estimated_minutes: int
    blocking_items: List[str]

    @classmethod
    def from_domain(cls, estimate: CartEstimate) -> "CartEstimateResponse":
        return cls(
            items=[
                CartItemEstimateModel(
                    product_id=item.product_id,
                    seller_id=item.seller_id,
                    quantity=item.quantity,
                    found=item.found,
                    result=FeasibilityResultModel.from_domain(item.result),
                )
                for item in estimate.items
            ],
            sellers=[
                SellerQuoteModel(
                    seller_id=quote.seller_id,
                    product_ids=quote.product_ids,
                    subtotal_minor=quote.subtotal_minor,
                    can_deliver=quote.can_deliver,
                    fee_minor=quote.fee_minor,
                    estimated_minutes=quote.estimated_minutes,
                    distance_meters=quote.distance_meters,
                )
                for quote in estimate.sellers
            ],
            overall_can_deliver=estimate.overall_can_deliver,
            total_fee_minor=estimate.total_fee_minor,
            max_estimated_minutes=estimate.max_estimated_minutes,
            blocking_items=estimate.blocking_items,
        )


class DeliveryZoneResponse(BaseModel):
    pincode: str
    available_sellers: int
    delivery_available: bool
    estimated_time: str
    delivery_fee_minor: int
    free_delivery_threshold_minor: int
    express_delivery_available: bool

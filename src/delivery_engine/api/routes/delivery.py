"""API routes for local delivery search, feasibility, slots and cart estimates."""

from __future__ import annotations

import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status

from ...config import settings
from ...exceptions import ValidationError
from ...models.domain import CartItem, GeoPoint
from ...schemas.delivery import (
    CartEstimateRequest,
    CartEstimateResponse,
    DeliveryCheckRequest,
    DeliveryCheckResponse,
    DeliverySlotModel,
    DeliverySlotsResponse,
    DeliveryZoneResponse,
    FeasibilityResultModel,
    NearbyProductsResponse,
    SortOption,
)
from ...services.delivery.service import LocalDeliveryService, NearbyQuery, get_delivery_service
from ...services.spatial import NearbyFilters

router = APIRouter(prefix="/delivery", tags=["delivery"])


@router.get("/nearby-products", response_model=NearbyProductsResponse, status_code=status.HTTP_200_OK)
def get_nearby_products(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    max_distance: int = Query(
        default=settings.default_search_radius_meters,
        alias="maxDistance",
        ge=settings.min_search_radius_meters,
        le=settings.max_search_radius_meters,
        description="Search radius in meters.",
    ),
    category: Optional[str] = Query(default=None),
    min_price: Optional[int] = Query(default=None, alias="minPrice", ge=0),
    max_price: Optional[int] = Query(default=None, alias="maxPrice", ge=0),
    min_rating: float = Query(default=0.0, alias="minRating", ge=0.0, le=5.0),
    max_delivery_time: Optional[int] = Query(default=None, alias="maxDeliveryTime", ge=1),
    sort_by: SortOption = Query(default="distance", alias="sortBy"),
    page: int = Query(default=1, ge=1, description="1-based page index for pagination"),
    limit: int = Query(default=settings.default_page_size, ge=1, le=100),
    service: LocalDeliveryService = Depends(get_delivery_service),
) -> NearbyProductsResponse:
    if min_price is not None and max_price is not None and min_price > max_price:
        raise ValidationError("minPrice must not exceed maxPrice", field="minPrice")

    query = NearbyQuery(
        radius_meters=float(max_distance),
        filters=NearbyFilters(
            category=category.strip() if category else None,
            min_price_minor=min_price,
            max_price_minor=max_price,
            min_rating=min_rating,
            max_delivery_minutes=max_delivery_time,
        ),
        sort_by=sort_by,
        skip=(page - 1) * limit,
        limit=limit,
    )
    result = service.find_nearby(GeoPoint(latitude, longitude), query)
    return NearbyProductsResponse.from_domain(result, page_number=page, radius=query.radius_meters, sort_by=sort_by)


@router.post("/check/{product_id}", response_model=DeliveryCheckResponse, status_code=status.HTTP_200_OK)
def check_delivery(
    payload: DeliveryCheckRequest,
    product_id: str = Path(..., min_length=1),
    service: LocalDeliveryService = Depends(get_delivery_service),
) -> DeliveryCheckResponse:
    result = service.check_delivery(product_id, payload.to_point(), payload.quantity, express=payload.express)
    return DeliveryCheckResponse(product_id=product_id, **FeasibilityResultModel.from_domain(result).model_dump())


@router.get("/slots/{product_id}", response_model=DeliverySlotsResponse, status_code=status.HTTP_200_OK)
def get_delivery_slots(
    product_id: str = Path(..., min_length=1),
    date: Optional[datetime.date] = Query(default=None, description="Delivery date (YYYY-MM-DD); defaults to today."),
    service: LocalDeliveryService = Depends(get_delivery_service),
) -> DeliverySlotsResponse:
    day = date or datetime.date.today()
    slots = service.get_slots(product_id, day)
    return DeliverySlotsResponse(
        product_id=product_id,
        date=day,
        slots=[DeliverySlotModel.from_domain(slot) for slot in slots],
    )


@router.post("/estimate-cart", response_model=CartEstimateResponse, status_code=status.HTTP_200_OK)
def estimate_cart_delivery(
    payload: CartEstimateRequest,
    service: LocalDeliveryService = Depends(get_delivery_service),
) -> CartEstimateResponse:
    items = [CartItem(product_id=item.product_id, quantity=item.quantity) for item in payload.items]
    estimate = service.estimate_cart(items, payload.to_point(), express=payload.express)
    return CartEstimateResponse.from_domain(estimate)


@router.get("/zones/{pincode}", response_model=DeliveryZoneResponse, status_code=status.HTTP_200_OK)
def get_delivery_zones(
    pincode: str = Path(..., pattern=r"^\d{6}$", description="Six-digit postal code"),
    service: LocalDeliveryService = Depends(get_delivery_service),
) -> DeliveryZoneResponse:
    return DeliveryZoneResponse(**service.get_delivery_zone(pincode))

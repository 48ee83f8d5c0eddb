"""Pydantic models for product records consumed from the catalog."""

from __future__ import annotations

from datetime import datetime, time
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..models.domain import AvailabilityWindow, DeliveryPolicy, GeoPoint, Product

Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class TimeSlotRecord(BaseModel):
    day: Weekday
    start_time: time = time(9, 0)
    end_time: time = time(21, 0)
    is_available: bool = True
    max_orders_per_hour: int = Field(default=10, ge=0)

    @field_validator("day", mode="before")
    @classmethod
    def _lower_day(cls, value: str) -> str:
        return value.strip().lower() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _end_after_start(self) -> "TimeSlotRecord":
        # Windows may not cross midnight; configure the next day separately.
        if self.end_time <= self.start_time:
            raise ValueError(f"end_time {self.end_time} must be after start_time {self.start_time} on {self.day}")
        return self


class SellerLocationRecord(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None
    city: Optional[str] = None
    pincode: Optional[str] = None


class DeliveryConfigRecord(BaseModel):
    is_local_delivery_enabled: bool = False
    max_delivery_radius: float = Field(default=5000, ge=500, le=20000)
    preparation_time: int = Field(default=10, ge=5, le=60)
    delivery_fee: int = Field(default=25, ge=0)
    free_delivery_threshold: int = Field(default=500, ge=0)
    express_delivery_available: bool = True
    express_delivery_fee: int = Field(default=20, ge=0)
    cod_available: bool = False
    available_time_slots: List[TimeSlotRecord] = Field(default_factory=list)


class ProductRecord(BaseModel):
    """Catalog row as stored by the product subsystem."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="product_id")
    seller_id: str
    name: str = ""
    category: Optional[str] = None
    price: int = Field(..., ge=0, description="Price in minor currency units.")
    stock: int = Field(default=0, ge=0)
    status: str = "active"
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    total_orders: int = Field(default=0, ge=0)
    created_at: Optional[datetime] = None
    seller_location: SellerLocationRecord
    delivery_config: DeliveryConfigRecord = Field(default_factory=DeliveryConfigRecord)

    def to_domain(self) -> Product:
        config = self.delivery_config
        policy = DeliveryPolicy(
            origin=GeoPoint(self.seller_location.latitude, self.seller_location.longitude),
            enabled=config.is_local_delivery_enabled,
            max_radius_meters=config.max_delivery_radius,
            preparation_time_minutes=config.preparation_time,
            base_fee_minor=config.delivery_fee,
            free_delivery_threshold_minor=config.free_delivery_threshold,
            express_available=config.express_delivery_available,
            express_surcharge_minor=config.express_delivery_fee,
            cod_available=config.cod_available,
            availability=tuple(
                AvailabilityWindow(
                    day_of_week=slot.day,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    max_orders_per_hour=slot.max_orders_per_hour,
                    is_available=slot.is_available,
                )
                for slot in config.available_time_slots
            ),
            pincode=self.seller_location.pincode,
        )
        return Product(
            product_id=self.id,
            seller_id=self.seller_id,
            name=self.name,
            category=self.category,
            price_minor=self.price,
            stock=self.stock,
            status=self.status,
            rating=self.rating,
            total_orders=self.total_orders,
            created_at=self.created_at,
            policy=policy,
        )

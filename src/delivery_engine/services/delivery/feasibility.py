"""Single-product delivery feasibility and estimation."""

from __future__ import annotations

from typing import Optional

from ...config import settings
from ...exceptions import ValidationError
from ...models.domain import FeasibilityReason, FeasibilityResult, GeoPoint, Product
from ..geospatial import haversine_meters, travel_minutes


class FeasibilityEvaluator:
    """Apply a product's delivery policy to a buyer location.

    The evaluator holds configuration only, so one instance can be shared
    across threads and requests.
    """

    def __init__(
        self,
        *,
        speed_m_per_min: float | None = None,
        free_distance_meters: float | None = None,
    ) -> None:
        self.speed_m_per_min = speed_m_per_min if speed_m_per_min is not None else settings.average_speed_m_per_min
        self.free_distance_meters = (
            free_distance_meters if free_distance_meters is not None else settings.free_delivery_distance_meters
        )
        if self.speed_m_per_min <= 0:
            raise ValueError("speed_m_per_min must be > 0")

    def evaluate(
        self,
        product: Product,
        buyer_location: GeoPoint,
        requested_quantity: int = 1,
        *,
        express: bool = False,
        order_value_minor: Optional[int] = None,
    ) -> FeasibilityResult:
        if requested_quantity < 1:
            raise ValidationError("requested_quantity must be >= 1", field="quantity")

        policy = product.policy
        if not policy.enabled:
            return FeasibilityResult(
                can_deliver=False,
                reason=FeasibilityReason.DISABLED,
                max_radius_meters=policy.max_radius_meters,
                cod_available=policy.cod_available,
            )
        if product.stock < requested_quantity:
            return FeasibilityResult(
                can_deliver=False,
                reason=FeasibilityReason.OUT_OF_STOCK,
                max_radius_meters=policy.max_radius_meters,
                cod_available=policy.cod_available,
            )

        distance = haversine_meters(buyer_location, policy.origin)
        if distance > policy.max_radius_meters:
            return FeasibilityResult(
                can_deliver=False,
                reason=FeasibilityReason.OUTSIDE_RADIUS,
                distance_meters=round(distance, 1),
                max_radius_meters=policy.max_radius_meters,
                cod_available=policy.cod_available,
            )

        if order_value_minor is None:
            order_value_minor = product.price_minor * requested_quantity
        return self.quote(product, distance, order_value_minor=order_value_minor, express=express)

    def quote(
        self,
        product: Product,
        distance_meters: float,
        *,
        order_value_minor: Optional[int] = None,
        express: bool = False,
    ) -> FeasibilityResult:
        """Time and fee for a product already known to be deliverable at this distance."""

        policy = product.policy
        if order_value_minor is None:
            order_value_minor = product.price_minor
        travel = travel_minutes(distance_meters, self.speed_m_per_min)
        fee, free, express_applied = self.delivery_fee(product, distance_meters, order_value_minor, express=express)
        return FeasibilityResult(
            can_deliver=True,
            reason=FeasibilityReason.OK,
            distance_meters=round(distance_meters, 1),
            max_radius_meters=policy.max_radius_meters,
            travel_time_minutes=travel,
            preparation_time_minutes=policy.preparation_time_minutes,
            total_estimated_minutes=policy.preparation_time_minutes + travel,
            fee_minor=fee,
            free_delivery_eligible=free,
            express_applied=express_applied,
            cod_available=policy.cod_available,
        )

    def delivery_fee(
        self,
        product: Product,
        distance_meters: float,
        order_value_minor: int,
        *,
        express: bool = False,
    ) -> tuple[int, bool, bool]:
        """Return (fee_minor, free_delivery_eligible, express_applied).

        Short-distance and order-value free delivery are independent: either
        one waives the whole fee, express surcharge included.
        """
        policy = product.policy
        free = (
            distance_meters <= self.free_distance_meters
            or order_value_minor >= policy.free_delivery_threshold_minor
        )
        express_applied = express and policy.express_available
        if free:
            return 0, True, express_applied
        fee = policy.base_fee_minor
        if express_applied:
            fee += policy.express_surcharge_minor
        return fee, False, express_applied

"""Cart-level delivery aggregation across sellers."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from ...models.domain import (
    CartEstimate,
    CartItem,
    CartItemEstimate,
    FeasibilityReason,
    FeasibilityResult,
    GeoPoint,
    Product,
    SellerQuote,
)
from .feasibility import FeasibilityEvaluator

logger = logging.getLogger(__name__)

ProductLookup = Callable[[str], Optional[Product]]

_MISSING_RESULT = FeasibilityResult(can_deliver=False, reason=FeasibilityReason.OUT_OF_STOCK)


def _merge_lines(items: Sequence[CartItem]) -> list[CartItem]:
    """Collapse repeated lines for the same product, keeping first-seen order."""
    quantities: dict[str, int] = {}
    for item in items:
        quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity
    return [CartItem(product_id=pid, quantity=qty) for pid, qty in quantities.items()]


class CartAggregator:
    """Merge per-item feasibility into one quote, charging each seller once.

    Sellers are assumed to prepare and ship in parallel, so the cart's time is
    the slowest seller's time rather than the sum.
    """

    def __init__(self, lookup: ProductLookup, evaluator: FeasibilityEvaluator | None = None) -> None:
        self._lookup = lookup
        self._evaluator = evaluator or FeasibilityEvaluator()

    def estimate(
        self,
        cart_items: Sequence[CartItem],
        buyer_location: GeoPoint,
        *,
        express: bool = False,
    ) -> CartEstimate:
        lines = _merge_lines(cart_items)

        resolved: dict[str, Product] = {}
        by_seller: dict[str, list[CartItem]] = {}
        for line in lines:
            product = self._lookup(line.product_id)
            if product is None:
                logger.info(f"Cart item {line.product_id} could not be resolved; reporting as blocking")
                continue
            resolved[line.product_id] = product
            by_seller.setdefault(product.seller_id, []).append(line)

        results: dict[str, FeasibilityResult] = {}
        sellers: list[SellerQuote] = []
        for seller_id, seller_lines in by_seller.items():
            subtotal = sum(resolved[line.product_id].price_minor * line.quantity for line in seller_lines)
            for line in seller_lines:
                results[line.product_id] = self._evaluator.evaluate(
                    resolved[line.product_id], buyer_location, line.quantity, express=express
                )
            # Only lines the seller can actually ship count towards the free-delivery threshold.
            deliverable_value = sum(
                resolved[line.product_id].price_minor * line.quantity
                for line in seller_lines
                if results[line.product_id].can_deliver
            )
            for line in seller_lines:
                if results[line.product_id].can_deliver:
                    results[line.product_id] = self._evaluator.evaluate(
                        resolved[line.product_id],
                        buyer_location,
                        line.quantity,
                        express=express,
                        order_value_minor=deliverable_value,
                    )
            sellers.append(self._seller_quote(seller_id, seller_lines, subtotal, results))

        estimates: list[CartItemEstimate] = []
        for line in lines:
            product = resolved.get(line.product_id)
            estimates.append(
                CartItemEstimate(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    result=results.get(line.product_id, _MISSING_RESULT),
                    seller_id=product.seller_id if product else None,
                    found=product is not None,
                )
            )

        blocking = [estimate.product_id for estimate in estimates if not estimate.result.can_deliver]
        serving = [quote for quote in sellers if quote.estimated_minutes is not None]
        return CartEstimate(
            items=estimates,
            sellers=sellers,
            overall_can_deliver=bool(estimates) and not blocking,
            total_fee_minor=sum(quote.fee_minor for quote in serving),
            max_estimated_minutes=max((quote.estimated_minutes for quote in serving), default=0),
            blocking_items=blocking,
        )

    @staticmethod
    def _seller_quote(
        seller_id: str,
        lines: list[CartItem],
        subtotal: int,
        results: dict[str, FeasibilityResult],
    ) -> SellerQuote:
        seller_results = [results[line.product_id] for line in lines]
        deliverable = [result for result in seller_results if result.can_deliver]
        distances = [result.distance_meters for result in seller_results if result.distance_meters is not None]
        return SellerQuote(
            seller_id=seller_id,
            product_ids=[line.product_id for line in lines],
            subtotal_minor=subtotal,
            can_deliver=len(deliverable) == len(seller_results),
            fee_minor=max((result.fee_minor for result in deliverable), default=0),
            estimated_minutes=max((result.total_estimated_minutes for result in deliverable), default=None),
            distance_meters=max(distances, default=None),
        )

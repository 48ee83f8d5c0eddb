"""Delivery feasibility, slot and cart estimation services."""

from .cart import CartAggregator
from .feasibility import FeasibilityEvaluator
from .slots import SlotProvider

__all__ = ["FeasibilityEvaluator", "SlotProvider", "CartAggregator"]

"""Delivery engine exceptions.

Raised by the service layer for caller errors and unresolvable references.
The API layer translates them into HTTP responses. Expected delivery outcomes
(outside radius, disabled, out of stock) are result data, not exceptions.
"""

from __future__ import annotations


class DeliveryEngineError(Exception):
    """Base class for all delivery engine errors."""


class ValidationError(DeliveryEngineError, ValueError):
    """Malformed coordinates, quantity or date supplied by the caller."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class NotFoundError(DeliveryEngineError):
    """The referenced product or seller does not exist."""

    def __init__(self, message: str, *, resource_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.resource_id = resource_id


class CacheUnavailableError(DeliveryEngineError):
    """The result cache backend could not be reached."""

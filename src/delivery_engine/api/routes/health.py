"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...db.supabase import get_supabase_client
from ...services.delivery.service import LocalDeliveryService, get_delivery_service

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/catalog", status_code=status.HTTP_200_OK)
def health_catalog(service: LocalDeliveryService = Depends(get_delivery_service)) -> dict:
    """Indexed product count, cache counters and database configuration."""
    return {
        "status": "ok",
        "database_configured": get_supabase_client() is not None,
        **service.stats(),
    }

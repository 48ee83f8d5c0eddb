"""Booked-slot counts owned by the order subsystem."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date, time

from ..config import settings
from ..db.supabase import get_supabase_client
from ..services.delivery.slots import BookedCountLookup

logger = logging.getLogger(__name__)


def _slot_key(value: str | time) -> str:
    if isinstance(value, time):
        return value.strftime("%H:%M")
    return str(value)[:5]


def get_booked_counts(seller_id: str, day: date) -> dict[str, int]:
    """Return {"HH:MM": booked_orders} for a seller's slots on a date.

    Empty when the database is not configured or the query fails.
    """
    supabase = get_supabase_client()
    if not supabase:
        return {}

    try:
        response = (
            supabase.table(settings.supabase_bookings_table)
            .select("slot_start")
            .eq("seller_id", seller_id)
            .eq("delivery_date", day.isoformat())
            .execute()
        )
    except Exception as e:
        logger.warning(f"Booking lookup failed for seller {seller_id} on {day}: {e}")
        return {}

    return dict(Counter(_slot_key(row["slot_start"]) for row in (response.data or []) if row.get("slot_start")))


def booked_lookup_from_counts(counts: dict[str, int]) -> BookedCountLookup:
    """Adapt a {"HH:MM": count} mapping to the slot provider's lookup signature."""

    def lookup(day: date, start: time, end: time) -> int:
        return counts.get(_slot_key(start), 0)

    return lookup

"""Delivery slot computation from a seller's weekly calendar."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Callable, Optional

from ...config import settings
from ...exceptions import ValidationError
from ...models.domain import WEEKDAYS, AvailabilityWindow, DeliveryPolicy, DeliverySlot

BookedCountLookup = Callable[[date, time, time], int]


def _no_bookings(day: date, start: time, end: time) -> int:
    return 0


def _hourly_bounds(window: AvailabilityWindow) -> list[tuple[time, time]]:
    """Split a window into one-hour slots, truncating the last one at the window end.

    Windows ending at or before their start (e.g. 22:00-02:00) yield nothing;
    catalog validation rejects them before they reach a policy.
    """

    anchor = date.min
    cursor = datetime.combine(anchor, window.start_time)
    end = datetime.combine(anchor, window.end_time)
    bounds: list[tuple[time, time]] = []
    while cursor < end:
        slot_end = min(cursor + timedelta(hours=1), end)
        bounds.append((cursor.time(), slot_end.time()))
        cursor = slot_end
    return bounds


class SlotProvider:
    """Compute open delivery windows for a requested date."""

    def __init__(self, *, horizon_days: int | None = None) -> None:
        self.horizon_days = horizon_days if horizon_days is not None else settings.slot_horizon_days

    def validate_date(self, day: date, *, today: Optional[date] = None) -> None:
        today = today or date.today()
        last = today + timedelta(days=self.horizon_days)
        if day < today or day > last:
            raise ValidationError(
                f"date must be between {today.isoformat()} and {last.isoformat()}",
                field="date",
            )

    def get_slots(
        self,
        policy: DeliveryPolicy,
        day: date,
        *,
        booked: BookedCountLookup | None = None,
        today: Optional[date] = None,
    ) -> list[DeliverySlot]:
        self.validate_date(day, today=today)
        booked = booked or _no_bookings
        weekday = WEEKDAYS[day.weekday()]

        slots: list[DeliverySlot] = []
        for window in policy.availability:
            if window.day_of_week.lower() != weekday or not window.is_available:
                continue
            if window.max_orders_per_hour <= 0:
                continue
            for start, end in _hourly_bounds(window):
                remaining = window.max_orders_per_hour - booked(day, start, end)
                slots.append(
                    DeliverySlot(
                        day=weekday,
                        date=day,
                        start_time=start,
                        end_time=end,
                        max_orders=window.max_orders_per_hour,
                        remaining_capacity=max(remaining, 0),
                    )
                )
        slots.sort(key=lambda slot: (slot.start_time, slot.end_time))
        return slots

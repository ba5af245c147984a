"""Dock slot policy for the storage yard.

Receiving hours are 07:00 to 16:00 on weekdays. Anything outside them can
still be booked but is an after-hours slot carrying a surcharge and needs
manual confirmation by the yard.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from pipeyard.core.config import Settings, get_settings
from pipeyard.schemas.trucking import TimeSlot


def _normalize(value: datetime) -> datetime:
    return value.replace(second=0, microsecond=0, tzinfo=None)


def is_within_receiving_hours(moment: datetime, settings: Optional[Settings] = None) -> bool:
    settings = settings or get_settings()
    if moment.weekday() >= 5:
        return False
    return settings.receiving_hours_start <= moment.hour < settings.receiving_hours_end


def build_slot(start: datetime, settings: Optional[Settings] = None) -> TimeSlot:
    settings = settings or get_settings()
    after_hours = not is_within_receiving_hours(start, settings)
    return TimeSlot(
        start=start,
        end=start + timedelta(hours=settings.slot_duration_hours),
        is_after_hours=after_hours,
        surcharge_amount=settings.after_hours_surcharge if after_hours else 0,
    )


def generate_time_slots(
    now: datetime,
    blocked: Iterable[datetime] = (),
    settings: Optional[Settings] = None,
) -> List[TimeSlot]:
    """Hourly weekday slots over the booking horizon, skipping past and booked starts."""
    settings = settings or get_settings()
    blocked_starts = {_normalize(value) for value in blocked}
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    slots: List[TimeSlot] = []
    for day_offset in range(settings.booking_horizon_days):
        day = today + timedelta(days=day_offset)
        if day.weekday() >= 5:
            continue
        for hour in range(settings.slot_first_hour, settings.slot_last_hour + 1, settings.slot_duration_hours):
            start = day.replace(hour=hour)
            if start < now or start in blocked_starts:
                continue
            slots.append(build_slot(start, settings))
    return slots

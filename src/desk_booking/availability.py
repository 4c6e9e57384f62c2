from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta

from .errors import NotFound
from .models import AvailabilitySlot, TimeRange
from .repository import BookingRepository
from .slots import compute_slots


def display_window(day: date, start_hour: int = 9, end_hour: int = 17) -> TimeRange:
    """The fixed display hours of ``day`` in UTC."""
    midnight = datetime.combine(day, time.min, tzinfo=UTC)
    return TimeRange(start=midnight + timedelta(hours=start_hour), end=midnight + timedelta(hours=end_hour))


class AvailabilityService:
    """Read side: which parts of a window are free for a desk.

    Results are an advisory snapshot; nothing is locked and no conflict
    checking happens here.
    """

    def __init__(self, repository: BookingRepository):
        self._repository = repository

    def get_availability(self, resource_id: str, window: TimeRange) -> list[AvailabilitySlot]:
        if not self._repository.resource_exists(resource_id):
            raise NotFound(f"Desk {resource_id} not found")
        return compute_slots(window, self._repository.find_bookings(resource_id, window))

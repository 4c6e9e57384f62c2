from __future__ import annotations

import threading
import uuid
from collections.abc import Callable, Iterable, Sequence
from typing import Protocol

from aws_lambda_powertools import Logger

from . import dal
from .errors import ConstraintViolation, NotFound
from .models import Booking, TimeRange
from .validation import find_conflict

logger = Logger()


class BookingRepository(Protocol):
    """Storage boundary used by the booking engine.

    ``insert_bookings`` must be atomic: it either stores every range or none,
    and it must refuse ranges overlapping a stored booking or each other.
    """

    def resource_exists(self, resource_id: str) -> bool: ...

    def find_bookings(self, resource_id: str, window: TimeRange) -> list[Booking]: ...

    def insert_bookings(self, resource_id: str, user_id: str, ranges: Sequence[TimeRange]) -> list[Booking]: ...


def _new_booking_id() -> str:
    return str(uuid.uuid4())


class InMemoryBookingRepository:
    """Process-local store; one lock serialises every write."""

    def __init__(self, resources: Iterable[str] = (), id_factory: Callable[[], str] = _new_booking_id):
        self._lock = threading.Lock()
        self._bookings: dict[str, list[Booking]] = {rid: [] for rid in resources}
        self._id_factory = id_factory

    def add_resource(self, resource_id: str) -> None:
        with self._lock:
            self._bookings.setdefault(resource_id, [])

    def resource_exists(self, resource_id: str) -> bool:
        return resource_id in self._bookings

    def find_bookings(self, resource_id: str, window: TimeRange) -> list[Booking]:
        stored = self._bookings.get(resource_id, [])
        return sorted((b for b in stored if b.range.overlaps(window)), key=lambda b: b.range.start)

    def insert_bookings(self, resource_id: str, user_id: str, ranges: Sequence[TimeRange]) -> list[Booking]:
        with self._lock:
            if resource_id not in self._bookings:
                raise NotFound(f"Desk {resource_id} not found")

            # Stage on a copy; the store only changes once every range is in
            staged = list(self._bookings[resource_id])
            created: list[Booking] = []
            for rng in ranges:
                clash = find_conflict(rng, (b.range for b in staged))
                if clash is not None:
                    raise ConstraintViolation(
                        f"Range {rng.start.isoformat()} - {rng.end.isoformat()} overlaps a stored booking",
                        conflicting=clash,
                    )
                booking = Booking(booking_id=self._id_factory(), resource_id=resource_id, user_id=user_id, range=rng)
                staged.append(booking)
                created.append(booking)

            self._bookings[resource_id] = staged
        logger.debug("Stored bookings in memory", extra={"resource_id": resource_id, "count": len(created)})
        return created


class DynamoBookingRepository:
    """Repository backed by the DynamoDB tables in :mod:`desk_booking.dal`."""

    def resource_exists(self, resource_id: str) -> bool:
        return dal.desk_exists(resource_id)

    def find_bookings(self, resource_id: str, window: TimeRange) -> list[Booking]:
        return dal.find_bookings(resource_id, window)

    def insert_bookings(self, resource_id: str, user_id: str, ranges: Sequence[TimeRange]) -> list[Booking]:
        return dal.insert_bookings(resource_id, user_id, ranges)

from __future__ import annotations

from datetime import datetime

from aws_lambda_powertools import Logger

from .errors import Conflict, ConstraintViolation, NotFound
from .models import Booking, RecurrenceSpec, TimeRange
from .recurrence import expand
from .repository import BookingRepository
from .validation import ensure_range, find_conflict, validate

logger = Logger()


class RecurringBookingCoordinator:
    """Creates single bookings and weekly series, all-or-nothing.

    Validation here runs against a snapshot read from the repository and gives
    callers a precise conflict. The repository repeats the overlap check inside
    its own transaction, and a race lost there is reported as ``Conflict`` too.
    """

    def __init__(self, repository: BookingRepository, max_occurrences: int | None = None):
        self._repository = repository
        self._max_occurrences = max_occurrences

    def create_booking(self, resource_id: str, user_id: str, start: datetime, end: datetime) -> Booking:
        candidate = ensure_range(start, end)
        self._require_resource(resource_id)

        validate(candidate, self._repository.find_bookings(resource_id, candidate))
        bookings = self._persist(resource_id, user_id, [candidate])
        logger.info(
            "Booking created",
            extra={"resource_id": resource_id, "user_id": user_id, "booking_id": bookings[0].booking_id},
        )
        return bookings[0]

    def create_series(self, resource_id: str, user_id: str, spec: RecurrenceSpec) -> list[Booking]:
        occurrences = expand(spec, self._max_occurrences)
        self._require_resource(resource_id)

        span = TimeRange(start=occurrences[0].start, end=occurrences[-1].end)
        existing = self._repository.find_bookings(resource_id, span)

        accepted: list[TimeRange] = []
        for index, occurrence in enumerate(occurrences):
            try:
                validate(occurrence, existing)
            except Conflict:
                logger.info(
                    "Recurring booking rejected",
                    extra={"resource_id": resource_id, "user_id": user_id, "occurrence": index},
                )
                raise
            # Occurrences longer than the cadence step would overlap each other
            sibling = find_conflict(occurrence, accepted)
            if sibling is not None:
                raise Conflict(
                    f"Occurrence {index} overlaps another occurrence of the same series",
                    conflicting=sibling,
                )
            accepted.append(occurrence)

        bookings = self._persist(resource_id, user_id, accepted)
        logger.info(
            "Recurring booking created",
            extra={"resource_id": resource_id, "user_id": user_id, "count": len(bookings), "cadence": spec.cadence},
        )
        return bookings

    def _require_resource(self, resource_id: str) -> None:
        if not self._repository.resource_exists(resource_id):
            raise NotFound(f"Desk {resource_id} not found")

    def _persist(self, resource_id: str, user_id: str, ranges: list[TimeRange]) -> list[Booking]:
        try:
            return self._repository.insert_bookings(resource_id, user_id, ranges)
        except ConstraintViolation as exc:
            logger.warning("Booking lost a concurrent write", extra={"resource_id": resource_id, "user_id": user_id})
            raise Conflict(str(exc), conflicting=exc.conflicting) from exc

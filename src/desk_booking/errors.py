from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import TimeRange


class BookingError(Exception):
    """Base class for every error the booking engine reports to its caller."""


class InvalidRange(BookingError):
    pass


class InvalidRecurrence(BookingError):
    pass


class NotFound(BookingError):
    pass


class Conflict(BookingError):
    def __init__(self, message: str = "Desk is already booked for this time", conflicting: TimeRange | None = None):
        super().__init__(message)
        self.conflicting = conflicting


class ConstraintViolation(Conflict):
    """Raised by a repository when an overlap is detected at commit time."""

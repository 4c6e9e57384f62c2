from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def as_utc(dt: datetime) -> datetime:
    # Naive timestamps are taken to be UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


class TimeRange(BaseModel):
    """Half-open interval ``[start, end)`` with ``start < end``, always in UTC."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def _normalize(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _check_order(self) -> TimeRange:
        if self.start >= self.end:
            raise ValueError("start must be earlier than end")
        return self

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: TimeRange) -> bool:
        # Touching endpoints are not an overlap
        return self.start < other.end and self.end > other.start

    def shift(self, delta: timedelta) -> TimeRange:
        return TimeRange(start=self.start + delta, end=self.end + delta)

    def clip(self, window: TimeRange) -> TimeRange | None:
        start = max(self.start, window.start)
        end = min(self.end, window.end)
        if start >= end:
            return None
        return TimeRange(start=start, end=end)


class Booking(BaseModel):
    model_config = ConfigDict(frozen=True)

    booking_id: str
    resource_id: str
    user_id: str
    range: TimeRange

    @property
    def start_time(self) -> datetime:
        return self.range.start

    @property
    def end_time(self) -> datetime:
        return self.range.end


class SlotStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"


class AvailabilitySlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    range: TimeRange
    status: SlotStatus


class Cadence(str, Enum):
    WEEKLY = "WEEKLY"


class RecurrenceSpec(BaseModel):
    # cadence stays a raw tag; unknown values are rejected by the expander
    model_config = ConfigDict(frozen=True)

    cadence: str
    occurrence_count: int
    first_occurrence: TimeRange


# HTTP request / response shapes


class BookingCreate(BaseModel):
    start_time: datetime
    end_time: datetime


class RecurringBookingCreate(BaseModel):
    start_time: datetime
    end_time: datetime
    cadence: str = Field(default=Cadence.WEEKLY.value, min_length=1)
    occurrence_count: int


class BookingOut(BaseModel):
    booking_id: str
    resource_id: str
    user_id: str
    start_time: datetime
    end_time: datetime

    @classmethod
    def from_booking(cls, booking: Booking) -> BookingOut:
        return cls(
            booking_id=booking.booking_id,
            resource_id=booking.resource_id,
            user_id=booking.user_id,
            start_time=booking.start_time,
            end_time=booking.end_time,
        )


class SlotOut(BaseModel):
    start_time: datetime
    end_time: datetime
    status: SlotStatus

    @classmethod
    def from_slot(cls, slot: AvailabilitySlot) -> SlotOut:
        return cls(start_time=slot.range.start, end_time=slot.range.end, status=slot.status)

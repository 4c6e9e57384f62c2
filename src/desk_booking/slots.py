from __future__ import annotations

from collections.abc import Iterable

from .models import AvailabilitySlot, Booking, SlotStatus, TimeRange


def compute_slots(window: TimeRange, bookings: Iterable[Booking]) -> list[AvailabilitySlot]:
    """Partition ``window`` into contiguous AVAILABLE / BOOKED slots.

    Bookings outside the window are ignored and bookings crossing its edges are
    clipped. The returned slots are ordered, never overlap, and together span
    the window exactly.
    """
    ordered = sorted(bookings, key=lambda b: (b.range.start, b.booking_id))

    slots: list[AvailabilitySlot] = []
    cursor = window.start
    for booking in ordered:
        clipped = booking.range.clip(window)
        if clipped is None or clipped.end <= cursor:
            continue
        # Overlapping stored data must not break the partition
        start = max(clipped.start, cursor)
        if cursor < start:
            slots.append(AvailabilitySlot(range=TimeRange(start=cursor, end=start), status=SlotStatus.AVAILABLE))
        slots.append(AvailabilitySlot(range=TimeRange(start=start, end=clipped.end), status=SlotStatus.BOOKED))
        cursor = clipped.end

    if cursor < window.end:
        slots.append(AvailabilitySlot(range=TimeRange(start=cursor, end=window.end), status=SlotStatus.AVAILABLE))
    return slots

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from .errors import Conflict, InvalidRange
from .models import Booking, TimeRange, as_utc


def ensure_range(start: datetime, end: datetime) -> TimeRange:
    start, end = as_utc(start), as_utc(end)
    if start >= end:
        raise InvalidRange(f"start_time ({start.isoformat()}) must be before end_time ({end.isoformat()})")
    return TimeRange(start=start, end=end)


def find_conflict(candidate: TimeRange, ranges: Iterable[TimeRange]) -> TimeRange | None:
    for existing in ranges:
        if existing.overlaps(candidate):
            return existing
    return None


def validate(candidate: TimeRange, existing: Sequence[Booking]) -> None:
    """Raise ``Conflict`` if ``candidate`` strictly intersects any of ``existing``.

    Back-to-back bookings are accepted. This only checks the snapshot it is
    given; the repository repeats the check atomically when it writes.
    """
    if candidate.start >= candidate.end:
        raise InvalidRange("start_time must be before end_time")
    clash = find_conflict(candidate, (b.range for b in existing))
    if clash is not None:
        raise Conflict(
            f"Desk is already booked from {clash.start.isoformat()} to {clash.end.isoformat()}",
            conflicting=clash,
        )

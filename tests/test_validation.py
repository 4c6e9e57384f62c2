from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from conftest import at
from pydantic import ValidationError

from desk_booking.errors import Conflict, InvalidRange
from desk_booking.models import Booking, TimeRange
from desk_booking.validation import ensure_range, find_conflict, validate


def existing(start_hour: int, end_hour: int, booking_id: str = "b-1") -> Booking:
    return Booking(
        booking_id=booking_id,
        resource_id="5",
        user_id="someone-else",
        range=TimeRange(start=at(start_hour), end=at(end_hour)),
    )


def test_ensure_range_rejects_empty_range():
    with pytest.raises(InvalidRange):
        ensure_range(at(10), at(10))


def test_ensure_range_rejects_reversed_range():
    with pytest.raises(InvalidRange):
        ensure_range(at(11), at(10))


def test_ensure_range_treats_naive_datetimes_as_utc():
    rng = ensure_range(datetime(2030, 1, 7, 10), datetime(2030, 1, 7, 11))
    assert rng.start.tzinfo is not None
    assert rng.start == datetime(2030, 1, 7, 10, tzinfo=UTC)


def test_time_range_model_enforces_order():
    with pytest.raises(ValidationError):
        TimeRange(start=at(10), end=at(9))


def test_validate_accepts_free_candidate():
    validate(TimeRange(start=at(12), end=at(13)), [existing(10, 11)])


def test_validate_raises_conflict_with_clashing_range():
    with pytest.raises(Conflict) as excinfo:
        validate(TimeRange(start=at(10, 30), end=at(11, 30)), [existing(10, 11)])
    assert excinfo.value.conflicting == TimeRange(start=at(10), end=at(11))


@pytest.mark.parametrize(
    ("start", "end"),
    [
        (at(9), at(10)),  # ends when existing starts
        (at(11), at(12)),  # starts when existing ends
    ],
)
def test_touching_bookings_do_not_conflict(start, end):
    validate(TimeRange(start=start, end=end), [existing(10, 11)])


@pytest.mark.parametrize(
    ("a", "b", "accepted"),
    [
        ((9, 10), (10, 11), True),
        ((10, 11), (9, 10), True),
        ((9, 11), (10, 12), False),
        ((10, 12), (9, 11), False),
        ((9, 12), (10, 11), False),
        ((10, 11), (10, 11), False),
        ((9, 10), (12, 13), True),
    ],
)
def test_pairs_accepted_iff_no_strict_intersection(a, b, accepted):
    first = TimeRange(start=at(a[0]), end=at(a[1]))
    second = TimeRange(start=at(b[0]), end=at(b[1]))
    assert (find_conflict(second, [first]) is None) is accepted
    assert (first.end <= second.start or second.end <= first.start) is accepted


def test_find_conflict_returns_first_clash():
    ranges = [TimeRange(start=at(8), end=at(9)), TimeRange(start=at(10), end=at(12))]
    assert find_conflict(TimeRange(start=at(11), end=at(13)), ranges) == ranges[1]
    assert find_conflict(TimeRange(start=at(9), end=at(10)), ranges) is None


def test_clip_and_shift():
    rng = TimeRange(start=at(8), end=at(10))
    window = TimeRange(start=at(9), end=at(17))
    assert rng.clip(window) == TimeRange(start=at(9), end=at(10))
    assert TimeRange(start=at(17), end=at(18)).clip(window) is None
    assert rng.shift(timedelta(days=7)).start == at(8) + timedelta(days=7)
    assert rng.shift(timedelta(days=7)).duration == rng.duration

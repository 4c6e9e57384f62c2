from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from conftest import MONDAY, at

from desk_booking.errors import InvalidRecurrence
from desk_booking.models import Cadence, RecurrenceSpec, TimeRange
from desk_booking.recurrence import expand

FIRST = TimeRange(start=at(10), end=at(11))


def weekly(count: int, first: TimeRange = FIRST) -> RecurrenceSpec:
    return RecurrenceSpec(cadence=Cadence.WEEKLY.value, occurrence_count=count, first_occurrence=first)


def test_weekly_expansion_three_mondays():
    ranges = expand(weekly(3))
    assert [r.start for r in ranges] == [at(10), at(10) + timedelta(days=7), at(10) + timedelta(days=14)]
    assert all(r.start.weekday() == MONDAY.weekday() for r in ranges)
    assert all((r.start.hour, r.end.hour) == (10, 11) for r in ranges)


@pytest.mark.parametrize("count", [1, 2, 5, 52])
def test_expansion_length_duration_and_spacing(count):
    first = TimeRange(start=at(9, 15), end=at(12, 45))
    ranges = expand(weekly(count, first))
    assert len(ranges) == count
    assert ranges[0] == first
    assert all(r.duration == first.duration for r in ranges)
    for prev, nxt in zip(ranges, ranges[1:]):
        assert nxt.start - prev.start == timedelta(days=7)


@pytest.mark.parametrize("count", [0, -1])
def test_count_below_one_is_rejected(count):
    with pytest.raises(InvalidRecurrence):
        expand(weekly(count))


@pytest.mark.parametrize("cadence", ["DAILY", "MONTHLY", "weekly", ""])
def test_only_weekly_cadence_is_supported(cadence):
    spec = RecurrenceSpec(cadence=cadence, occurrence_count=2, first_occurrence=FIRST)
    with pytest.raises(InvalidRecurrence, match="only weekly"):
        expand(spec)


def test_count_above_configured_maximum_is_rejected():
    with pytest.raises(InvalidRecurrence):
        expand(weekly(53), max_occurrences=52)
    assert len(expand(weekly(52), max_occurrences=52)) == 52


def test_occurrences_longer_than_a_week_are_still_expanded():
    long_first = TimeRange(start=at(10), end=at(10) + timedelta(days=8))
    ranges = expand(weekly(2, long_first))
    assert ranges[0].overlaps(ranges[1])


def test_series_past_last_representable_date_is_rejected():
    near_the_end = datetime(9999, 12, 20, 10, tzinfo=UTC)
    first = TimeRange(start=near_the_end, end=near_the_end + timedelta(hours=1))
    with pytest.raises(InvalidRecurrence, match="supported date range"):
        expand(weekly(3, first))
    assert len(expand(weekly(2, first))) == 2

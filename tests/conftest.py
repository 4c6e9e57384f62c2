from __future__ import annotations

import os
from datetime import UTC, datetime

import pytest

# Must be set before desk_booking modules create their boto3 / powertools objects
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "true")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "desk-booking")
os.environ.setdefault("STORAGE_BACKEND", "memory")

from desk_booking.repository import InMemoryBookingRepository  # noqa: E402

# 2030-01-07 is a Monday
MONDAY = datetime(2030, 1, 7, tzinfo=UTC)


def at(hour: int, minute: int = 0, day: datetime = MONDAY) -> datetime:
    return day.replace(hour=hour, minute=minute)


@pytest.fixture()
def repository() -> InMemoryBookingRepository:
    return InMemoryBookingRepository(resources=["5", "desk-1"])

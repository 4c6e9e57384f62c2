from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any, TypedDict, cast

import boto3
from aws_lambda_powertools import Logger
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError

if TYPE_CHECKING:
    # Only for static type checking; not imported at runtime
    from mypy_boto3_dynamodb.client import DynamoDBClient
    from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource
    from mypy_boto3_dynamodb.service_resource import Table as DynamoDBTable
else:
    # Fallbacks to satisfy annotations at runtime
    DynamoDBClient = Any  # type: ignore[assignment]
    DynamoDBServiceResource = Any  # type: ignore[assignment]
    DynamoDBTable = Any  # type: ignore[assignment]

from .config import MAX_TRANSACTION_BOOKINGS, get_settings
from .errors import ConstraintViolation, NotFound
from .models import Booking, TimeRange, as_utc
from .validation import find_conflict

logger = Logger()
_settings = get_settings()

_dynamodb: DynamoDBServiceResource = boto3.resource("dynamodb")
_table: DynamoDBTable = _dynamodb.Table(_settings.bookings_table_name)
_desks_table: DynamoDBTable = _dynamodb.Table(_settings.desks_table_name)
_client: DynamoDBClient = _dynamodb.meta.client

_serializer = TypeSerializer()

# Cancellation reasons meaning another writer got to the desk first
_RACE_REASONS = frozenset({"ConditionalCheckFailed", "TransactionConflict"})

DESK_NOT_FOUND = "Desk not found"


class BookingItem(TypedDict):
    resource_id: str
    start_time: str
    end_time: str
    booking_id: str
    user_id: str


def _dt_to_iso(dt: datetime) -> str:
    # Fixed width so that sort-key order matches chronological order
    return as_utc(dt).isoformat(timespec="microseconds")


def _iso_to_dt(s: str) -> datetime:
    return as_utc(datetime.fromisoformat(s))


def _serialize(item: dict[str, Any]) -> dict[str, Any]:
    return {k: _serializer.serialize(v) for k, v in item.items()}


def _get_desk(resource_id: str) -> dict[str, Any]:
    resp = cast(dict[str, Any], _desks_table.get_item(Key={"desk_id": resource_id}, ConsistentRead=True))
    item = resp.get("Item")
    if not isinstance(item, dict):
        raise NotFound(DESK_NOT_FOUND)
    return item


def desk_exists(resource_id: str) -> bool:
    try:
        _get_desk(resource_id)
    except NotFound:
        return False
    return True


def find_bookings(resource_id: str, window: TimeRange) -> list[Booking]:
    """Bookings of ``resource_id`` that intersect ``window``, ordered by start."""
    query: dict[str, Any] = {
        "KeyConditionExpression": "resource_id = :rid AND start_time < :window_end",
        "FilterExpression": "end_time > :window_start",
        "ExpressionAttributeValues": {
            ":rid": resource_id,
            ":window_start": _dt_to_iso(window.start),
            ":window_end": _dt_to_iso(window.end),
        },
        "ConsistentRead": True,
    }
    items: list[BookingItem] = []
    while True:
        resp = cast(dict[str, Any], _table.query(**query))
        items.extend(cast(BookingItem, it) for it in resp.get("Items", []) if isinstance(it, dict))
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            break
        query["ExclusiveStartKey"] = last_key
    return [_to_model(it) for it in items]


def insert_bookings(resource_id: str, user_id: str, ranges: Sequence[TimeRange]) -> list[Booking]:
    """Store every range as a booking in one transaction, or none of them.

    The desk item's ``booking_version`` is bumped under a condition on the
    value read before the overlap check, so a concurrent writer for the same
    desk makes this transaction fail instead of both committing.
    """
    if not ranges:
        return []
    if len(ranges) > MAX_TRANSACTION_BOOKINGS:
        raise ValueError(f"At most {MAX_TRANSACTION_BOOKINGS} bookings can be written atomically")

    desk = _get_desk(resource_id)
    version = int(desk.get("booking_version", 0))

    span = TimeRange(start=min(r.start for r in ranges), end=max(r.end for r in ranges))
    taken = [b.range for b in find_bookings(resource_id, span)]
    for rng in ranges:
        clash = find_conflict(rng, taken)
        if clash is not None:
            raise ConstraintViolation(
                f"Range {rng.start.isoformat()} - {rng.end.isoformat()} overlaps a stored booking",
                conflicting=clash,
            )
        taken.append(rng)

    bookings = [
        Booking(booking_id=str(uuid.uuid4()), resource_id=resource_id, user_id=user_id, range=rng)
        for rng in ranges
    ]
    actions: list[dict[str, Any]] = [
        {
            "Update": {
                "TableName": _settings.desks_table_name,
                "Key": _serialize({"desk_id": resource_id}),
                "UpdateExpression": "SET booking_version = :next",
                "ConditionExpression": (
                    "attribute_exists(desk_id) AND "
                    "(attribute_not_exists(booking_version) OR booking_version = :expected)"
                ),
                "ExpressionAttributeValues": _serialize({":next": version + 1, ":expected": version}),
            }
        }
    ]
    actions.extend(
        {
            "Put": {
                "TableName": _settings.bookings_table_name,
                "Item": _serialize(dict(_to_item(b))),
                "ConditionExpression": "attribute_not_exists(resource_id)",
            }
        }
        for b in bookings
    )

    logger.info(
        "Writing bookings",
        extra={"resource_id": resource_id, "user_id": user_id, "count": len(bookings), "version": version},
    )
    try:
        _client.transact_write_items(TransactItems=actions)  # type: ignore[arg-type]
    except ClientError as exc:
        if _lost_race(exc):
            logger.warning("Booking transaction cancelled", extra={"resource_id": resource_id, "version": version})
            raise ConstraintViolation("Desk bookings changed concurrently; nothing was written") from exc
        raise
    return bookings


def _lost_race(exc: ClientError) -> bool:
    # Throttling or validation cancellations are not overlaps
    if exc.response.get("Error", {}).get("Code") != "TransactionCanceledException":
        return False
    reasons = cast(list[dict[str, Any]], exc.response.get("CancellationReasons") or [])
    return any(reason.get("Code") in _RACE_REASONS for reason in reasons)


def _to_item(booking: Booking) -> BookingItem:
    return {
        "resource_id": booking.resource_id,
        "start_time": _dt_to_iso(booking.start_time),
        "end_time": _dt_to_iso(booking.end_time),
        "booking_id": booking.booking_id,
        "user_id": booking.user_id,
    }


def _to_model(item: BookingItem) -> Booking:
    return Booking(
        booking_id=item["booking_id"],
        resource_id=item["resource_id"],
        user_id=item["user_id"],
        range=TimeRange(start=_iso_to_dt(item["start_time"]), end=_iso_to_dt(item["end_time"])),
    )

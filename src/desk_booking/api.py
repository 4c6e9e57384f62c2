from datetime import date, datetime
from functools import lru_cache

from aws_lambda_powertools import Logger, Tracer
from aws_lambda_powertools.metrics import Metrics, MetricUnit
from fastapi import Depends, FastAPI, HTTPException

from desk_booking.availability import AvailabilityService, display_window
from desk_booking.config import Settings, get_settings
from desk_booking.coordinator import RecurringBookingCoordinator
from desk_booking.errors import Conflict, InvalidRange, InvalidRecurrence, NotFound
from desk_booking.models import BookingCreate, BookingOut, RecurrenceSpec, RecurringBookingCreate, SlotOut, TimeRange
from desk_booking.repository import BookingRepository, DynamoBookingRepository, InMemoryBookingRepository
from desk_booking.security import get_current_user_id
from desk_booking.validation import ensure_range

logger = Logger()
tracer = Tracer()
metrics = Metrics(namespace="DeskBooking")

app = FastAPI(title="Desk Booking API", version="0.1.0")


@lru_cache(maxsize=1)
def get_repository() -> BookingRepository:
    settings = get_settings()
    if settings.storage_backend == "memory":
        return InMemoryBookingRepository(resources=settings.memory_desk_ids)
    return DynamoBookingRepository()


def get_coordinator(
    repository: BookingRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> RecurringBookingCoordinator:
    return RecurringBookingCoordinator(repository, max_occurrences=settings.max_series_occurrences)


def get_availability_service(repository: BookingRepository = Depends(get_repository)) -> AvailabilityService:
    return AvailabilityService(repository)


def _conflict(exc: Conflict) -> HTTPException:
    metrics.add_metric(name="BookingConflict", value=1, unit=MetricUnit.Count)
    return HTTPException(status_code=409, detail=str(exc))


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/desks/{desk_id}/availability", response_model=list[SlotOut])
@tracer.capture_method
def get_availability(
    desk_id: str,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    day: date | None = None,
    _user_id: str = Depends(get_current_user_id),
    service: AvailabilityService = Depends(get_availability_service),
    settings: Settings = Depends(get_settings),
) -> list[SlotOut]:
    try:
        window: TimeRange
        if start_time is not None and end_time is not None:
            window = ensure_range(start_time, end_time)
        elif day is not None:
            window = display_window(day, settings.display_start_hour, settings.display_end_hour)
        else:
            raise HTTPException(
                status_code=422,
                detail="Provide start_time and end_time, or day",
            )
        slots = service.get_availability(desk_id, window)
    except InvalidRange as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Desk not found") from exc
    return [SlotOut.from_slot(slot) for slot in slots]


@app.post("/desks/{desk_id}/bookings", response_model=BookingOut, status_code=201)
@tracer.capture_method
def create_booking(
    desk_id: str,
    payload: BookingCreate,
    user_id: str = Depends(get_current_user_id),
    coordinator: RecurringBookingCoordinator = Depends(get_coordinator),
) -> BookingOut:
    try:
        booking = coordinator.create_booking(desk_id, user_id, payload.start_time, payload.end_time)
    except InvalidRange as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Desk not found") from exc
    except Conflict as exc:
        raise _conflict(exc) from exc
    metrics.add_metric(name="CreateBooking", value=1, unit=MetricUnit.Count)
    return BookingOut.from_booking(booking)


@app.post("/desks/{desk_id}/recurrence-bookings", response_model=list[BookingOut], status_code=201)
@tracer.capture_method
def create_recurring_booking(
    desk_id: str,
    payload: RecurringBookingCreate,
    user_id: str = Depends(get_current_user_id),
    coordinator: RecurringBookingCoordinator = Depends(get_coordinator),
) -> list[BookingOut]:
    try:
        first = ensure_range(payload.start_time, payload.end_time)
        spec = RecurrenceSpec(cadence=payload.cadence, occurrence_count=payload.occurrence_count, first_occurrence=first)
        bookings = coordinator.create_series(desk_id, user_id, spec)
    except (InvalidRange, InvalidRecurrence) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except NotFound as exc:
        raise HTTPException(status_code=404, detail="Desk not found") from exc
    except Conflict as exc:
        raise _conflict(exc) from exc
    metrics.add_metric(name="CreateRecurringBooking", value=1, unit=MetricUnit.Count)
    metrics.add_metric(name="RecurringOccurrences", value=len(bookings), unit=MetricUnit.Count)
    return [BookingOut.from_booking(b) for b in bookings]

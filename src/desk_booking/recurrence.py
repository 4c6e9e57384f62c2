from __future__ import annotations

from datetime import timedelta

from .errors import InvalidRecurrence
from .models import Cadence, RecurrenceSpec, TimeRange

# One step per supported cadence tag
_CADENCE_STEPS: dict[str, timedelta] = {
    Cadence.WEEKLY.value: timedelta(days=7),
}


def expand(spec: RecurrenceSpec, max_occurrences: int | None = None) -> list[TimeRange]:
    step = _CADENCE_STEPS.get(spec.cadence)
    if step is None:
        raise InvalidRecurrence(f"Unsupported cadence '{spec.cadence}': only weekly recurrence is supported")
    if spec.occurrence_count < 1:
        raise InvalidRecurrence("occurrence_count must be at least 1")
    if max_occurrences is not None and spec.occurrence_count > max_occurrences:
        raise InvalidRecurrence(f"occurrence_count must not exceed {max_occurrences}")

    first = spec.first_occurrence
    try:
        return [first.shift(step * i) for i in range(spec.occurrence_count)]
    except OverflowError as exc:
        raise InvalidRecurrence("Series extends past the supported date range") from exc

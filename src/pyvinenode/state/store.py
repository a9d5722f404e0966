"""In-memory reading store.

This is the only component allowed to merge converted readings.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime

from pyvinenode.models.reading import UNSET, Measurement, MeasurementReading, ReadingSnapshot


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReadingStore:
    """Latest-known reading per measurement.

    The store always holds exactly one entry per :class:`Measurement`.
    :meth:`merge` builds the next mapping off to the side and swaps it in
    with a single assignment, so :meth:`snapshot` observes either the state
    before a merge or the state after it.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._readings: dict[Measurement, MeasurementReading] = dict.fromkeys(Measurement, UNSET)
        self._updated_at: datetime | None = None

    def merge(self, updates: Mapping[Measurement, MeasurementReading]) -> None:
        """Apply *updates*; measurements not present keep their prior value."""
        if not updates:
            return

        now = self._clock()
        staged = dict(self._readings)
        for key, reading in updates.items():
            try:
                measurement = Measurement(key)
            except ValueError as exc:
                raise TypeError(f"not a measurement: {key!r}") from exc
            if not isinstance(reading, MeasurementReading):
                raise TypeError(f"{measurement.value}: expected MeasurementReading, got {type(reading).__name__}")
            if reading.observed_at is None and reading.is_set:
                reading = reading.model_copy(update={"observed_at": now})
            staged[measurement] = reading

        self._readings = staged
        self._updated_at = now

    def get(self, measurement: Measurement) -> MeasurementReading:
        return self._readings[Measurement(measurement)]

    def snapshot(self) -> ReadingSnapshot:
        """Return an immutable copy of the current state."""
        return ReadingSnapshot(readings=dict(self._readings), updated_at=self._updated_at)

    def reset(self) -> None:
        """Forget every reading and return to the all-unset state."""
        self._readings = dict.fromkeys(Measurement, UNSET)
        self._updated_at = None

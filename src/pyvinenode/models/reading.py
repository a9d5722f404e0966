"""Measurement readings and snapshots.

A :class:`MeasurementReading` carries the scaled numeric value together
with the unit suffix and display precision chosen by the field rule that
produced it.  The reading with ``value=None`` is the "unset" sentinel shown
before any successful decode.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from pydantic import Field, model_validator

from pyvinenode._constants import PLACEHOLDER
from pyvinenode.models._base import VineNodeModel


def format_natural(value: int | float) -> str:
    """Shortest round-trip digits, positional between 1e-6 and 1e21.

    Floats always keep a fractional part (``25.0``); ints render as-is.
    """
    if isinstance(value, int):
        return str(value)
    if value == 0 or not 1e-6 <= abs(value) < 1e21:
        return repr(value)
    text = format(Decimal(repr(value)), "f")
    return text if "." in text else f"{text}.0"


class Measurement(StrEnum):
    """Physical quantities reported by the node."""

    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    LEAF_WETNESS = "leafWetness"
    SKY_TEMP = "skyTemp"
    WIND_DIRECTION = "windDirection"
    WIND_SPEED = "windSpeed"


class MeasurementReading(VineNodeModel):
    """Latest display value of one measurement."""

    value: int | float | None = None
    unit: str = ""
    precision: int | None = Field(default=None, ge=0, description="Fixed decimals; None keeps the natural repr.")
    observed_at: datetime | None = Field(default=None, description="When the store accepted this reading.")

    @property
    def is_set(self) -> bool:
        return self.value is not None

    def display(self, placeholder: str = PLACEHOLDER) -> str:
        """Render ``<value><unit>``, or *placeholder* for the unset sentinel."""
        if self.value is None:
            return placeholder
        if self.precision is None:
            text = format_natural(self.value)
        else:
            text = f"{self.value:.{self.precision}f}"
        return f"{text}{self.unit}"

    def __str__(self) -> str:
        return self.display()


UNSET = MeasurementReading()
"""Sentinel reading used before the first successful decode."""


class ReadingSnapshot(VineNodeModel):
    """Latest reading for every :class:`Measurement`."""

    readings: dict[Measurement, MeasurementReading]
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _require_every_measurement(self) -> ReadingSnapshot:
        missing = set(Measurement) - set(self.readings)
        if missing:
            names = ", ".join(sorted(m.value for m in missing))
            raise ValueError(f"snapshot is missing measurements: {names}")
        return self

    @classmethod
    def unset(cls) -> ReadingSnapshot:
        return cls(readings=dict.fromkeys(Measurement, UNSET))

    def __getitem__(self, measurement: Measurement | str) -> MeasurementReading:
        return self.readings[Measurement(measurement)]

    def display(self, placeholder: str = PLACEHOLDER) -> dict[Measurement, str]:
        """Formatted text per measurement, in declaration order."""
        return {measurement: self.readings[measurement].display(placeholder) for measurement in Measurement}

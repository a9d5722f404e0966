"""Field code → measurement conversion.

Each recognized code carries a fixed-point integer.  A :class:`FieldRule`
says how to scale it and how to present the result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from pyvinenode.exceptions import NumericParseError
from pyvinenode.ingestion.normalize import parse_decimal, parse_integer
from pyvinenode.models.reading import Measurement, MeasurementReading

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FieldRule:
    """Conversion rule for one field code.

    ``divisor=None`` marks an integral field that is taken as-is.
    ``precision=None`` keeps the natural float representation.
    """

    code: str
    measurement: Measurement
    unit: str
    divisor: float | None = None
    precision: int | None = None

    def apply(self, raw_value: str) -> MeasurementReading:
        if self.divisor is None:
            value: int | float = parse_integer(self.code, raw_value)
        else:
            value = parse_decimal(self.code, raw_value) / self.divisor
        return MeasurementReading(value=value, unit=self.unit, precision=self.precision)


FIELD_RULES: dict[str, FieldRule] = {
    rule.code: rule
    for rule in (
        # AT = ambient temperature, AH = ambient humidity
        FieldRule("AT", Measurement.TEMPERATURE, "°C", divisor=100),
        FieldRule("AH", Measurement.HUMIDITY, "%", divisor=100),
        FieldRule("LW", Measurement.LEAF_WETNESS, "%", divisor=100, precision=1),
        # IC = infrared (sky) temperature, sent in tenths
        FieldRule("IC", Measurement.SKY_TEMP, "°C", divisor=10, precision=1),
        FieldRule("WD", Measurement.WIND_DIRECTION, "°"),
        FieldRule("WS", Measurement.WIND_SPEED, " m/s", divisor=100, precision=1),
    )
}

MEASUREMENT_CODES: dict[Measurement, str] = {rule.measurement: code for code, rule in FIELD_RULES.items()}


def convert(code: str, raw_value: str) -> MeasurementReading:
    """Convert one decoded field.

    Raises :class:`NumericParseError` when *raw_value* is not usable and
    :class:`ValueError` when *code* has no rule.
    """
    rule = FIELD_RULES.get(code)
    if rule is None:
        raise ValueError(f"unknown field code {code!r}")
    return rule.apply(raw_value)


def convert_fields(
    decoded: Mapping[str, str],
    *,
    on_error: Callable[[NumericParseError], None] | None = None,
) -> dict[Measurement, MeasurementReading]:
    """Convert every recognized field, skipping unknown codes and bad values."""
    readings: dict[Measurement, MeasurementReading] = {}
    for code, raw_value in decoded.items():
        rule = FIELD_RULES.get(code)
        if rule is None:
            _logger.debug("Ignoring unknown field code %r", code)
            continue
        try:
            readings[rule.measurement] = rule.apply(raw_value)
        except NumericParseError as exc:
            if on_error is not None:
                on_error(exc)
    return readings

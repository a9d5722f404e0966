"""Typed measurement models."""

from pyvinenode.models.reading import UNSET, Measurement, MeasurementReading, ReadingSnapshot

__all__ = [
    "UNSET",
    "Measurement",
    "MeasurementReading",
    "ReadingSnapshot",
]

"""Ingestion application helpers.

This module centralizes the synchronous half of a refresh cycle:

- decode the raw message into field codes
- convert recognized fields into readings
- merge the readings into a :class:`pyvinenode.state.store.ReadingStore`

Token and field errors are reported as they happen and collected on the
returned :class:`pyvinenode.state.events.RefreshOutcome`; they never
escape from here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pyvinenode.exceptions import VineNodeError
from pyvinenode.ingestion.decode import parse_message
from pyvinenode.ingestion.transform import FIELD_RULES, convert_fields
from pyvinenode.models.reading import Measurement, MeasurementReading
from pyvinenode.state.events import CycleStatus, RefreshOutcome
from pyvinenode.state.policy import report_error
from pyvinenode.state.store import ReadingStore

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConvertedMessage:
    """Readings extracted from one message, ready to merge."""

    readings: dict[Measurement, MeasurementReading]
    ignored_codes: tuple[str, ...] = ()
    field_errors: tuple[str, ...] = ()


def convert_message(raw: str, *, node_id: str) -> ConvertedMessage:
    """Decode and convert *raw* without touching any store."""
    field_errors: list[str] = []

    def _collect(exc: VineNodeError) -> None:
        report_error(_logger, exc, node_id=node_id)
        field_errors.append(str(exc))

    decoded = parse_message(raw, on_error=_collect)
    readings = convert_fields(decoded, on_error=_collect)
    return ConvertedMessage(
        readings=readings,
        ignored_codes=tuple(code for code in decoded if code not in FIELD_RULES),
        field_errors=tuple(field_errors),
    )


def merge_converted(store: ReadingStore, converted: ConvertedMessage, *, node_id: str) -> RefreshOutcome:
    """Merge *converted* into *store* and describe what happened."""
    if not converted.readings:
        _logger.debug("%s: message carried no usable fields", node_id)
        return RefreshOutcome(
            node_id=node_id,
            status=CycleStatus.NO_DATA,
            ignored_codes=converted.ignored_codes,
            field_errors=converted.field_errors,
        )

    store.merge(converted.readings)
    applied = tuple(converted.readings)
    _logger.debug("%s: applied %s", node_id, ", ".join(m.value for m in applied))
    return RefreshOutcome(
        node_id=node_id,
        status=CycleStatus.UPDATED,
        applied=applied,
        ignored_codes=converted.ignored_codes,
        field_errors=converted.field_errors,
    )


def apply_message_to_store(store: ReadingStore, raw: str, *, node_id: str) -> RefreshOutcome:
    """Decode, convert and merge *raw* in one synchronous step."""
    return merge_converted(store, convert_message(raw, node_id=node_id), node_id=node_id)

"""Refresh cycle outcomes.

Every refresh cycle, successful or not, ends in exactly one
:class:`RefreshOutcome`.  Outcomes are the observability surface of the
pipeline: consumers never see exceptions from a cycle, only these records.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from pyvinenode.models.reading import Measurement


class CycleStatus(StrEnum):
    UPDATED = "updated"
    NO_DATA = "no_data"
    FETCH_FAILED = "fetch_failed"
    SKIPPED = "skipped"
    ERROR = "error"


class RefreshOutcome(BaseModel):
    """Result of one fetch-decode-transform-merge cycle."""

    model_config = ConfigDict(frozen=True)

    node_id: str
    status: CycleStatus
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    applied: tuple[Measurement, ...] = Field(default=(), description="Measurements written to the store")
    ignored_codes: tuple[str, ...] = Field(default=(), description="Decoded codes with no field rule")
    field_errors: tuple[str, ...] = Field(default=(), description="Token/field-local errors, already reported")
    error: str | None = Field(default=None, description="Cycle-aborting error, if any")

    @property
    def store_changed(self) -> bool:
        return self.status == CycleStatus.UPDATED

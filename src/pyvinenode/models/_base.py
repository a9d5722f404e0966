"""Base model for pyvinenode value objects.

Every model inherits from :class:`VineNodeModel`, which makes instances
immutable and rejects unknown fields, so a reading handed to a consumer can
never be changed behind the store's back.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class VineNodeModel(BaseModel):
    """Frozen, strict-shape base model."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

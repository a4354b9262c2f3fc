"""Base model for aisview value records.

Every model is frozen (hashable, never mutated in place) and ignores
unknown keys so the feed server can add fields without breaking clients.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class AisBaseModel(BaseModel):
    """Base for immutable aisview records."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

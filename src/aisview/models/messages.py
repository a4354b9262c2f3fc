"""Wire message models for the feed protocol."""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import Field, field_validator

from aisview._constants import FEATURE_COLLECTION_TYPE, POINT_TYPE, SUBSCRIBE_TYPE
from aisview.models._base import AisBaseModel
from aisview.models.viewport import Viewport


class SubscriptionRequest(AisBaseModel):
    """Client → server request scoping the stream to a viewport.

    Created fresh for every (re)subscription.
    """

    type: Literal["subscribe"] = SUBSCRIBE_TYPE
    viewport: Viewport

    def to_wire(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "boundingBox": [list(corner) for corner in self.viewport.as_bounds()],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_wire(), separators=(",", ":"))


class PointGeometry(AisBaseModel):
    type: Literal["Point"] = POINT_TYPE
    coordinates: list[float] = Field(min_length=2)

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]


class Feature(AisBaseModel):
    id: str | int | None = None
    geometry: PointGeometry
    properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator("properties", mode="before")
    @classmethod
    def _null_properties(cls, value: Any) -> Any:
        return {} if value is None else value


class FeatureCollectionMessage(AisBaseModel):
    """Server → client entity snapshot."""

    type: Literal["FeatureCollection"] = FEATURE_COLLECTION_TYPE
    features: list[Feature]


class StatusMessage(AisBaseModel):
    """Server acknowledgement, e.g. ``{"status": "subscribed"}``."""

    status: str


class ErrorMessage(AisBaseModel):
    """Server rejection of a subscription request."""

    error: str


ServerMessage = FeatureCollectionMessage | StatusMessage | ErrorMessage

"""Target and snapshot models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from aisview._constants import FEATURE_COLLECTION_TYPE, FEATURE_TYPE, POINT_TYPE
from aisview.ingestion.normalize import normalize_heading
from aisview.models._base import AisBaseModel


class Target(AisBaseModel):
    """One tracked vessel.

    Parameters
    ----------
    target_id : str
        Stable identifier (GeoJSON feature ``id``, else the MMSI).
    longitude : float
        Longitude in degrees.
    latitude : float
        Latitude in degrees.
    heading : float or None
        True heading in degrees, ``None`` when the vessel does not report
        one (AIS value 511) or the value is out of range.
    mmsi : int or None
        Maritime Mobile Service Identity.
    name : str or None
        Ship name, when the server knows it.
    properties : dict
        Every display attribute sent by the server, unmodified.
    """

    target_id: str = Field(min_length=1)
    longitude: float = Field(ge=-180.0, le=180.0, allow_inf_nan=False)
    latitude: float = Field(ge=-90.0, le=90.0, allow_inf_nan=False)
    heading: float | None = None
    mmsi: int | None = None
    name: str | None = None
    properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator("heading", mode="before")
    @classmethod
    def _coerce_heading(cls, value: Any) -> float | None:
        return normalize_heading(value)

    def __hash__(self) -> int:
        return hash((self.target_id, self.longitude, self.latitude, self.heading))

    def to_feature(self) -> dict[str, Any]:
        """Return the target as a GeoJSON Point feature."""
        properties = dict(self.properties)
        if self.heading is not None:
            properties["heading"] = self.heading
        return {
            "type": FEATURE_TYPE,
            "id": self.target_id,
            "geometry": {"type": POINT_TYPE, "coordinates": [self.longitude, self.latitude]},
            "properties": properties,
        }


class Snapshot(AisBaseModel):
    """The complete set of live targets for the subscribed region.

    A snapshot always replaces the previous one; it is never merged.
    ``Snapshot.initial()`` stands for "no data yet" and is distinct from an
    empty snapshot received from the server.
    """

    targets: tuple[Target, ...] = ()
    generation: int | None = None
    received_at: datetime | None = None

    @classmethod
    def initial(cls) -> Snapshot:
        return cls()

    @property
    def is_initial(self) -> bool:
        return self.received_at is None

    def by_id(self) -> dict[str, Target]:
        return {target.target_id: target for target in self.targets}

    def to_feature_collection(self) -> dict[str, Any]:
        """Return the snapshot as a GeoJSON FeatureCollection for renderers."""
        return {
            "type": FEATURE_COLLECTION_TYPE,
            "features": [target.to_feature() for target in self.targets],
        }

"""FeatureCollection → Snapshot conversion."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import ValidationError

from aisview.exceptions import AisViewProtocolError
from aisview.ingestion.normalize import safe_int, safe_str
from aisview.models.messages import Feature, FeatureCollectionMessage
from aisview.models.target import Snapshot, Target


def _target_id(feature: Feature) -> str | None:
    if feature.id is not None:
        return safe_str(feature.id)
    return safe_str(feature.properties.get("mmsi"))


def target_from_feature(feature: Feature) -> Target:
    """Build a :class:`Target` from one Point feature.

    Raises
    ------
    AisViewProtocolError
        When the feature has no usable identifier or its position is out of
        range.
    """
    properties: dict[str, Any] = dict(feature.properties)
    target_id = _target_id(feature)
    if target_id is None:
        raise AisViewProtocolError("Feature has neither an id nor an mmsi property")
    try:
        return Target(
            target_id=target_id,
            longitude=feature.geometry.longitude,
            latitude=feature.geometry.latitude,
            heading=properties.get("heading"),
            mmsi=safe_int(properties.get("mmsi")),
            name=safe_str(properties.get("shipName")),
            properties=properties,
        )
    except ValidationError as exc:
        raise AisViewProtocolError(f"Invalid feature {target_id}: {exc.error_count()} validation error(s)") from exc


def snapshot_from_message(
    message: FeatureCollectionMessage,
    *,
    generation: int | None,
    received_at: datetime,
) -> Snapshot:
    """Convert a whole FeatureCollection; one bad feature rejects the message."""
    targets = tuple(target_from_feature(feature) for feature in message.features)
    return Snapshot(targets=targets, generation=generation, received_at=received_at)

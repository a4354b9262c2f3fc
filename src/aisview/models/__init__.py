"""Data models for the AIS feed."""

from aisview.models._base import AisBaseModel
from aisview.models.messages import (
    ErrorMessage,
    Feature,
    FeatureCollectionMessage,
    PointGeometry,
    ServerMessage,
    StatusMessage,
    SubscriptionRequest,
)
from aisview.models.target import Snapshot, Target
from aisview.models.viewport import Bounds, Coordinate, Viewport

__all__ = [
    "AisBaseModel",
    "Bounds",
    "Coordinate",
    "ErrorMessage",
    "Feature",
    "FeatureCollectionMessage",
    "PointGeometry",
    "ServerMessage",
    "Snapshot",
    "StatusMessage",
    "SubscriptionRequest",
    "Target",
    "Viewport",
]

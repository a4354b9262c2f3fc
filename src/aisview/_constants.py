"""Protocol constants shared across aisview modules."""

from __future__ import annotations

DEFAULT_FEED_URL = "ws://localhost:8080/ais"

# [[lon, lat], [lon, lat]] as first reported by the map at startup.
DEFAULT_BOUNDS: tuple[tuple[float, float], tuple[float, float]] = ((-72.0, 44.0), (-68.0, 38.0))

SUBSCRIBE_TYPE = "subscribe"
FEATURE_COLLECTION_TYPE = "FeatureCollection"
FEATURE_TYPE = "Feature"
POINT_TYPE = "Point"

# AIS TrueHeading value meaning "not available".
HEADING_NOT_AVAILABLE = 511

# WebSocket close codes (RFC 6455).
CLOSE_NORMAL = 1000
CLOSE_ABNORMAL = 1006

# Query-string keys that are masked when a feed URL is logged.
SENSITIVE_QUERY_KEYS: frozenset[str] = frozenset(
    {
        "token",
        "access_token",
        "apikey",
        "api_key",
        "key",
        "password",
        "secret",
    }
)

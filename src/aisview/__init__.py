"""aisview - Viewport-driven live AIS target subscription client."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("aisview")
except PackageNotFoundError:
    __version__ = "0+local"
from aisview._transport import AiohttpConnector, Connector, FeedConnection
from aisview.client import SubscriptionClient
from aisview.config import AisViewConfig
from aisview.exceptions import (
    AisViewConfigError,
    AisViewError,
    AisViewProtocolError,
    AisViewTransportError,
    IllegalStateError,
    ViewportError,
)
from aisview.models import (
    Coordinate,
    Snapshot,
    SubscriptionRequest,
    Target,
    Viewport,
)
from aisview.state.connection import ConnectionState, ConnectionStateMachine
from aisview.state.events import ClientEvent, ClientEventKind
from aisview.state.store import TargetStore
from aisview.tracker import ViewportTracker
from aisview.viewer import AisViewer

__all__ = [
    "__version__",
    "AiohttpConnector",
    "AisViewConfig",
    "AisViewConfigError",
    "AisViewError",
    "AisViewProtocolError",
    "AisViewTransportError",
    "AisViewer",
    "ClientEvent",
    "ClientEventKind",
    "ConnectionState",
    "ConnectionStateMachine",
    "Connector",
    "Coordinate",
    "FeedConnection",
    "IllegalStateError",
    "Snapshot",
    "SubscriptionClient",
    "SubscriptionRequest",
    "Target",
    "TargetStore",
    "ViewportError",
    "ViewportTracker",
    "Viewport",
]

"""Application-session facade wiring tracker, client and store together."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

import aiohttp

from aisview._transport import AiohttpConnector, Connector
from aisview.client import EventObserver, SubscriptionClient
from aisview.config import AisViewConfig
from aisview.exceptions import AisViewError
from aisview.models.target import Snapshot
from aisview.models.viewport import Viewport
from aisview.state.connection import ConnectionState
from aisview.state.store import SnapshotListener, TargetStore
from aisview.tracker import ViewportTracker

_logger = logging.getLogger(__name__)


class AisViewer:
    """Live AIS targets for whatever part of the map is visible.

    The rendering layer reports settled viewports with :meth:`report` and
    draws :meth:`current`.  Everything the session needs (feed URL,
    startup region, timeouts) comes from the :class:`AisViewConfig` passed
    in; nothing is process-global.

    Usage::

        async with AisViewer(config) as viewer:
            viewer.add_snapshot_listener(redraw)
            ...
            viewer.report([[-71.0, 42.0], [-69.0, 39.0]])
    """

    def __init__(
        self,
        config: AisViewConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        connector: Connector | None = None,
        on_event: EventObserver | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._connector = connector
        self._on_event = on_event
        self._store = TargetStore()
        self._tracker: ViewportTracker | None = None
        self._client: SubscriptionClient | None = None
        self._remove_tracker_listener: Callable[[], None] | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> AisViewer:
        await self.open()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def open(self) -> None:
        """Create the connection machinery and start the first subscription."""
        if self._client is not None:
            raise AisViewError("AisViewer already opened")
        connector = self._connector
        if connector is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            connector = AiohttpConnector(self._http_session, heartbeat=self._config.heartbeat)

        initial = self._config.initial_viewport
        self._tracker = ViewportTracker(initial, min_report_interval=self._config.min_report_interval)
        self._client = SubscriptionClient(self._config, self._store, connector, observer=self._on_event)
        self._remove_tracker_listener = self._tracker.add_listener(self._client.on_viewport_changed)
        _logger.debug("AisViewer opened viewport=%s", initial)
        self._client.start(initial)

    async def stop(self) -> None:
        """Tear down the subscription and release the HTTP session."""
        if self._remove_tracker_listener is not None:
            self._remove_tracker_listener()
            self._remove_tracker_listener = None
        if self._tracker is not None:
            self._tracker.close()
        if self._client is not None:
            await self._client.stop()
            _logger.debug("AisViewer stopped")
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Rendering-layer interface
    # ------------------------------------------------------------------

    def report(self, viewport: Viewport | Sequence[Sequence[float]]) -> bool:
        """Report the settled visible region; see :meth:`ViewportTracker.report`."""
        return self._require_tracker().report(viewport)

    def current(self) -> Snapshot:
        return self._store.current()

    def add_snapshot_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        return self._store.add_listener(listener)

    @property
    def store(self) -> TargetStore:
        return self._store

    @property
    def client(self) -> SubscriptionClient:
        if self._client is None:
            raise AisViewError("AisViewer not opened. Use 'async with AisViewer(...) as viewer:'")
        return self._client

    @property
    def state(self) -> ConnectionState:
        if self._client is None:
            return ConnectionState.IDLE
        return self._client.state

    @property
    def viewport(self) -> Viewport:
        if self._tracker is None:
            return self._config.initial_viewport
        return self._tracker.current

    def _require_tracker(self) -> ViewportTracker:
        if self._tracker is None:
            raise AisViewError("AisViewer not opened. Use 'async with AisViewer(...) as viewer:'")
        return self._tracker

"""Viewport change detection.

The map reports its visible bounds every time it settles, often with the
same bounds as before.  :class:`ViewportTracker` validates those reports,
drops the ones that did not move, and optionally coalesces bursts so a
resubscription happens at most once per ``min_report_interval``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from typing import Any

from aisview.exceptions import ViewportError
from aisview.models.viewport import Viewport

_logger = logging.getLogger(__name__)

ViewportListener = Callable[[Viewport], None]


class ViewportTracker:
    """Tracks the last accepted viewport and emits ``viewport-changed``.

    Parameters
    ----------
    initial : Viewport
        Region in effect before the map reports anything.
    min_report_interval : float
        Minimum seconds between two emitted changes.  A change arriving
        sooner is held and emitted when the interval has passed; a newer
        change replaces a held one.
    loop : asyncio.AbstractEventLoop or None
        Loop used to schedule held changes.  Defaults to the running loop;
        without one, throttled changes wait for :meth:`flush`.
    clock : callable
        Monotonic clock in seconds.
    """

    def __init__(
        self,
        initial: Viewport,
        *,
        min_report_interval: float = 0.0,
        loop: asyncio.AbstractEventLoop | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._current = initial
        self._min_interval = min_report_interval
        self._loop = loop
        self._clock = clock
        self._listeners: list[ViewportListener] = []
        self._last_emit_at: float | None = None
        self._pending: Viewport | None = None
        self._pending_handle: asyncio.TimerHandle | None = None

    @property
    def current(self) -> Viewport:
        """The last accepted viewport (including a held, not yet emitted one)."""
        return self._pending if self._pending is not None else self._current

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def add_listener(self, listener: ViewportListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def report(self, candidate: Viewport | Sequence[Sequence[float]] | Any) -> bool:
        """Accept a settled viewport from the map.

        Returns ``True`` when the candidate was accepted as a change
        (emitted now or held for the trailing edge), ``False`` when it was
        invalid or equal to the current viewport.
        """
        try:
            viewport = Viewport.from_bounds(candidate)
        except ViewportError as exc:
            _logger.warning("Rejected viewport report, keeping %s: %s", self.current, exc)
            return False

        if viewport.same_region(self.current):
            _logger.debug("Viewport unchanged: %s", viewport)
            return False

        now = self._clock()
        if self._min_interval > 0 and self._last_emit_at is not None:
            remaining = self._min_interval - (now - self._last_emit_at)
            if remaining > 0:
                self._hold(viewport, remaining)
                return True

        self._cancel_pending()
        self._emit(viewport, now)
        return True

    def flush(self) -> bool:
        """Emit a held viewport immediately. Returns whether one was held."""
        pending = self._pending
        self._cancel_pending()
        if pending is None:
            return False
        if pending.same_region(self._current):
            return False
        self._emit(pending, self._clock())
        return True

    def close(self) -> None:
        """Drop any held viewport and its timer."""
        self._cancel_pending()
        self._listeners.clear()

    def _hold(self, viewport: Viewport, delay: float) -> None:
        self._pending = viewport
        _logger.debug("Viewport change held for %.3fs: %s", delay, viewport)
        if self._pending_handle is not None:
            return
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
        self._pending_handle = loop.call_later(delay, self._on_pending_due)

    def _on_pending_due(self) -> None:
        self._pending_handle = None
        self.flush()

    def _cancel_pending(self) -> None:
        self._pending = None
        if self._pending_handle is not None:
            self._pending_handle.cancel()
            self._pending_handle = None

    def _emit(self, viewport: Viewport, now: float) -> None:
        self._current = viewport
        self._last_emit_at = now
        _logger.info("Viewport changed: %s", viewport)
        for listener in list(self._listeners):
            try:
                listener(viewport)
            except Exception:
                _logger.warning("Viewport listener %r failed", listener, exc_info=True)

"""In-memory holder of the latest target snapshot.

This is the only component that keeps decoded targets; renderers read it
through :meth:`TargetStore.current` and listen for replacements.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from aisview.models.target import Snapshot

_logger = logging.getLogger(__name__)

SnapshotListener = Callable[[Snapshot], None]


class TargetStore:
    """Holds one :class:`Snapshot` and replaces it wholesale on every update."""

    def __init__(self) -> None:
        self._snapshot = Snapshot.initial()
        self._listeners: list[SnapshotListener] = []

    def current(self) -> Snapshot:
        """Latest snapshot, or the initial one before any data arrived."""
        return self._snapshot

    @property
    def has_data(self) -> bool:
        return not self._snapshot.is_initial

    def apply(self, snapshot: Snapshot) -> None:
        """Replace the held snapshot and notify listeners."""
        self._snapshot = snapshot
        self._notify(snapshot)

    def clear(self) -> None:
        """Return to the initial "no data yet" snapshot."""
        if self._snapshot.is_initial:
            return
        self._snapshot = Snapshot.initial()
        self._notify(self._snapshot)

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self, snapshot: Snapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _logger.warning("Snapshot listener %r failed", listener, exc_info=True)

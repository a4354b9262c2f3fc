"""Custom exception hierarchy for aisview."""

from __future__ import annotations


class AisViewError(Exception):
    """Base exception for all aisview errors."""


class AisViewConfigError(AisViewError):
    """Invalid or missing configuration."""


class ViewportError(AisViewError, ValueError):
    """Bounds that cannot form a valid viewport (inverted, degenerate, out of range)."""


class AisViewTransportError(AisViewError):
    """WebSocket-level failure (connect failure, timeout, mid-stream error)."""

    def __init__(
        self,
        message: str,
        *,
        close_code: int | None = None,
        url: str = "",
    ) -> None:
        self.close_code = close_code
        self.url = url
        super().__init__(message)


class AisViewProtocolError(AisViewError):
    """Server message that could not be decoded or is missing required fields."""

    def __init__(self, message: str, *, payload: str = "") -> None:
        self.payload = payload
        super().__init__(message)


class IllegalStateError(AisViewError):
    """A connection state transition or event that the state machine does not allow.

    Raised by :class:`aisview.state.connection.ConnectionStateMachine`.  The
    subscription client catches it at the socket-callback boundary, so it
    never escapes into the event loop.
    """

    def __init__(self, message: str, *, state: str = "", target: str = "") -> None:
        self.state = state
        self.target = target
        super().__init__(message)

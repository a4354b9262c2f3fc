"""Connection state machine for the subscription client.

States and the transitions between them are explicit so that an event
arriving in the wrong state is an error that can be detected and tested,
not something silently tolerated.
"""

from __future__ import annotations

from enum import StrEnum

from aisview.exceptions import IllegalStateError


class ConnectionState(StrEnum):
    IDLE = "idle"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    CLOSING = "closing"
    CLOSED = "closed"
    ERRORED = "errored"


_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.IDLE: frozenset({ConnectionState.CONNECTING, ConnectionState.CLOSING}),
    ConnectionState.CONNECTING: frozenset(
        {ConnectionState.SUBSCRIBED, ConnectionState.ERRORED, ConnectionState.CLOSING}
    ),
    ConnectionState.SUBSCRIBED: frozenset({ConnectionState.CLOSING, ConnectionState.ERRORED}),
    ConnectionState.CLOSING: frozenset({ConnectionState.IDLE, ConnectionState.CLOSED}),
    # Errored only leaves through a reconnect attempt or an explicit teardown.
    ConnectionState.ERRORED: frozenset({ConnectionState.CONNECTING, ConnectionState.CLOSING}),
    ConnectionState.CLOSED: frozenset(),
}


def allowed_transitions(state: ConnectionState) -> frozenset[ConnectionState]:
    return _TRANSITIONS[state]


class ConnectionStateMachine:
    """Current :class:`ConnectionState` plus the rules for changing it."""

    def __init__(self, initial: ConnectionState = ConnectionState.IDLE) -> None:
        self._state = initial

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self._state]

    def can_transition(self, target: ConnectionState) -> bool:
        return target in _TRANSITIONS[self._state]

    def transition(self, target: ConnectionState) -> ConnectionState:
        """Move to *target* and return the previous state.

        Raises
        ------
        IllegalStateError
            When *target* is not reachable from the current state.
        """
        if target not in _TRANSITIONS[self._state]:
            raise IllegalStateError(
                f"Illegal connection transition {self._state} -> {target}",
                state=self._state,
                target=target,
            )
        previous = self._state
        self._state = target
        return previous

    def require_subscribed(self, event: str) -> None:
        """Raise unless the connection is subscribed, i.e. may deliver *event*."""
        if self._state is not ConnectionState.SUBSCRIBED:
            raise IllegalStateError(
                f"{event} received in state {self._state}",
                state=self._state,
                target=event,
            )

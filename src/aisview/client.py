"""Viewport-scoped live subscription client.

Owns one WebSocket subscription at a time.  Every connection attempt gets a
new generation number; events and messages tagged with an older generation
are dropped, so a superseded connection can never update the target store.

Changing the viewport cancels the current attempt, closes its socket and
only then opens a new one carrying the new bounds.  Unexpected closes and
transport errors are retried with bounded exponential backoff using the
last known viewport.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from aisview._constants import CLOSE_NORMAL
from aisview._protocol import decode_server_message, encode_subscription
from aisview._redact import redact_url, truncate_for_log
from aisview._transport import Connector, FeedConnection
from aisview.config import AisViewConfig
from aisview.exceptions import AisViewProtocolError, AisViewTransportError, IllegalStateError
from aisview.ingestion.features import snapshot_from_message
from aisview.models.messages import ErrorMessage, StatusMessage
from aisview.models.viewport import Viewport
from aisview.state.connection import ConnectionState, ConnectionStateMachine
from aisview.state.events import ClientEvent, ClientEventKind
from aisview.state.store import TargetStore

_logger = logging.getLogger(__name__)

EventObserver = Callable[[ClientEvent], None]

_EVENT_LOG_LEVELS: dict[ClientEventKind, int] = {
    ClientEventKind.OPENED: logging.INFO,
    ClientEventKind.SUBSCRIBED: logging.INFO,
    ClientEventKind.ACKNOWLEDGED: logging.DEBUG,
    ClientEventKind.SNAPSHOT: logging.DEBUG,
    ClientEventKind.PROTOCOL_ERROR: logging.WARNING,
    ClientEventKind.SERVER_ERROR: logging.WARNING,
    ClientEventKind.ERROR: logging.WARNING,
    ClientEventKind.CLOSED: logging.INFO,
    ClientEventKind.RECONNECT_SCHEDULED: logging.INFO,
    ClientEventKind.PERSISTENT_FAILURE: logging.ERROR,
    ClientEventKind.STOPPED: logging.INFO,
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SubscriptionClient:
    """Keeps one live feed subscription matching the current viewport.

    All methods must be called from the event loop thread.  ``start`` and
    the ``on_*`` callbacks never block; ``stop`` awaits the teardown.

    Usage::

        client = SubscriptionClient(config, store, connector)
        client.start(config.initial_viewport)
        ...
        client.on_viewport_changed(new_viewport)
        ...
        await client.stop()
    """

    def __init__(
        self,
        config: AisViewConfig,
        store: TargetStore,
        connector: Connector,
        *,
        observer: EventObserver | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._store = store
        self._connector = connector
        self._observer = observer
        self._clock = clock
        self._machine = ConnectionStateMachine()
        self._generation = 0
        self._viewport = config.initial_viewport
        self._started = False
        self._stopping: asyncio.Future[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._connection: FeedConnection | None = None
        self._attempts = 0
        self._state_waiters: list[tuple[ConnectionState, asyncio.Future[None]]] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._machine.state

    @property
    def generation(self) -> int:
        """Generation of the newest connection attempt."""
        return self._generation

    @property
    def viewport(self) -> Viewport:
        """Last known viewport; every (re)subscription uses it."""
        return self._viewport

    @property
    def reconnect_attempts(self) -> int:
        """Consecutive failed attempts since the last healthy subscription."""
        return self._attempts

    @property
    def connection(self) -> FeedConnection | None:
        return self._connection

    async def wait_for_state(self, state: ConnectionState, timeout: float | None = None) -> None:
        """Wait until the client enters *state* (returns at once if already there).

        Raises
        ------
        IllegalStateError
            When the client is stopped before reaching *state*.
        """
        if self._machine.state is state:
            return
        if self._machine.is_terminal or (self._stopping is not None and state is not ConnectionState.CLOSED):
            raise IllegalStateError(f"Client stopped before reaching state {state}", state=self.state, target=state)
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        entry = (state, waiter)
        self._state_waiters.append(entry)
        try:
            await asyncio.wait_for(waiter, timeout)
        finally:
            if entry in self._state_waiters:
                self._state_waiters.remove(entry)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, initial_viewport: Viewport | None = None) -> None:
        """Open the first connection and subscribe to *initial_viewport*.

        Raises
        ------
        IllegalStateError
            When the client was already started or has been stopped.
        """
        if self._started or self._machine.is_terminal:
            raise IllegalStateError(f"Client cannot start in state {self.state}", state=self.state)
        if initial_viewport is not None:
            self._viewport = initial_viewport
        self._started = True
        _logger.info("Starting feed subscription url=%s viewport=%s", redact_url(self._config.url), self._viewport)
        self._transition(ConnectionState.CONNECTING)
        self._open(self._next_generation())

    async def stop(self) -> None:
        """Close the connection for good; no reconnection follows."""
        if self._machine.is_terminal:
            return
        if self._stopping is not None:
            await asyncio.shield(self._stopping)
            return
        self._stopping = asyncio.get_running_loop().create_future()
        try:
            self._next_generation()
            if self.state is not ConnectionState.CLOSING:
                self._transition(ConnectionState.CLOSING)
            current = asyncio.current_task()
            pending = [task for task in self._tasks if task is not current and not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.wait(pending)
            self._transition(ConnectionState.CLOSED)
            self._emit(ClientEventKind.STOPPED, close_code=CLOSE_NORMAL, expected=True)
        finally:
            self._stopping.set_result(None)
            for wanted, waiter in self._state_waiters:
                if not waiter.done():
                    waiter.set_exception(
                        IllegalStateError(
                            f"Client stopped before reaching state {wanted}",
                            state=self.state,
                            target=wanted,
                        )
                    )

    # ------------------------------------------------------------------
    # Viewport
    # ------------------------------------------------------------------

    def on_viewport_changed(self, viewport: Viewport) -> None:
        """Re-scope the subscription by closing the connection and opening a new one."""
        if self._machine.is_terminal or self._stopping is not None:
            _logger.debug("Viewport change ignored after stop: %s", viewport)
            return

        self._viewport = viewport
        if not self._started:
            _logger.debug("Viewport recorded before start: %s", viewport)
            return

        generation = self._next_generation()
        self._attempts = 0
        if self.state is not ConnectionState.CLOSING:
            self._transition(ConnectionState.CLOSING)
        _logger.debug("Resubscribing generation=%s viewport=%s", generation, viewport)
        self._open(generation, teardown=True)

    # ------------------------------------------------------------------
    # Socket callbacks
    # ------------------------------------------------------------------

    def on_message(self, raw: str | bytes, generation: int | None = None) -> bool:
        """Handle one server payload; returns whether a snapshot was applied.

        Payloads from a superseded generation, undecodable payloads and
        unknown message kinds are dropped without touching the connection
        state or the store.
        """
        generation = self._generation if generation is None else generation
        if generation != self._generation:
            _logger.debug("Dropping message from stale generation=%s (current=%s)", generation, self._generation)
            return False

        try:
            self._machine.require_subscribed("message")
        except IllegalStateError as exc:
            _logger.warning("Dropping message: %s", exc)
            return False

        try:
            message = decode_server_message(raw)
            if message is None:
                return False
            if isinstance(message, StatusMessage):
                self._attempts = 0
                self._emit(ClientEventKind.ACKNOWLEDGED, message=message.status)
                return False
            if isinstance(message, ErrorMessage):
                self._emit(ClientEventKind.SERVER_ERROR, message=message.error)
                return False
            if self._config.log_payloads:
                _logger.debug("FeatureCollection payload: %s", truncate_for_log(message.model_dump()))
            snapshot = snapshot_from_message(message, generation=generation, received_at=self._clock())
        except AisViewProtocolError as exc:
            self._emit(ClientEventKind.PROTOCOL_ERROR, message=f"{exc} payload={exc.payload!r}")
            return False

        self._store.apply(snapshot)
        self._attempts = 0
        self._emit(ClientEventKind.SNAPSHOT, target_count=len(snapshot.targets))
        return True

    def on_error(self, err: BaseException, generation: int | None = None) -> None:
        """Handle a transport failure of the current connection."""
        generation = self._generation if generation is None else generation
        if generation != self._generation:
            _logger.debug("Ignoring error from stale generation=%s: %s", generation, err)
            return
        if self.state not in (ConnectionState.CONNECTING, ConnectionState.SUBSCRIBED):
            _logger.debug("Ignoring error in state %s: %s", self.state, err)
            return

        self._transition(ConnectionState.ERRORED)
        self._emit(
            ClientEventKind.ERROR,
            message=str(err) or type(err).__name__,
            close_code=getattr(err, "close_code", None),
        )
        self._schedule_reconnect()

    def on_close(self, code: int | None, reason: str = "", generation: int | None = None) -> None:
        """Handle the server closing the current connection."""
        generation = self._generation if generation is None else generation
        if generation != self._generation:
            _logger.debug("Ignoring close from stale generation=%s code=%s", generation, code)
            return
        if self.state not in (ConnectionState.CONNECTING, ConnectionState.SUBSCRIBED):
            _logger.debug("Ignoring close in state %s code=%s", self.state, code)
            return

        self._transition(ConnectionState.ERRORED)
        self._emit(ClientEventKind.CLOSED, close_code=code, message=reason, expected=False)
        self._schedule_reconnect()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _transition(self, target: ConnectionState) -> None:
        previous = self._machine.transition(target)
        _logger.debug("Connection state %s -> %s (generation=%s)", previous, target, self._generation)
        remaining: list[tuple[ConnectionState, asyncio.Future[None]]] = []
        for entry in self._state_waiters:
            state, waiter = entry
            if state is target:
                if not waiter.done():
                    waiter.set_result(None)
            else:
                remaining.append(entry)
        self._state_waiters = remaining

    def _emit(self, kind: ClientEventKind, **fields: Any) -> None:
        event = ClientEvent(
            kind=kind,
            generation=self._generation,
            state=self.state,
            viewport=self._viewport,
            **fields,
        )
        level = _EVENT_LOG_LEVELS[kind]
        if kind is ClientEventKind.CLOSED and event.expected:
            level = logging.DEBUG
        _logger.log(
            level,
            "Feed %s generation=%s state=%s%s",
            kind,
            event.generation,
            event.state,
            f" {event.message}" if event.message else "",
        )
        if self._observer is None:
            return
        try:
            self._observer(event)
        except Exception:
            _logger.warning("Event observer failed for %s", kind, exc_info=True)

    def _schedule_reconnect(self) -> None:
        self._attempts += 1
        if self._attempts > self._config.reconnect_max_attempts:
            self._emit(
                ClientEventKind.PERSISTENT_FAILURE,
                attempt=self._attempts - 1,
                message=f"giving up after {self._attempts - 1} reconnect attempt(s)",
            )
            return
        delay = self._config.reconnect_delay(self._attempts)
        generation = self._next_generation()
        self._emit(ClientEventKind.RECONNECT_SCHEDULED, attempt=self._attempts, delay=delay)
        self._open(generation, delay=delay)

    def _open(self, generation: int, *, delay: float = 0.0, teardown: bool = False) -> None:
        current = asyncio.current_task()
        previous = [task for task in self._tasks if task is not current and not task.done()]
        if current is not None and current in self._tasks:
            previous.append(current)
        task = asyncio.get_running_loop().create_task(
            self._run(generation, self._viewport, previous, delay=delay, teardown=teardown),
            name=f"aisview-connection-{generation}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        for old in previous:
            # A reconnect scheduled from inside the failing task lets it finish
            # closing its socket; a viewport change interrupts it.
            if old is not current or teardown:
                old.cancel()

    async def _run(
        self,
        generation: int,
        viewport: Viewport,
        previous: list[asyncio.Task[None]],
        *,
        delay: float,
        teardown: bool,
    ) -> None:
        # Earlier attempts close their sockets on the way out; wait for that
        # so at most one connection is ever open.
        if previous:
            await asyncio.wait(previous)
        if generation != self._generation:
            return

        if teardown:
            self._transition(ConnectionState.IDLE)
            self._emit(ClientEventKind.CLOSED, close_code=CLOSE_NORMAL, message="viewport changed", expected=True)
        if delay > 0:
            await asyncio.sleep(delay)
            if generation != self._generation:
                return

        if self.state is not ConnectionState.CONNECTING:
            self._transition(ConnectionState.CONNECTING)
        connection: FeedConnection | None = None
        try:
            try:
                connection = await asyncio.wait_for(
                    self._connector.connect(self._config.url),
                    self._config.connect_timeout,
                )
            except TimeoutError as exc:
                raise AisViewTransportError(
                    f"Connect to {redact_url(self._config.url)} timed out after {self._config.connect_timeout}s",
                    url=self._config.url,
                ) from exc
            if generation != self._generation:
                return

            self._connection = connection
            self._emit(ClientEventKind.OPENED)
            await connection.send_str(encode_subscription(viewport))
            if generation != self._generation:
                return
            self._transition(ConnectionState.SUBSCRIBED)
            self._emit(ClientEventKind.SUBSCRIBED)

            while True:
                raw = await connection.receive()
                if raw is None:
                    break
                self.on_message(raw, generation=generation)
        except (AisViewTransportError, OSError) as exc:
            self.on_error(exc, generation=generation)
        except Exception as exc:
            _logger.error("Unexpected failure on feed connection generation=%s", generation, exc_info=True)
            self.on_error(exc, generation=generation)
        else:
            self.on_close(connection.close_code, connection.close_reason, generation=generation)
        finally:
            if connection is not None:
                if self._connection is connection:
                    self._connection = None
                try:
                    await connection.close()
                except Exception:
                    _logger.debug("Feed connection close failed", exc_info=True)

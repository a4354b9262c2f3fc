"""WebSocket transport for the feed connection."""

from __future__ import annotations

import logging
from typing import Protocol

import aiohttp

from aisview._constants import CLOSE_ABNORMAL, CLOSE_NORMAL
from aisview._redact import redact_url
from aisview.exceptions import AisViewTransportError

_logger = logging.getLogger(__name__)


class FeedConnection(Protocol):
    """One open streaming connection to the feed server.

    ``receive`` returns the next text payload, or ``None`` once the server
    closed the connection; ``close_code`` and ``close_reason`` are set at
    that point.  Transport failures raise :class:`AisViewTransportError`.
    """

    close_code: int | None
    close_reason: str

    async def send_str(self, data: str) -> None: ...

    async def receive(self) -> str | None: ...

    async def close(self) -> None: ...


class Connector(Protocol):
    """Opens feed connections.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (:class:`AiohttpConnector`) concrete.
    """

    async def connect(self, url: str) -> FeedConnection: ...


class AiohttpFeedConnection:
    """:class:`FeedConnection` over an aiohttp client WebSocket."""

    def __init__(self, ws: aiohttp.ClientWebSocketResponse, url: str) -> None:
        self._ws = ws
        self._url = url
        self.close_code: int | None = None
        self.close_reason: str = ""

    async def send_str(self, data: str) -> None:
        try:
            await self._ws.send_str(data)
        except (aiohttp.ClientError, ConnectionResetError) as exc:
            raise AisViewTransportError(
                f"Send to {redact_url(self._url)} failed: {exc}",
                url=self._url,
            ) from exc

    async def receive(self) -> str | None:
        while True:
            msg = await self._ws.receive()
            if msg.type is aiohttp.WSMsgType.TEXT:
                return str(msg.data)
            if msg.type is aiohttp.WSMsgType.BINARY:
                return bytes(msg.data).decode("utf-8", errors="replace")
            if msg.type is aiohttp.WSMsgType.ERROR:
                raise AisViewTransportError(
                    f"WebSocket error from {redact_url(self._url)}: {self._ws.exception()}",
                    close_code=self._ws.close_code,
                    url=self._url,
                )
            if msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
                self.close_code = self._ws.close_code
                if msg.type is aiohttp.WSMsgType.CLOSE:
                    if self.close_code is None and isinstance(msg.data, int):
                        self.close_code = msg.data
                    if isinstance(msg.extra, str):
                        self.close_reason = msg.extra
                if self.close_code is None:
                    self.close_code = CLOSE_ABNORMAL
                return None
            _logger.debug("Skipping WebSocket frame type=%s", msg.type)

    async def close(self) -> None:
        if self._ws.closed:
            return
        await self._ws.close(code=CLOSE_NORMAL)


class AiohttpConnector:
    """:class:`Connector` backed by an ``aiohttp.ClientSession``."""

    def __init__(self, session: aiohttp.ClientSession, *, heartbeat: float | None = None) -> None:
        self._session = session
        self._heartbeat = heartbeat

    async def connect(self, url: str) -> AiohttpFeedConnection:
        _logger.debug("WebSocket connect %s", redact_url(url))
        try:
            ws = await self._session.ws_connect(url, heartbeat=self._heartbeat, autoping=True)
        except aiohttp.WSServerHandshakeError as exc:
            raise AisViewTransportError(
                f"Handshake with {redact_url(url)} failed: HTTP {exc.status}",
                url=url,
            ) from exc
        except (aiohttp.ClientError, OSError) as exc:
            raise AisViewTransportError(
                f"Connect to {redact_url(url)} failed: {exc}",
                url=url,
            ) from exc
        return AiohttpFeedConnection(ws, url)

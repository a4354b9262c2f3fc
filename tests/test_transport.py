from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import aiohttp
import pytest

from aisview._transport import AiohttpConnector, AiohttpFeedConnection
from aisview.exceptions import AisViewTransportError


@dataclass(frozen=True)
class _Frame:
    type: aiohttp.WSMsgType
    data: Any = None
    extra: Any = None


class _StubWebSocket:
    def __init__(self, *messages: _Frame, close_code: int | None = None) -> None:
        self._messages = list(messages)
        self.close_code = close_code
        self.closed = False
        self.sent: list[str] = []
        self.closed_with: int | None = None

    async def receive(self) -> _Frame:
        return self._messages.pop(0)

    async def send_str(self, data: str) -> None:
        self.sent.append(data)

    async def close(self, *, code: int) -> None:
        self.closed = True
        self.closed_with = code

    def exception(self) -> BaseException | None:
        return ConnectionResetError("peer reset")


class _FailingSession:
    async def ws_connect(self, url: str, **kwargs: Any) -> Any:
        raise aiohttp.ClientConnectionError("connection refused")


@pytest.mark.asyncio
async def test_text_binary_and_close_frames() -> None:
    ws = _StubWebSocket(
        _Frame(aiohttp.WSMsgType.PING, b""),
        _Frame(aiohttp.WSMsgType.TEXT, '{"status":"subscribed"}'),
        _Frame(aiohttp.WSMsgType.BINARY, b'{"type":"FeatureCollection","features":[]}'),
        _Frame(aiohttp.WSMsgType.CLOSE, 1001, "server restart"),
    )
    connection = AiohttpFeedConnection(ws, "ws://feed.test/ais")  # type: ignore[arg-type]

    assert await connection.receive() == '{"status":"subscribed"}'
    assert await connection.receive() == '{"type":"FeatureCollection","features":[]}'
    assert await connection.receive() is None
    assert connection.close_code == 1001
    assert connection.close_reason == "server restart"


@pytest.mark.asyncio
async def test_closed_without_code_reports_abnormal_closure() -> None:
    ws = _StubWebSocket(_Frame(aiohttp.WSMsgType.CLOSED))
    connection = AiohttpFeedConnection(ws, "ws://feed.test/ais")  # type: ignore[arg-type]

    assert await connection.receive() is None
    assert connection.close_code == 1006


@pytest.mark.asyncio
async def test_error_frame_raises_transport_error() -> None:
    ws = _StubWebSocket(_Frame(aiohttp.WSMsgType.ERROR), close_code=1006)
    connection = AiohttpFeedConnection(ws, "ws://feed.test/ais?token=SECRET")  # type: ignore[arg-type]

    with pytest.raises(AisViewTransportError) as excinfo:
        await connection.receive()

    assert excinfo.value.close_code == 1006
    assert "SECRET" not in str(excinfo.value)


@pytest.mark.asyncio
async def test_close_uses_normal_closure_once() -> None:
    ws = _StubWebSocket()
    connection = AiohttpFeedConnection(ws, "ws://feed.test/ais")  # type: ignore[arg-type]

    await connection.send_str("hello")
    await connection.close()
    await connection.close()

    assert ws.sent == ["hello"]
    assert ws.closed_with == 1000


@pytest.mark.asyncio
async def test_connector_wraps_client_errors() -> None:
    connector = AiohttpConnector(_FailingSession(), heartbeat=None)  # type: ignore[arg-type]

    with pytest.raises(AisViewTransportError, match="connection refused") as excinfo:
        await connector.connect("ws://feed.test/ais")

    assert excinfo.value.url == "ws://feed.test/ais"
    assert isinstance(excinfo.value.__cause__, aiohttp.ClientConnectionError)

"""Tests for the WebSocket client: correlation, timeouts, broadcasts, reconnects."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from types import SimpleNamespace

import aiohttp
import orjson
import pytest

from fluxkit.client import ConnectionState, RemoteToolError, RpcError, SocketClient


class FakeWebSocket:
    """In-memory stand-in for aiohttp.ClientWebSocketResponse.

    `responder` maps each sent frame to a reply frame (or None for silence).
    """

    def __init__(self, responder: Callable[[dict], dict | None] | None = None) -> None:
        self.sent: list[dict] = []
        self.closed = False
        self._inbox: asyncio.Queue[SimpleNamespace | None] = asyncio.Queue()
        self._responder = responder

    async def send_str(self, data: str) -> None:
        frame = orjson.loads(data)
        self.sent.append(frame)
        if self._responder is not None and (reply := self._responder(frame)) is not None:
            self.push(reply)

    def push(self, frame: dict) -> None:
        self._inbox.put_nowait(SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data=orjson.dumps(frame).decode()))

    def drop(self) -> None:
        """Simulate the server closing the connection."""
        self._inbox.put_nowait(None)

    def exception(self) -> None:
        return None

    async def close(self) -> None:
        self.closed = True
        self.drop()

    def __aiter__(self) -> FakeWebSocket:
        return self

    async def __anext__(self) -> SimpleNamespace:
        message = await self._inbox.get()
        if message is None:
            raise StopAsyncIteration
        return message


class FakeSession:
    """Hands out prepared sockets; refuses once they run out."""

    def __init__(self, *sockets: FakeWebSocket) -> None:
        self._sockets = list(sockets)
        self.connects = 0

    async def ws_connect(self, url: str) -> FakeWebSocket:
        self.connects += 1
        if not self._sockets:
            raise aiohttp.ClientConnectionError("connection refused")
        return self._sockets.pop(0)


def echo_server(frame: dict) -> dict | None:
    match frame["type"]:
        case "list":
            return {"type": "tools", "id": frame["id"], "tools": [{"name": "weather.getWeather"}]}
        case "call" if frame["name"] == "weather.getWeather":
            return {"type": "result", "id": frame["id"], "result": {"city": frame["params"]["city"]}}
        case "call":
            return {"type": "error", "id": frame["id"], "error": f"Unknown tool: {frame['name']}"}
        case "rpc":
            return {"jsonrpc": "2.0", "id": frame["id"], "error": {"code": -32601, "message": "Method not found"}}
    return None


async def _wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    async def poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(poll(), timeout)


def _client(session: FakeSession, **options: object) -> SocketClient:
    return SocketClient("ws://test/ws", session=session, **options)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_requests_are_correlated_by_id() -> None:
    ws = FakeWebSocket(echo_server)
    client = _client(FakeSession(ws))
    await client.connect()

    assert client.state is ConnectionState.CONNECTED
    assert await client.list_tools() == [{"name": "weather.getWeather"}]
    assert await client.call("weather.getWeather", {"city": "Tokyo"}) == {"city": "Tokyo"}
    assert [f["id"] for f in ws.sent] == ["1", "2"]
    assert ws.sent[1] == {"type": "call", "id": "2", "name": "weather.getWeather", "params": {"city": "Tokyo"}}
    assert client.pending == 0
    await client.close()


@pytest.mark.asyncio
async def test_out_of_order_replies() -> None:
    ws = FakeWebSocket()
    client = _client(FakeSession(ws))
    await client.connect()

    first = asyncio.create_task(client.call("a"))
    second = asyncio.create_task(client.call("b"))
    await _wait_for(lambda: len(ws.sent) == 2)
    ws.push({"type": "result", "id": "2", "result": "B"})
    ws.push({"type": "result", "id": "1", "result": "A"})

    assert await asyncio.gather(first, second) == ["A", "B"]
    await client.close()


@pytest.mark.asyncio
async def test_error_replies_raise() -> None:
    client = _client(FakeSession(FakeWebSocket(echo_server)))
    await client.connect()

    with pytest.raises(RemoteToolError, match="Unknown tool: x.y"):
        await client.call("x.y")
    with pytest.raises(RpcError) as exc_info:
        await client.rpc("nope")
    assert exc_info.value.code == -32601
    await client.close()


@pytest.mark.asyncio
async def test_timeout_removes_pending_entry() -> None:
    client = _client(FakeSession(FakeWebSocket()), request_timeout=0.05)
    await client.connect()

    with pytest.raises(TimeoutError):
        await client.call("weather.slow")
    assert client.pending == 0
    await client.close()


@pytest.mark.asyncio
async def test_send_requires_connection() -> None:
    client = _client(FakeSession())
    with pytest.raises(ConnectionError, match="not connected"):
        await client.call("weather.getWeather")


@pytest.mark.asyncio
async def test_connect_failure() -> None:
    session = FakeSession()
    client = _client(session)

    with pytest.raises(ConnectionError):
        await client.connect()
    assert client.state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_broadcast_handlers() -> None:
    ws = FakeWebSocket()
    client = _client(FakeSession(ws))
    received: list[object] = []
    done = asyncio.Event()

    async def on_async(data: object) -> None:
        done.set()

    client.on_broadcast(received.append)
    client.on_broadcast(on_async)
    await client.connect()

    ws.push({"type": "broadcast", "data": {"event": "reload"}})
    await asyncio.wait_for(done.wait(), 1)
    assert received == [{"event": "reload"}]
    await client.close()


@pytest.mark.asyncio
async def test_close_fails_pending_calls() -> None:
    ws = FakeWebSocket()
    client = _client(FakeSession(ws))
    await client.connect()

    call = asyncio.create_task(client.call("weather.slow"))
    await _wait_for(lambda: client.pending == 1)
    await client.close()

    with pytest.raises(ConnectionError):
        await call
    assert ws.closed
    assert client.state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_reconnects_after_unexpected_close() -> None:
    first, second = FakeWebSocket(), FakeWebSocket(echo_server)
    session = FakeSession(first, second)
    client = _client(session, reconnect_delay=0.01)
    await client.connect()

    first.drop()
    await _wait_for(lambda: session.connects == 2 and client.state is ConnectionState.CONNECTED)
    assert await client.list_tools() == [{"name": "weather.getWeather"}]
    await client.close()


@pytest.mark.asyncio
async def test_reconnect_attempts_are_bounded() -> None:
    ws = FakeWebSocket()
    session = FakeSession(ws)  # every later connect is refused
    client = _client(session, reconnect_delay=0.001, max_reconnect_attempts=3)
    await client.connect()

    ws.drop()

    await _wait_for(lambda: session.connects == 4)
    await asyncio.sleep(0.05)
    assert session.connects == 4
    assert client.state is ConnectionState.DISCONNECTED
    await client.close()

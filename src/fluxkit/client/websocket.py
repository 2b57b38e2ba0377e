"""WebSocket client for the socket transport (aiohttp).

Requests carry a string id; replies are matched through a pending-call map.
A request with no reply within `request_timeout` seconds is dropped from
the map and fails with TimeoutError; the server is not told.

Connection lifecycle:
    DISCONNECTED -> CONNECTING -> CONNECTED -> CLOSING -> DISCONNECTED
An unexpected close schedules a reconnect with linear backoff
(reconnect_delay * attempt), up to `max_reconnect_attempts` in a row.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from types import TracebackType

import aiohttp

from fluxkit.foundation.config import get_settings
from fluxkit.io import decode, encode_str

from .errors import RemoteToolError, RpcError

logger = logging.getLogger("fluxkit.client")

BroadcastHandler = Callable[[object], object]


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"


@dataclass(slots=True)
class PendingCall:
    id: str
    kind: str
    future: asyncio.Future[object]


class SocketClient:
    """Call tools on a running WebSocket transport.

    Args:
        url: Endpoint, e.g. "ws://127.0.0.1:3001/ws"
        request_timeout: Seconds to wait for each reply (default from settings)
        max_reconnect_attempts: Reconnects tried after an unexpected close
            (default from settings)
        reconnect_delay: Base backoff in seconds
        session: aiohttp session to use (not closed by close())

    Example:
        >>> async with SocketClient("ws://127.0.0.1:3001/ws") as client:
        ...     client.on_broadcast(print)
        ...     await client.call("weather.getWeather", {"city": "Tokyo"})
    """

    def __init__(
        self,
        url: str,
        *,
        request_timeout: float | None = None,
        max_reconnect_attempts: int | None = None,
        reconnect_delay: float = 1.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        cfg = get_settings().socket
        self._url = url
        self._timeout = request_timeout if request_timeout is not None else cfg.request_timeout
        self._max_reconnects = max_reconnect_attempts if max_reconnect_attempts is not None else cfg.max_reconnect_attempts
        self._reconnect_delay = reconnect_delay
        self._session = session
        self._owns_session = session is None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._state = ConnectionState.DISCONNECTED
        self._pending: dict[str, PendingCall] = {}
        self._ids = itertools.count(1)
        self._reconnect_attempts = 0
        self._reader: asyncio.Task[None] | None = None
        self._reconnector: asyncio.Task[None] | None = None
        self._broadcast_handlers: list[BroadcastHandler] = []

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def __aenter__(self) -> SocketClient:
        await self.connect()
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: TracebackType | None,
    ) -> None:
        await self.close()

    def on_broadcast(self, handler: BroadcastHandler) -> None:
        """Register a callback for server broadcast frames (sync or async)."""
        self._broadcast_handlers.append(handler)

    # ─────────────────────────────────────────────────────────────────────────
    # Connection
    # ─────────────────────────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Open the connection. Raises ConnectionError when the handshake fails."""
        self._state = ConnectionState.CONNECTING
        if self._session is None:
            self._session = aiohttp.ClientSession()
        try:
            self._ws = await self._session.ws_connect(self._url)
        except (aiohttp.ClientError, OSError) as e:
            self._state = ConnectionState.DISCONNECTED
            raise ConnectionError(f"WebSocket connection failed: {e}") from e
        self._state = ConnectionState.CONNECTED
        self._reconnect_attempts = 0
        self._reader = asyncio.create_task(self._read_loop(self._ws))
        logger.debug(f"Connected to {self._url}")

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        async for msg in ws:
            if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                await self._handle_message(msg.data)
            elif msg.type is aiohttp.WSMsgType.ERROR:
                logger.warning(f"WebSocket error: {ws.exception()}")
                break
        self._on_closed()

    def _on_closed(self) -> None:
        if self._state in (ConnectionState.CLOSING, ConnectionState.DISCONNECTED):
            return
        self._state = ConnectionState.DISCONNECTED
        self._ws = None
        self._fail_pending(ConnectionError("Connection closed"))
        if self._reconnect_attempts < self._max_reconnects:
            self._reconnector = asyncio.create_task(self._reconnect())

    async def _reconnect(self) -> None:
        while self._reconnect_attempts < self._max_reconnects and self._state is ConnectionState.DISCONNECTED:
            self._reconnect_attempts += 1
            delay = self._reconnect_delay * self._reconnect_attempts
            logger.info(f"Reconnecting in {delay:.1f}s (attempt {self._reconnect_attempts}/{self._max_reconnects})")
            await asyncio.sleep(delay)
            if self._state is not ConnectionState.DISCONNECTED:
                return
            try:
                await self.connect()
                return
            except ConnectionError as e:
                logger.debug(str(e))

    async def close(self) -> None:
        """Close the connection and fail every pending call. Idempotent."""
        self._state = ConnectionState.CLOSING
        for task in (self._reconnector, self._reader):
            if task is not None and not task.done() and task is not asyncio.current_task():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._reconnector = self._reader = None
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        self._fail_pending(ConnectionError("Client closed"))
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
        self._state = ConnectionState.DISCONNECTED

    def _fail_pending(self, exc: Exception) -> None:
        pending, self._pending = self._pending, {}
        for call in pending.values():
            if not call.future.done():
                call.future.set_exception(exc)

    # ─────────────────────────────────────────────────────────────────────────
    # Messages
    # ─────────────────────────────────────────────────────────────────────────

    async def _handle_message(self, data: str | bytes) -> None:
        try:
            message = decode(data)
        except Exception:
            logger.debug("Ignoring malformed frame")
            return
        if not isinstance(message, dict):
            return

        if message.get("type") == "broadcast":
            for handler in list(self._broadcast_handlers):
                try:
                    result = handler(message.get("data"))
                    if asyncio.iscoroutine(result):
                        await result
                except Exception:
                    logger.exception("Broadcast handler failed")
            return

        call = self._pending.pop(str(message.get("id")), None)
        if call is None or call.future.done():
            return
        if call.kind == "rpc":
            if error := message.get("error"):
                err = error if isinstance(error, dict) else {}
                call.future.set_exception(RpcError(int(err.get("code", 0)), str(err.get("message", "")), err.get("data")))
            else:
                call.future.set_result(message.get("result"))
        elif error := message.get("error"):
            call.future.set_exception(RemoteToolError(str(error)))
        else:
            call.future.set_result(message.get("tools") if message.get("type") == "tools" else message.get("result"))

    async def _send(self, kind: str, payload: dict[str, object]) -> object:
        if self._state is not ConnectionState.CONNECTED or self._ws is None:
            raise ConnectionError("WebSocket not connected")
        mid = str(next(self._ids))
        future: asyncio.Future[object] = asyncio.get_running_loop().create_future()
        self._pending[mid] = PendingCall(mid, kind, future)
        try:
            await self._ws.send_str(encode_str({"type": kind, "id": mid, **payload}))
            return await asyncio.wait_for(future, self._timeout)
        except TimeoutError:
            raise TimeoutError(f"Request {mid} timed out after {self._timeout}s") from None
        finally:
            self._pending.pop(mid, None)

    async def list_tools(self) -> list[dict[str, object]]:
        return await self._send("list", {})  # type: ignore[return-value]

    async def call(self, name: str, arguments: dict[str, object] | None = None) -> object:
        """Invoke a tool. Raises RemoteToolError, TimeoutError or ConnectionError."""
        return await self._send("call", {"name": name, "params": arguments or {}})

    async def rpc(self, method: str, params: dict[str, object] | None = None) -> object:
        """Send a JSON-RPC request over the socket. Raises RpcError."""
        return await self._send("rpc", {"jsonrpc": "2.0", "method": method, "params": params or {}})

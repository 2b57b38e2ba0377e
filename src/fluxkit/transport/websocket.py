"""Socket transport: persistent WebSocket connections multiplexed by message id.

Inbound message types:
    {"type": "list", "id"}                  -> {"type": "tools", "id", "tools"}
    {"type": "call", "id", "name", "params"} -> {"type": "result", "id", "result"}
                                               | {"type": "error", "id", "error"}
    {"type": "rpc", ...JSON-RPC request}    -> JSON-RPC response

The server may push {"type": "broadcast", "data"} to every peer at any time.
Each inbound message runs as its own task, so calls on one connection may
complete out of order; callers correlate by id. Sends on one connection are
serialized.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from starlette.applications import Starlette
from starlette.routing import WebSocketRoute
from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from fluxkit.foundation.config import get_settings
from fluxkit.foundation.errors import error_message
from fluxkit.io import decode, encode_str
from fluxkit.protocol import RpcHandler

from .base import Transport, UvicornRunner

if TYPE_CHECKING:
    from fluxkit.server import FluxServer

logger = logging.getLogger("fluxkit.transport")


@dataclass(slots=True, eq=False)
class SocketPeer:
    """One connected client."""

    websocket: WebSocket
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    tasks: set[asyncio.Task[None]] = field(default_factory=set)

    async def send(self, frame: dict[str, object]) -> None:
        async with self.lock:
            await self.websocket.send_text(encode_str(frame))

    async def close(self) -> None:
        if self.websocket.application_state is WebSocketState.CONNECTED:
            with contextlib.suppress(Exception):
                await self.websocket.close()


class WebSocketTransport(Transport):
    """Serve tools over WebSocket with uvicorn.

    Args:
        server: Server whose tools are exposed
        host: Bind address (default from settings)
        port: Bind port (default from settings)
        path: WebSocket route path (default from settings)

    Example:
        >>> transport = WebSocketTransport(server, port=3001)
        >>> await transport.broadcast({"event": "reloaded"})
        2
    """

    __slots__ = ("_host", "_port", "_path", "_rpc", "_peers", "_app", "_runner")

    def __init__(
        self,
        server: FluxServer,
        *,
        host: str | None = None,
        port: int | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(server)
        cfg = get_settings().socket
        self._host = host or cfg.host
        self._port = port if port is not None else cfg.port
        self._path = path or cfg.path
        self._rpc = RpcHandler(server)
        self._peers: dict[str, SocketPeer] = {}
        self._app = Starlette(routes=[WebSocketRoute(self._path, self._endpoint)])
        self._runner: UvicornRunner | None = None

    @property
    def app(self) -> Starlette:
        return self._app

    @property
    def path(self) -> str:
        return self._path

    @property
    def peers(self) -> dict[str, SocketPeer]:
        return dict(self._peers)

    # ─────────────────────────────────────────────────────────────────────────
    # Connection handling
    # ─────────────────────────────────────────────────────────────────────────

    async def _endpoint(self, websocket: WebSocket) -> None:
        await websocket.accept()
        peer = SocketPeer(websocket)
        self._peers[peer.id] = peer
        logger.debug(f"Peer {peer.id} connected ({len(self._peers)} total)")
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes") or b""
                task = asyncio.create_task(self._process(peer, raw))
                peer.tasks.add(task)
                task.add_done_callback(peer.tasks.discard)
        except WebSocketDisconnect:
            pass
        finally:
            self._peers.pop(peer.id, None)
            logger.debug(f"Peer {peer.id} disconnected")

    async def _process(self, peer: SocketPeer, raw: str | bytes) -> None:
        frame = await self.handle_message(raw)
        if frame is None:
            return
        try:
            await peer.send(frame)
        except Exception as e:
            logger.debug(f"Dropping reply to peer {peer.id}: {error_message(e)}")

    async def handle_message(self, raw: str | bytes) -> dict[str, object] | None:
        """Reply frame for one inbound message (None for rpc notifications). Never raises."""
        try:
            message = decode(raw)
        except Exception as e:
            return {"type": "error", "id": None, "error": f"Parse error: {e}"}
        if not isinstance(message, dict):
            return {"type": "error", "id": None, "error": "Parse error: expected a JSON object"}

        mid = message.get("id")
        try:
            match message.get("type"):
                case "list":
                    return {"type": "tools", "id": mid, "tools": self._server.list_tools()}
                case "call":
                    name = message.get("name")
                    if not isinstance(name, str):
                        return {"type": "error", "id": mid, "error": "'name' must be a string"}
                    result = await self._server.call_tool(name, message.get("params") or {})  # type: ignore[arg-type]
                    return {"type": "result", "id": mid, "result": result}
                case "rpc":
                    return await self._rpc.handle(message)
                case other:
                    return {"type": "error", "id": mid, "error": f"Unknown message type: {other}"}
        except Exception as e:
            logger.debug(f"Socket message {mid} failed: {error_message(e)}")
            return {"type": "error", "id": mid, "error": error_message(e)}

    async def broadcast(self, data: object) -> int:
        """Push a broadcast frame to every peer. Returns the number reached."""
        frame = {"type": "broadcast", "data": data}
        delivered = 0
        for peer in list(self._peers.values()):
            try:
                await peer.send(frame)
                delivered += 1
            except Exception as e:
                logger.debug(f"Dropping peer {peer.id}: {error_message(e)}")
                self._peers.pop(peer.id, None)
        return delivered

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    async def start(self) -> None:
        self._runner = UvicornRunner(self._app, self._host, self._port)
        await self._runner.start()

    async def stop(self) -> None:
        peers = list(self._peers.values())
        self._peers.clear()
        for peer in peers:
            for task in list(peer.tasks):
                task.cancel()
            await peer.close()
        runner, self._runner = self._runner, None
        if runner is not None:
            await runner.stop()
        self._mark_closed()

    async def wait_closed(self) -> None:
        if self._runner is not None:
            await self._runner.wait()
            self._mark_closed()
        await super().wait_closed()

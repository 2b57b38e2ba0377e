"""Transport base class and the uvicorn runner shared by HTTP and socket transports."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import uvicorn

if TYPE_CHECKING:
    from starlette.types import ASGIApp

    from fluxkit.server import FluxServer

logger = logging.getLogger("fluxkit.transport")


# ═══════════════════════════════════════════════════════════════════════════════
# Abstract Transport
# ═══════════════════════════════════════════════════════════════════════════════


class Transport(ABC):
    """Translate wire traffic into dispatch calls for one server.

    Subclasses own their accept loop. A per-request failure must never end
    that loop; it becomes an error frame in the transport's wire shape.
    `stop()` must be safe to call when the transport is already stopped.
    """

    __slots__ = ("_server", "_closed")

    def __init__(self, server: FluxServer) -> None:
        self._server = server
        self._closed: asyncio.Event | None = None

    @property
    def server(self) -> FluxServer:
        return self._server

    def _closed_event(self) -> asyncio.Event:
        if self._closed is None:
            self._closed = asyncio.Event()
        return self._closed

    def _mark_closed(self) -> None:
        self._closed_event().set()

    async def wait_closed(self) -> None:
        """Block until the transport has stopped accepting input."""
        await self._closed_event().wait()

    @abstractmethod
    async def start(self) -> None:
        """Begin accepting input. Returns once the transport is ready."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Release all resources. Idempotent."""
        ...


# ─────────────────────────────────────────────────────────────────────────────
# Uvicorn Runner
# ─────────────────────────────────────────────────────────────────────────────


class UvicornRunner:
    """Run an ASGI app under uvicorn as a background task of the current loop."""

    __slots__ = ("_app", "_host", "_port", "_server", "_task")

    def __init__(self, app: ASGIApp, host: str, port: int) -> None:
        self._app = app
        self._host = host
        self._port = port
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        config = uvicorn.Config(self._app, host=self._host, port=self._port, log_level="warning", lifespan="off")
        self._server = uvicorn.Server(config)
        self._task = asyncio.create_task(self._server.serve())
        while not self._server.started:
            if self._task.done():
                # Surfaces bind errors (port in use) to the caller
                await self._task
                raise RuntimeError(f"Server on {self._host}:{self._port} exited during startup")
            await asyncio.sleep(0.01)
        logger.info(f"Listening on {self._host}:{self._port}")

    async def wait(self) -> None:
        if self._task is not None:
            await asyncio.shield(self._task)

    async def stop(self) -> None:
        if self._server is None or self._task is None:
            return
        self._server.should_exit = True
        try:
            await self._task
        finally:
            self._server = None
            self._task = None

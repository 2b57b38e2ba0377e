"""Stream transport: newline-delimited JSON-RPC over stdin/stdout.

One request per line, one response line per request, in read order.
Stdout carries only protocol frames; logs go to stderr.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from typing import IO, TYPE_CHECKING, BinaryIO, Protocol

from fluxkit.foundation.config import get_settings
from fluxkit.foundation.errors import error_message
from fluxkit.io import encode_line
from fluxkit.protocol import INTERNAL_ERROR, JsonRpcResponse, RpcHandler, parse_error

from .base import Transport

if TYPE_CHECKING:
    from fluxkit.server import FluxServer

logger = logging.getLogger("fluxkit.transport")

# Lines longer than this fail with a parse error instead of being buffered
LINE_LIMIT = 16 * 1024 * 1024


class LineWriter(Protocol):
    """Minimal writer surface: asyncio.StreamWriter satisfies it."""

    def write(self, data: bytes) -> None: ...
    async def drain(self) -> None: ...


class BinaryWriter:
    """Adapt a blocking binary file (stdout) to the LineWriter surface."""

    __slots__ = ("_file",)

    def __init__(self, file: BinaryIO) -> None:
        self._file = file

    def write(self, data: bytes) -> None:
        self._file.write(data)

    async def drain(self) -> None:
        self._file.flush()


async def open_stdin(
    file: IO[bytes] | IO[str] | None = None,
    limit: int = LINE_LIMIT,
) -> tuple[asyncio.StreamReader, asyncio.ReadTransport]:
    """Reader over a pipe (stdin by default) plus the pipe transport that owns it."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    pipe, _ = await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), file or sys.stdin)
    return reader, pipe


class StdioTransport(Transport):
    """Serve JSON-RPC over a line stream.

    Args:
        server: Server whose tools are exposed
        reader: Input stream (default: read from `input`)
        input: Pipe to read when no reader is given (default: stdin); closed on stop
        writer: Output sink (default: stdout)

    Example:
        >>> server.set_transport(StdioTransport(server))
        >>> await server.serve_forever()  # returns at end of input
    """

    __slots__ = ("_reader", "_writer", "_input", "_pipe", "_handler", "_task")

    def __init__(
        self,
        server: FluxServer,
        *,
        reader: asyncio.StreamReader | None = None,
        writer: LineWriter | None = None,
        input: IO[bytes] | None = None,  # noqa: A002
    ) -> None:
        super().__init__(server)
        cfg = get_settings().stream
        self._reader = reader
        self._writer = writer
        self._input = input
        self._pipe: asyncio.ReadTransport | None = None
        self._handler = RpcHandler(
            server,
            initialize=True,
            server_info={"name": cfg.server_name, "version": cfg.server_version},
            protocol_version=cfg.protocol_version,
        )
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        if self._reader is None:
            self._reader, self._pipe = await open_stdin(self._input)
        if self._writer is None:
            self._writer = BinaryWriter(sys.stdout.buffer)
        self._task = asyncio.create_task(self._serve())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        pipe, self._pipe = self._pipe, None
        if pipe is not None:
            pipe.close()
        self._mark_closed()

    async def _serve(self) -> None:
        assert self._reader is not None
        try:
            while True:
                try:
                    line = await self._reader.readline()
                except ValueError as e:
                    # Oversized line: the reader has already discarded it
                    await self._send(parse_error(str(e)))
                    continue
                if not line:
                    break
                if not line.strip():
                    continue
                await self._send(await self.handle_line(line))
        finally:
            logger.debug("Input closed")
            self._mark_closed()

    async def handle_line(self, line: bytes) -> dict[str, object] | None:
        """Response for one input line (None for notifications). Never raises."""
        try:
            return await self._handler.handle_raw(line)
        except Exception as e:
            logger.exception("Unhandled failure on stdio line")
            return JsonRpcResponse.failure(0, INTERNAL_ERROR, "Internal error", error_message(e)).to_wire()

    async def _send(self, message: dict[str, object] | None) -> None:
        if message is None or self._writer is None:
            return
        self._writer.write(encode_line(message))
        await self._writer.drain()

"""HTTP client for the REST and JSON-RPC surfaces (httpx)."""

from __future__ import annotations

import itertools
from types import TracebackType

import httpx

from fluxkit.io import decode, encode

from .errors import RemoteToolError, RpcError


class HttpClient:
    """Call tools on a running HTTP transport.

    Args:
        base_url: Server origin, e.g. "http://127.0.0.1:3000"
        prefix: Path prefix of the tool routes
        headers: Extra headers sent with every request
        timeout: Request timeout in seconds
        client: Preconfigured httpx.AsyncClient (not closed by aclose())

    Example:
        >>> async with HttpClient("http://127.0.0.1:3000") as client:
        ...     await client.call("weather.getWeather", {"city": "Tokyo"})
    """

    __slots__ = ("_prefix", "_client", "_owns_client", "_ids")

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:3000",
        *,
        prefix: str = "/api",
        headers: dict[str, str] | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._prefix = ("/" + prefix.strip("/")).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), headers=headers, timeout=timeout)
        self._ids = itertools.count(1)

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @staticmethod
    def _body(response: httpx.Response) -> dict[str, object]:
        try:
            data = decode(response.content)
        except Exception:
            data = None
        return data if isinstance(data, dict) else {}

    def _raise_for_error(self, response: httpx.Response, action: str) -> dict[str, object]:
        body = self._body(response)
        if response.is_error:
            message = body.get("error") or response.reason_phrase or f"{action} failed"
            raise RemoteToolError(str(message), status=response.status_code)
        return body

    async def list_tools(self) -> list[dict[str, object]]:
        response = await self._client.get(f"{self._prefix}/tools")
        return self._raise_for_error(response, "List tools")["tools"]  # type: ignore[return-value]

    async def call(self, name: str, arguments: dict[str, object] | None = None) -> object:
        """Invoke a tool over REST. Raises RemoteToolError on a 4xx/5xx reply."""
        response = await self._client.post(
            f"{self._prefix}/tools/{name}",
            content=encode(arguments or {}),
            headers={"content-type": "application/json"},
        )
        return self._raise_for_error(response, f"Call {name}").get("result")

    async def rpc(self, method: str, params: dict[str, object] | None = None) -> object:
        """Send one JSON-RPC request to {prefix}/rpc and return its result. Raises RpcError."""
        request = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or {}}
        response = await self._client.post(
            f"{self._prefix}/rpc", content=encode(request), headers={"content-type": "application/json"},
        )
        body = self._raise_for_error(response, method)
        if error := body.get("error"):
            err = error if isinstance(error, dict) else {}
            raise RpcError(int(err.get("code", 0)), str(err.get("message", "")), err.get("data"))
        return body.get("result")

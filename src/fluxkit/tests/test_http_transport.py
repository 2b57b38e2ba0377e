"""Tests for the HTTP transport (REST and JSON-RPC surfaces) and the HTTP client."""

from __future__ import annotations

import httpx
import msgpack
import pytest
from starlette.testclient import TestClient

from fluxkit.client import HttpClient, RemoteToolError, RpcError
from fluxkit.foundation.registry import ToolRegistry
from fluxkit.protocol import METHOD_NOT_FOUND, PARSE_ERROR
from fluxkit.runtime.middleware import RateLimitMiddleware
from fluxkit.server import FluxServer
from fluxkit.transport import HttpTransport

from .conftest import Weather


@pytest.fixture
def server(weather_registry: ToolRegistry) -> FluxServer:
    return FluxServer(Weather, registry=weather_registry)


@pytest.fixture
def client(server: FluxServer) -> TestClient:
    return TestClient(HttpTransport(server).app)


class TestRest:
    def test_list_tools(self, client: TestClient, server: FluxServer) -> None:
        response = client.get("/api/tools")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {"tools": server.list_tools()}

    def test_call_tool(self, client: TestClient) -> None:
        response = client.post("/api/tools/weather.getWeather", json={"city": "Tokyo"})
        assert response.status_code == 200
        assert response.json() == {"result": {"city": "Tokyo", "units": "metric", "temp": 21}}

    def test_empty_body_means_no_arguments(self, client: TestClient) -> None:
        response = client.post("/api/tools/weather.ping")
        assert response.json() == {"result": "pong"}

    def test_unknown_tool_is_404(self, client: TestClient) -> None:
        response = client.post("/api/tools/weather.nope", json={})
        assert response.status_code == 404
        assert response.json() == {"error": "Unknown tool: weather.nope"}

    def test_unbindable_arguments_are_400(self, client: TestClient) -> None:
        response = client.post("/api/tools/weather.getWeather", json={"a": 1, "b": 2, "c": 3})
        assert response.status_code == 400
        assert "Invalid arguments" in response.json()["error"]

    @pytest.mark.parametrize("body", [b"{broken", b"[1, 2]"])
    def test_invalid_body_is_400(self, client: TestClient, body: bytes) -> None:
        response = client.post(
            "/api/tools/weather.ping", content=body, headers={"content-type": "application/json"},
        )
        assert response.status_code == 400
        assert "error" in response.json()

    def test_handler_failure_is_500(self, client: TestClient) -> None:
        response = client.post("/api/tools/weather.explode", json={})
        assert response.status_code == 500
        assert response.json() == {"error": "boom"}

    def test_rate_limited_is_429_with_retry_after(self, registry: ToolRegistry) -> None:
        registry.register(Weather, "weather").method(
            "ping", middleware=[RateLimitMiddleware(requests=1, window="1h")],
        )
        client = TestClient(HttpTransport(FluxServer(Weather, registry=registry)).app)

        assert client.post("/api/tools/weather.ping").status_code == 200
        response = client.post("/api/tools/weather.ping")
        assert response.status_code == 429
        assert response.headers["retry-after"] == "3600"
        assert response.json()["error"].startswith("Rate limit exceeded")

    def test_schema_endpoint(self, client: TestClient) -> None:
        response = client.get("/api/tools/weather.getWeather/schema")
        assert response.status_code == 200
        assert response.json()["inputSchema"]["required"] == ["city"]
        assert client.get("/api/tools/weather.nope/schema").status_code == 404

    def test_health(self, client: TestClient) -> None:
        assert client.get("/health").json() == {"status": "ok"}


class TestNegotiation:
    def test_msgpack_response_on_request(self, client: TestClient) -> None:
        response = client.post(
            "/api/tools/weather.getWeather",
            json={"city": "Tokyo"},
            headers={"accept": "application/msgpack"},
        )
        assert response.headers["content-type"] == "application/msgpack"
        assert msgpack.unpackb(response.content) == {"result": {"city": "Tokyo", "units": "metric", "temp": 21}}

    def test_q_values_respected(self, client: TestClient) -> None:
        response = client.get("/api/tools", headers={"accept": "application/msgpack;q=0.5, application/json"})
        assert response.headers["content-type"] == "application/json"

    def test_msgpack_request_body(self, client: TestClient) -> None:
        response = client.post(
            "/api/tools/weather.getWeather",
            content=msgpack.packb({"city": "Lima"}),
            headers={"content-type": "application/msgpack"},
        )
        assert response.json()["result"]["city"] == "Lima"


class TestRpc:
    def test_tools_list(self, client: TestClient, server: FluxServer) -> None:
        response = client.post("/api/rpc", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
        assert response.json() == {"jsonrpc": "2.0", "id": 1, "result": {"tools": server.list_tools()}}

    def test_initialize_is_not_offered(self, client: TestClient) -> None:
        response = client.post("/api/rpc", json={"jsonrpc": "2.0", "id": 1, "method": "initialize"})
        assert response.json()["error"]["code"] == METHOD_NOT_FOUND

    def test_notification_is_204(self, client: TestClient) -> None:
        response = client.post("/api/rpc", json={"jsonrpc": "2.0", "method": "tools/list"})
        assert response.status_code == 204
        assert response.content == b""

    def test_parse_error(self, client: TestClient) -> None:
        response = client.post("/api/rpc", content=b"nope", headers={"content-type": "application/json"})
        assert response.status_code == 200
        assert response.json()["id"] == 0
        assert response.json()["error"]["code"] == PARSE_ERROR


class TestConfiguration:
    def test_custom_prefix(self, server: FluxServer) -> None:
        client = TestClient(HttpTransport(server, prefix="v1/").app)
        assert client.get("/v1/tools").status_code == 200
        assert client.get("/api/tools").status_code == 404

    def test_empty_prefix(self, server: FluxServer) -> None:
        client = TestClient(HttpTransport(server, prefix="").app)
        assert client.get("/tools").status_code == 200

    def test_prefix_from_settings(self, server: FluxServer, monkeypatch: pytest.MonkeyPatch) -> None:
        from fluxkit.foundation.config import clear_settings_cache

        monkeypatch.setenv("FLUX_HTTP_PREFIX", "/flux")
        clear_settings_cache()
        assert HttpTransport(server).prefix == "/flux"

    def test_cors_preflight(self, client: TestClient) -> None:
        response = client.options(
            "/api/tools",
            headers={"origin": "http://example.com", "access-control-request-method": "GET"},
        )
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"

    def test_cors_disabled(self, server: FluxServer) -> None:
        client = TestClient(HttpTransport(server, cors=False).app)
        response = client.get("/api/tools", headers={"origin": "http://example.com"})
        assert "access-control-allow-origin" not in response.headers


# ─────────────────────────────────────────────────────────────────────────────
# HttpClient against the ASGI app
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def http_client(server: FluxServer) -> HttpClient:
    app = HttpTransport(server).app
    return HttpClient(client=httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test"))


@pytest.mark.asyncio
async def test_http_client_round_trip(http_client: HttpClient) -> None:
    tools = await http_client.list_tools()
    assert tools[0]["name"] == "weather.getWeather"
    assert await http_client.call("weather.getWeather", {"city": "Tokyo"}) == {
        "city": "Tokyo",
        "units": "metric",
        "temp": 21,
    }
    assert (await http_client.rpc("tools/list"))["tools"] == tools


@pytest.mark.asyncio
async def test_http_client_errors(http_client: HttpClient) -> None:
    with pytest.raises(RemoteToolError) as exc_info:
        await http_client.call("weather.nope")
    assert exc_info.value.status == 404
    assert exc_info.value.message == "Unknown tool: weather.nope"

    with pytest.raises(RpcError) as rpc_info:
        await http_client.rpc("nope/nope")
    assert rpc_info.value.code == METHOD_NOT_FOUND

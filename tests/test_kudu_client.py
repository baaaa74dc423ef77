# ============================================================================
# KUDU CLIENT TESTS
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Tests - SCM endpoint client
# PURPOSE: Verify request shapes and error mapping against a mock transport
# CREATED: 14 OCT 2026
# ============================================================================
"""
Kudu Client Tests

Uses httpx.MockTransport; no network access. Tokens come from an async
provider, as AzureSession.get_token_async supplies them.

Run with:
    pytest tests/test_kudu_client.py -v
"""

import asyncio
import json
import socket
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from core.config import KuduDefaults
from infrastructure.auth import AzureAuthError
from infrastructure.kudu import KuduClient, KuduError


# ============================================================================
# FIXTURES
# ============================================================================

class Recorder:
    """Mock transport handler recording requests and replaying canned responses."""

    def __init__(self, responses):
        self.responses = responses
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key not in self.responses:
            return httpx.Response(404, text="not mocked")
        status, body = self.responses[key]
        if isinstance(body, (dict, list)):
            return httpx.Response(status, json=body)
        return httpx.Response(status, text=body)


def static_token(value):
    async def provide():
        return value
    return provide


def make_client(responses):
    recorder = Recorder(responses)
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    client = KuduClient("orders", static_token("token-123"), KuduDefaults(), http_client)
    return client, recorder


def run(coro):
    return asyncio.run(coro)


# ============================================================================
# HOSTS
# ============================================================================

class TestHosts:

    def test_urls(self):
        client = KuduClient("orders", static_token("t"), KuduDefaults())
        assert client.scm_host == "orders.scm.azurewebsites.net"
        assert client.scm_url == "https://orders.scm.azurewebsites.net"
        assert client.app_url == "https://orders.azurewebsites.net"


# ============================================================================
# DEPLOYMENT CALLS
# ============================================================================

class TestFunctionManagement:

    def test_list_functions(self):
        client, recorder = make_client({
            ("GET", "/api/functions"): (200, [{"name": "hello"}, {"name": "ingest"}]),
        })
        assert run(client.list_functions()) == ["hello", "ingest"]

        request = recorder.requests[0]
        assert request.url.host == "orders.scm.azurewebsites.net"
        assert request.headers["Authorization"] == "Bearer token-123"

    def test_list_functions_not_found_is_empty(self):
        client, _ = make_client({("GET", "/api/functions"): (404, "")})
        assert run(client.list_functions()) == []

    def test_list_functions_server_error(self):
        client, _ = make_client({("GET", "/api/functions"): (500, "boom")})
        with pytest.raises(KuduError) as exc_info:
            run(client.list_functions())
        assert exc_info.value.status_code == 500

    def test_delete_function(self):
        client, recorder = make_client({
            ("DELETE", "/api/vfs/site/wwwroot/stale/"): (200, ""),
        })
        run(client.delete_function("stale"))

        request = recorder.requests[0]
        assert request.url.params["recursive"] == "true"

    def test_upload_zip(self):
        client, recorder = make_client({("PUT", "/api/zip/site/wwwroot/"): (200, "")})
        run(client.upload_zip("hello", b"PK\x03\x04data"))

        request = recorder.requests[0]
        assert request.content == b"PK\x03\x04data"
        assert request.headers["Content-Type"] == "application/zip"

    def test_upload_rejected(self):
        client, _ = make_client({("PUT", "/api/zip/site/wwwroot/"): (409, "busy")})
        with pytest.raises(KuduError) as exc_info:
            run(client.upload_zip("hello", b"zip"))
        assert "Upload function hello" in str(exc_info.value)
        assert "busy" in str(exc_info.value)

    def test_transport_error_wrapped(self):
        def fail(request):
            raise httpx.ConnectError("refused", request=request)

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(fail))
        client = KuduClient("orders", static_token("t"), KuduDefaults(), http_client)
        with pytest.raises(KuduError, match="refused"):
            run(client.list_functions())

    def test_token_failure_wrapped(self):
        async def expired():
            raise AzureAuthError("Azure login failed: secret expired")

        recorder = Recorder({("GET", "/api/functions"): (200, [])})
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
        client = KuduClient("orders", expired, KuduDefaults(), http_client)
        with pytest.raises(KuduError, match="authentication failed"):
            run(client.list_functions())
        assert recorder.requests == []


# ============================================================================
# INVOCATION AND LOGS
# ============================================================================

class TestInvocation:

    def test_master_key(self):
        client, _ = make_client({
            ("GET", "/api/functions/admin/masterkey"): (200, {"masterKey": "mk"}),
        })
        assert run(client.get_master_key()) == "mk"

    def test_invoke_http_sends_every_parameter(self):
        client, recorder = make_client({("GET", "/api/hello"): (200, "Hello azure")})
        response = run(client.invoke_http("hello", {"name": "azure", "count": 2}))

        assert response.text == "Hello azure"
        request = recorder.requests[0]
        assert request.url.host == "orders.azurewebsites.net"
        assert request.url.params["name"] == "azure"
        assert request.url.params["count"] == "2"

    def test_invoke_http_client_error_is_returned(self):
        client, _ = make_client({("GET", "/api/hello"): (400, "bad request")})
        assert run(client.invoke_http("hello")).status_code == 400

    def test_invoke_admin(self):
        client, recorder = make_client({("POST", "/admin/functions/ingest"): (202, "")})
        run(client.invoke_admin("ingest", "mk", {"input": "payload"}))

        request = recorder.requests[0]
        assert request.headers["x-functions-key"] == "mk"
        assert "Authorization" not in request.headers
        assert json.loads(request.content) == {"input": "payload"}

    def test_latest_invocation(self):
        path = "/azurejobs/api/functions/definitions/orders-hello/invocations"
        client, recorder = make_client({
            ("GET", path): (200, {"entries": [{"id": "inv-2"}, {"id": "inv-1"}]}),
        })
        assert run(client.get_latest_invocation_id("hello")) == "inv-2"
        assert recorder.requests[0].url.params["limit"] == "5"

    def test_no_invocations(self):
        path = "/azurejobs/api/functions/definitions/orders-hello/invocations"
        client, _ = make_client({("GET", path): (200, {"entries": []})})
        assert run(client.get_latest_invocation_id("hello")) is None

    def test_invocation_output(self):
        client, _ = make_client({
            ("GET", "/azurejobs/api/log/output/inv-2"): (200, "Function started\n"),
        })
        assert run(client.get_invocation_output("inv-2")) == "Function started\n"


class TestLogStream:

    PATH = "/api/logstream/application/functions/function/hello"

    def collect(self, client, name="hello"):
        async def read():
            return [chunk async for chunk in client.stream_logs(name)]
        return run(read())

    def test_chunks_until_close(self):
        seen = []

        async def lines():
            yield b"2026-10-19T09:00:00  Welcome, you are now connected to log-streaming service.\n"
            yield b"2026-10-19T09:00:05  Executing 'Functions.hello'\n"

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=lines())

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = KuduClient("orders", static_token("token-123"), KuduDefaults(), http_client)

        output = "".join(self.collect(client))

        assert "connected to log-streaming service" in output
        assert output.endswith("Executing 'Functions.hello'\n")
        request = seen[0]
        assert request.url.host == "orders.scm.azurewebsites.net"
        assert request.url.path == self.PATH
        assert request.headers["Authorization"] == "Bearer token-123"

    def test_unknown_function(self):
        client, _ = make_client({("GET", self.PATH): (404, "Function not found")})
        with pytest.raises(KuduError) as exc_info:
            self.collect(client)
        assert exc_info.value.status_code == 404
        assert "Function not found" in str(exc_info.value)

    def test_dropped_connection_wrapped(self):
        def fail(request):
            raise httpx.ReadError("connection reset", request=request)

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(fail))
        client = KuduClient("orders", static_token("t"), KuduDefaults(), http_client)
        with pytest.raises(KuduError, match="connection reset"):
            self.collect(client)


# ============================================================================
# APP DISCOVERY
# ============================================================================

class TestAppExists:

    def test_resolvable_host(self):
        client = KuduClient("orders", static_token("t"), KuduDefaults())

        async def check():
            loop = asyncio.get_running_loop()
            address = (socket.AF_INET, socket.SOCK_STREAM, 6, "", ("1.2.3.4", 443))
            resolved = AsyncMock(return_value=[address])
            with patch.object(loop, "getaddrinfo", resolved):
                return await client.app_exists()

        assert run(check()) is True

    def test_unknown_host(self):
        client = KuduClient("orders", static_token("t"), KuduDefaults())

        async def check():
            loop = asyncio.get_running_loop()
            error = socket.gaierror(socket.EAI_NONAME, "Name or service not known")
            with patch.object(loop, "getaddrinfo", AsyncMock(side_effect=error)):
                return await client.app_exists()

        assert run(check()) is False

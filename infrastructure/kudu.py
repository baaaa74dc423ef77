# ============================================================================
# KUDU (SCM) CLIENT
# ============================================================================
# EPOCH: 1 - FUNCTION DEPLOYMENT
# STATUS: Infrastructure - Async HTTP client for the Function App SCM site
# PURPOSE: List, upload, delete, invoke functions and read invocation logs
# CREATED: 11 OCT 2026
# ============================================================================
"""
Kudu (SCM) Client

Async httpx client for https://<app>.scm.azurewebsites.net and the app's
public host. Authenticated with the ARM bearer token of the deployment's
AzureSession (admin invocations use the master key instead).

Endpoints:
    GET    /api/functions                              deployed functions
    DELETE /api/vfs/site/wwwroot/<name>/?recursive=true delete a function
    PUT    /api/zip/site/wwwroot/                      upload a function zip
    GET    /api/functions/admin/masterkey              host master key
    GET    /azurejobs/api/functions/definitions/<app>-<fn>/invocations
    GET    /azurejobs/api/log/output/<invocation id>
    GET    /api/logstream/application/functions/function/<fn>  live log stream

Non-success responses raise KuduError; transport and token failures are
wrapped too, so callers see one error type per function.
"""

import asyncio
import logging
import socket
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional

import httpx

from core.config import KuduDefaults, get_defaults
from infrastructure.auth import AzureAuthError

logger = logging.getLogger(__name__)

LOG_STREAM_PATH = "/api/logstream/application/functions/function/"

TokenProvider = Callable[[], Awaitable[str]]


class KuduError(Exception):
    """Raised when an SCM or app endpoint call fails."""

    def __init__(self, operation: str, detail: str, status_code: Optional[int] = None):
        self.operation = operation
        self.detail = detail
        self.status_code = status_code
        status = f" ({status_code})" if status_code else ""
        super().__init__(f"{operation} failed{status}: {detail}")


class KuduClient:
    """
    Async client for one Function App.

    Usage:
        async with KuduClient("my-app", session.get_token_async) as kudu:
            names = await kudu.list_functions()
            await kudu.upload_zip("hello", archive_bytes)
    """

    def __init__(
        self,
        app_name: str,
        token_provider: TokenProvider,
        defaults: Optional[KuduDefaults] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.app_name = app_name
        self._token_provider = token_provider
        self.defaults = defaults or get_defaults().kudu
        self._client = http_client

    @property
    def scm_host(self) -> str:
        return f"{self.app_name}{self.defaults.scm_domain}"

    @property
    def scm_url(self) -> str:
        return f"https://{self.scm_host}"

    @property
    def app_url(self) -> str:
        return f"https://{self.app_name}{self.defaults.app_domain}"

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            timeout = httpx.Timeout(
                self.defaults.read_timeout, connect=self.defaults.connect_timeout
            )
            self._client = httpx.AsyncClient(timeout=timeout)
        return self._client

    async def __aenter__(self) -> "KuduClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # TRANSPORT
    # ------------------------------------------------------------------

    async def _auth_headers(self, operation: str, accept: str = "*/*") -> Dict[str, str]:
        try:
            token = await self._token_provider()
        except AzureAuthError as e:
            logger.error(f"{operation}: cannot acquire token: {e}")
            raise KuduError(operation, f"authentication failed: {e}") from e
        return {"Authorization": f"Bearer {token}", "Accept": accept}

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        ok_statuses: tuple = (200, 201, 202, 204),
        authenticated: bool = True,
        accept: str = "*/*",
        content_type: Optional[str] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if authenticated:
            headers.update(await self._auth_headers(operation, accept))
        if content_type:
            headers["Content-Type"] = content_type
        if headers:
            kwargs["headers"] = headers

        try:
            resp = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"{operation}: timeout calling {url}")
            raise KuduError(operation, f"timeout: {e}") from e
        except httpx.HTTPError as e:
            logger.error(f"{operation}: cannot reach {url}: {e}")
            raise KuduError(operation, str(e)) from e

        if resp.status_code not in ok_statuses:
            raise KuduError(operation, resp.text[:500], resp.status_code)
        return resp

    # ------------------------------------------------------------------
    # APP DISCOVERY
    # ------------------------------------------------------------------

    async def app_exists(self) -> bool:
        """Check whether the SCM host name resolves (the app has been created)."""
        loop = asyncio.get_running_loop()
        try:
            await loop.getaddrinfo(self.scm_host, 443, type=socket.SOCK_STREAM)
        except socket.gaierror as e:
            # Name not found: the app has never been created
            if e.errno in (socket.EAI_NONAME, getattr(socket, "EAI_NODATA", None)):
                return False
            raise KuduError("Resolve SCM host", str(e)) from e
        return True

    async def list_functions(self) -> List[str]:
        """Names of the functions currently deployed to the app."""
        resp = await self._request(
            "List functions",
            "GET",
            f"{self.scm_url}/api/functions",
            ok_statuses=(200, 404),
            accept="application/json,*/*",
        )
        if resp.status_code != 200:
            logger.warning(f"Function list unavailable for {self.app_name} ({resp.status_code})")
            return []
        return [entry["name"] for entry in resp.json()]

    # ------------------------------------------------------------------
    # DEPLOYMENT
    # ------------------------------------------------------------------

    async def delete_function(self, function_name: str) -> None:
        logger.info(f"Deleting function: {function_name}")
        await self._request(
            f"Delete function {function_name}",
            "DELETE",
            f"{self.scm_url}/api/vfs/site/wwwroot/{function_name}/",
            params={"recursive": "true"},
            content_type="application/json",
        )

    async def upload_zip(self, function_name: str, archive: bytes) -> None:
        """Extract a function archive into site/wwwroot."""
        logger.info(f"Uploading function: {function_name} ({len(archive)} bytes)")
        await self._request(
            f"Upload function {function_name}",
            "PUT",
            f"{self.scm_url}/api/zip/site/wwwroot/",
            content=archive,
            content_type="application/zip",
        )

    # ------------------------------------------------------------------
    # INVOCATION
    # ------------------------------------------------------------------

    async def get_master_key(self) -> str:
        resp = await self._request(
            "Get master key",
            "GET",
            f"{self.scm_url}/api/functions/admin/masterkey",
            content_type="application/json",
        )
        return resp.json()["masterKey"]

    async def invoke_http(
        self,
        function_name: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Call an HTTP-triggered function with data as query parameters."""
        return await self._request(
            f"Invoke {function_name}",
            "GET",
            f"{self.app_url}/api/{function_name}",
            ok_statuses=tuple(range(200, 500)),
            authenticated=False,
            params={k: str(v) for k, v in (data or {}).items()},
        )

    async def invoke_admin(
        self,
        function_name: str,
        master_key: str,
        data: Any = None,
    ) -> httpx.Response:
        """Run a non-HTTP function through the host admin API."""
        return await self._request(
            f"Invoke {function_name}",
            "POST",
            f"{self.app_url}/admin/functions/{function_name}",
            authenticated=False,
            json=data if data is not None else {},
            headers={"x-functions-key": master_key, "Accept": "application/json,*/*"},
        )

    # ------------------------------------------------------------------
    # LOGS
    # ------------------------------------------------------------------

    async def get_latest_invocation_id(self, function_name: str) -> Optional[str]:
        resp = await self._request(
            f"List invocations of {function_name}",
            "GET",
            f"{self.scm_url}/azurejobs/api/functions/definitions/"
            f"{self.app_name}-{function_name}/invocations",
            params={"limit": str(self.defaults.invocation_limit)},
            content_type="application/json",
        )
        entries = resp.json().get("entries") or []
        if not entries:
            return None
        return entries[0]["id"]

    async def get_invocation_output(self, invocation_id: str) -> str:
        resp = await self._request(
            f"Get output of invocation {invocation_id}",
            "GET",
            f"{self.scm_url}/azurejobs/api/log/output/{invocation_id}",
            content_type="application/json",
        )
        return resp.text

    async def stream_logs(self, function_name: str) -> AsyncIterator[str]:
        """
        Tail the live application log of one function.

        Yields text chunks as the host writes them, until the SCM site
        closes the stream. No read timeout applies.
        """
        operation = f"Stream logs of {function_name}"
        url = f"{self.scm_url}{LOG_STREAM_PATH}{function_name}"
        headers = await self._auth_headers(operation)
        timeout = httpx.Timeout(None, connect=self.defaults.connect_timeout)

        try:
            async with self.client.stream("GET", url, headers=headers, timeout=timeout) as resp:
                if resp.status_code != 200:
                    await resp.aread()
                    raise KuduError(operation, resp.text[:500], resp.status_code)
                async for chunk in resp.aiter_text():
                    if chunk:
                        yield chunk
        except httpx.HTTPError as e:
            logger.error(f"{operation}: {e}")
            raise KuduError(operation, str(e)) from e


__all__ = [
    "LOG_STREAM_PATH",
    "KuduError",
    "KuduClient",
]

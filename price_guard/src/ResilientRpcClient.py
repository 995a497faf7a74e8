"""ResilientRpcClient: JSON-RPC transport with ordered endpoint fallback.

Endpoints are tried strictly one after another, in configured order. Each
attempt is bounded by a hard timeout. The first endpoint that returns a
JSON-RPC ``result`` wins and no further endpoints are contacted. An endpoint
fails when:
    - the transport fails (connection refused, timeout, non-2xx status)
    - the body is not a JSON object
    - the body has no ``result`` member (e.g. a JSON-RPC ``error`` reply)

Each failure is passed to the failure reporter and the next endpoint is
tried. Endpoints are never retried within one request.

.. code-block:: python

    client = ResilientRpcClient()
    request = RpcRequest("eth_blockNumber", [])
    block_hex = await client.send(
        request, ["https://rpc-a.example", "https://rpc-b.example"], 5000
    )
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

import httpx
from websockets.asyncio.client import connect
from websockets.exceptions import WebSocketException

from .errors import AllEndpointsFailedError, EndpointError, NoEndpointsConfiguredError

logger = logging.getLogger(__name__)

_request_ids = itertools.count(1)


@dataclass(frozen=True)
class RpcRequest:
    """A JSON-RPC 2.0 request.

    :ivar method: RPC method name (e.g., "eth_call").
    :ivar params: Positional parameters.
    :ivar id: Request identifier; allocated from a process-wide counter.
    """

    method: str
    params: list[Any] = field(default_factory=list)
    id: int = field(default_factory=lambda: next(_request_ids))

    def to_payload(self) -> dict[str, Any]:
        """Build the JSON body sent to the node."""
        return {
            "jsonrpc": "2.0",
            "method": self.method,
            "params": list(self.params),
            "id": self.id,
        }


def log_endpoint_failure(error: EndpointError) -> None:
    """Default failure reporter: log the failed endpoint."""
    logger.warning(f"RPC endpoint {error.url} failed: {error.reason}")


class ResilientRpcClient:
    """Sends JSON-RPC requests to the first endpoint that answers.

    HTTP(S) endpoints share one ``httpx.AsyncClient``; WebSocket endpoints
    (``ws://``, ``wss://``) open one connection per attempt.

    :ivar failure_reporter: Called with an :class:`EndpointError` for every
        failed attempt.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        failure_reporter: Callable[[EndpointError], None] | None = None,
        ws_connect: Callable[..., Any] | None = None,
    ) -> None:
        """Initialize the client.

        :param client: Optional HTTP client to use instead of a lazily created one.
        :param failure_reporter: Sink for per-endpoint failures (default: log).
        :param ws_connect: WebSocket connect factory (default: websockets' connect).
        """
        self._client = client
        self.failure_reporter = failure_reporter or log_endpoint_failure
        self._ws_connect = ws_connect or connect

    def get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client.

        :returns: Shared httpx.AsyncClient instance.
        """
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                limits=httpx.Limits(max_connections=50, max_keepalive_connections=20),
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ResilientRpcClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def send(
        self,
        payload: RpcRequest | dict[str, Any],
        endpoints: Sequence[str],
        timeout_ms: float,
    ) -> Any:
        """Send a request, falling back through endpoints in order.

        :param payload: Request to send.
        :param endpoints: Endpoint URLs in priority order.
        :param timeout_ms: Per-attempt timeout in milliseconds.
        :returns: The ``result`` member of the first usable response.
        :raises NoEndpointsConfiguredError: If ``endpoints`` is empty.
        :raises AllEndpointsFailedError: If every endpoint failed.
        """
        if not endpoints:
            raise NoEndpointsConfiguredError()

        body = payload.to_payload() if isinstance(payload, RpcRequest) else payload
        timeout = timeout_ms / 1000
        failures: list[EndpointError] = []

        for url in endpoints:
            try:
                return await asyncio.wait_for(
                    self._attempt(url, body, timeout), timeout=timeout
                )
            except asyncio.TimeoutError:
                failure = EndpointError(url, f"timed out after {timeout_ms}ms")
            except EndpointError as e:
                failure = e
            failures.append(failure)
            self.failure_reporter(failure)

        raise AllEndpointsFailedError(list(endpoints), failures)

    async def _attempt(self, url: str, body: dict[str, Any], timeout: float) -> Any:
        """Make a single request to one endpoint.

        :raises EndpointError: If the endpoint did not return a usable result.
        """
        if url.startswith(("ws://", "wss://")):
            response = await self._ws_request(url, body)
        else:
            response = await self._http_request(url, body, timeout)

        if not isinstance(response, dict):
            raise EndpointError(url, "response is not a JSON object")
        if "result" not in response:
            error = response.get("error")
            reason = f"RPC error: {error}" if error is not None else "missing result"
            raise EndpointError(url, reason)

        logger.debug(f"RPC {body.get('method')} answered by {url}")
        return response["result"]

    async def _http_request(
        self, url: str, body: dict[str, Any], timeout: float
    ) -> Any:
        client = self.get_client()
        try:
            response = await client.post(url, json=body, timeout=timeout)
        except httpx.TimeoutException as e:
            raise EndpointError(url, f"request timeout: {e}") from e
        except httpx.RequestError as e:
            raise EndpointError(url, f"request failed: {e}") from e

        if not response.is_success:
            raise EndpointError(
                url,
                f"HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise EndpointError(url, "invalid JSON body") from e

    async def _ws_request(self, url: str, body: dict[str, Any]) -> Any:
        try:
            async with self._ws_connect(url) as websocket:
                await websocket.send(json.dumps(body))
                raw = await websocket.recv()
        except (WebSocketException, OSError) as e:
            raise EndpointError(url, f"websocket failed: {e}") from e
        try:
            return json.loads(raw)
        except ValueError as e:
            raise EndpointError(url, "invalid JSON body") from e

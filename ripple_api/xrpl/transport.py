"""
Transport protocol for XRPL JSON-RPC calls.

Defines the seam where concrete HTTP implementations plug in. The JSON-RPC
client depends on this protocol, not on httpx directly, so the transport
can be swapped for test fakes without editing client logic.

Concrete implementations:
    - HttpxTransport (default, one pooled httpx.AsyncClient)
    - FakeTransport (tests, returns canned responses)

Connection lifecycle (HttpxTransport):
    - connect-on-first-use: the AsyncClient is created by the first call.
    - reuse: later calls share the client and its connection pool.
    - reconnect-on-closed: a closed client is replaced on the next call.
    - aclose(): releases the pool (app shutdown).
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx


@runtime_checkable
class JsonRpcTransport(Protocol):
    """Async transport for JSON-RPC POST requests."""

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a JSON-RPC request and return the parsed response.

        Raises:
            Exception: On transport-level failures (connection refused,
                timeout, TLS error, non-2xx status). The JSON-RPC client
                maps these to LedgerUnavailableError.
        """
        ...


class HttpxTransport:
    """Default transport using a lazily created httpx.AsyncClient.

    Args:
        timeout: Request timeout in seconds.
    """

    def __init__(self, timeout: float = 30.0) -> None:
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None and not self._client.is_closed

    def _connect(self) -> httpx.AsyncClient:
        if not self.is_connected:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers={"Content-Type": "application/json"},
            )
        assert self._client is not None
        return self._client

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send JSON-RPC request via the shared client."""
        client = self._connect()
        response = await client.post(url, json=payload)
        response.raise_for_status()
        result: dict[str, Any] = response.json()
        return result

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

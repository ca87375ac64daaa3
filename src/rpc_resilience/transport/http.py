"""HTTP 传输层：基于 httpx 的异步 JSON-RPC 连接，绑定单个节点和链 ID。

JSON-RPC transport using httpx for async requests.

A JsonRpcConnection is the connection handle handed out by the resilience
layer: it is pinned to exactly one endpoint URL and one expected chain id.
"""

from __future__ import annotations

import itertools
import os
from contextlib import suppress
from dataclasses import dataclass
from typing import Any

import httpx

from rpc_resilience.errors import RpcResponseError, TransportError
from rpc_resilience.telemetry.logger import mask_url

# Default timeouts
_DEFAULT_TIMEOUT = 30.0
_DEFAULT_CONNECT_TIMEOUT = 10.0

_UA_VERSION: str | None = None

KNOWN_NETWORKS: dict[int, str] = {
    1: "mainnet",
    8453: "base",
    84532: "base-sepolia",
    11155111: "sepolia",
}


def _get_ua_version() -> str:
    """Get package version for User-Agent (cached)."""
    global _UA_VERSION
    if _UA_VERSION is None:
        try:
            from importlib.metadata import version

            _UA_VERSION = version("rpc-resilience")
        except Exception:
            _UA_VERSION = "0.1.0"
    return _UA_VERSION


def _parse_quantity(value: Any) -> int:
    """Decode a JSON-RPC quantity (hex string, decimal string or int)."""
    if isinstance(value, bool):
        raise ValueError(f"Not a quantity: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(text)
    raise ValueError(f"Not a quantity: {value!r}")


@dataclass(frozen=True)
class Network:
    """Network identity reported by an endpoint."""

    chain_id: int
    name: str = "unknown"

    @classmethod
    def from_chain_id(cls, chain_id: int) -> Network:
        return cls(chain_id=chain_id, name=KNOWN_NETWORKS.get(chain_id, "unknown"))


class JsonRpcConnection:
    """Connection handle for one JSON-RPC endpoint.

    Owns an httpx.AsyncClient. Close it (or use it as an async context
    manager) when the caller is done with it.

    Example:
        >>> async with JsonRpcConnection("https://sepolia.base.org", 84532) as conn:
        ...     block = await conn.get_block_number()
    """

    def __init__(
        self,
        url: str,
        chain_id: int,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize the connection.

        Args:
            url: Endpoint URL
            chain_id: Chain id the endpoint is expected to serve
            timeout: Request timeout in seconds
            transport: Optional httpx transport (mocking, custom pools)
            headers: Additional request headers
        """
        self._url = url
        self._chain_id = chain_id
        self._transport = transport
        self._extra_headers = headers or {}
        self._ids = itertools.count(1)

        self._timeout = timeout
        if self._timeout is None:
            env_timeout = os.getenv("RPC_HTTP_TIMEOUT_SECS")
            if env_timeout:
                with suppress(ValueError):
                    self._timeout = float(env_timeout)
        if self._timeout is None:
            self._timeout = _DEFAULT_TIMEOUT

        # Client instance (lazy initialization)
        self._client: httpx.AsyncClient | None = None
        self._closed = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def chain_id(self) -> int:
        """Chain id this handle is pinned to."""
        return self._chain_id

    @property
    def closed(self) -> bool:
        """True once close() has been called; an unused handle is open."""
        return self._closed

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        self._closed = False
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout, connect=_DEFAULT_CONNECT_TIMEOUT),
                transport=self._transport,
                headers=self._build_headers(),
            )
        return self._client

    def _build_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"rpc-resilience/{_get_ua_version()}",
        }
        headers.update(self._extra_headers)
        return headers

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self._closed = True

    async def send(self, method: str, params: list[Any] | None = None) -> Any:
        """Send a JSON-RPC request and return its result.

        Args:
            method: JSON-RPC method name
            params: Positional parameters

        Returns:
            The `result` member of the response

        Raises:
            TransportError: On network errors, HTTP errors or malformed bodies
            RpcResponseError: When the endpoint returns a JSON-RPC error
        """
        client = self._get_client()
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }
        safe_url = mask_url(self._url)

        try:
            response = await client.post(self._url, json=payload)
        except httpx.ConnectError as e:
            raise TransportError(
                f"Connection failed: {e}", url=safe_url, cause=e
            ) from e
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Request timed out: {e}", url=safe_url, cause=e
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(
                f"HTTP error: {e}", url=safe_url, cause=e
            ) from e

        if response.status_code >= 400:
            raise TransportError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                url=safe_url,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON-RPC response for {method}", url=safe_url, cause=e
            ) from e

        if not isinstance(body, dict):
            raise TransportError(
                f"Invalid JSON-RPC response for {method}: expected an object",
                url=safe_url,
            )

        error = body.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcResponseError(
                    error.get("message") or "RPC Error",
                    url=safe_url,
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise RpcResponseError(str(error), url=safe_url)

        if "result" not in body:
            raise TransportError(
                f"JSON-RPC response for {method} has no result", url=safe_url
            )
        return body["result"]

    async def _send_quantity(self, method: str) -> int:
        result = await self.send(method)
        try:
            return _parse_quantity(result)
        except ValueError as e:
            raise TransportError(
                f"Unexpected {method} result: {result!r}",
                url=mask_url(self._url),
                cause=e,
            ) from e

    async def get_network(self) -> Network:
        """Fetch network identity via net_version."""
        return Network.from_chain_id(await self._send_quantity("net_version"))

    async def get_chain_id(self) -> int:
        """Fetch chain id via eth_chainId."""
        return await self._send_quantity("eth_chainId")

    async def get_block_number(self) -> int:
        """Fetch the latest block number."""
        return await self._send_quantity("eth_blockNumber")

    async def __aenter__(self) -> JsonRpcConnection:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"JsonRpcConnection(url={mask_url(self._url)!r}, chain_id={self._chain_id})"

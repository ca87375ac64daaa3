"""Root pytest fixtures for rpc-resilience tests."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field

import httpx
import pytest

from rpc_resilience.cache.health import EndpointHealthCache
from rpc_resilience.transport.http import JsonRpcConnection

CHAIN_ID = 84532


@dataclass
class FakeNode:
    """Scripted behaviour of one fake RPC endpoint."""

    chain_id: int = CHAIN_ID
    block_number: int = 1234
    down: bool = False
    status_code: int = 200
    delay: float = 0.0
    fail_times: int = 0
    """Connection failures for the first N net_version calls"""
    rpc_error: str | None = None


@dataclass
class FakeRpcNetwork:
    """Routes JSON-RPC requests by host to FakeNode behaviour."""

    nodes: dict[str, FakeNode] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)

    def add(self, url: str, **kwargs: object) -> FakeNode:
        node = FakeNode(**kwargs)  # type: ignore[arg-type]
        self.nodes[httpx.URL(url).host] = node
        return node

    def hosts_called(self) -> list[str]:
        """Hosts in first-call order, without repeats."""
        return list(dict.fromkeys(host for host, _ in self.calls))

    def probe_count(self, url: str) -> int:
        host = httpx.URL(url).host
        return sum(1 for h, m in self.calls if h == host and m == "net_version")

    async def handler(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        body = json.loads(request.content)
        method = body["method"]
        self.calls.append((host, method))

        node = self.nodes.get(host)
        if node is None or node.down:
            raise httpx.ConnectError("connection refused", request=request)

        if method == "net_version" and node.fail_times > 0:
            node.fail_times -= 1
            raise httpx.ConnectError("connection reset", request=request)

        if node.delay:
            await asyncio.sleep(node.delay)

        if node.status_code >= 400:
            return httpx.Response(node.status_code, json={"message": "unavailable"})

        if node.rpc_error:
            return httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": body["id"],
                    "error": {"code": -32000, "message": node.rpc_error},
                },
            )

        results = {
            "net_version": str(node.chain_id),
            "eth_chainId": hex(node.chain_id),
            "eth_blockNumber": hex(node.block_number),
        }
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": body["id"], "result": results.get(method)},
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def connection_factory(self, url: str, chain_id: int) -> JsonRpcConnection:
        return JsonRpcConnection(url, chain_id, transport=self.transport)


class FakeClock:
    """Controllable epoch-seconds clock."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def rpc_network() -> FakeRpcNetwork:
    return FakeRpcNetwork()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def health_cache(clock: FakeClock) -> EndpointHealthCache:
    return EndpointHealthCache(clock=clock)

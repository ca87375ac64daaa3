"""Tests for the fallback executor."""

from __future__ import annotations

import os
from unittest.mock import patch

import httpx
import pytest

from rpc_resilience.cache import EndpointHealthCache, LastKnownGoodCache, MemoryStore
from rpc_resilience.errors import AllProvidersFailed
from rpc_resilience.resilience import (
    FallbackExecutor,
    RetryConfig,
    RobustConnectionFactory,
    create_connection_with_fallback,
    execute_with_fallback,
    get_default_executor,
    set_default_executor,
)
from rpc_resilience.routing import CandidateEndpointProvider
from rpc_resilience.settings import RpcSettings
from rpc_resilience.transport import JsonRpcConnection
from tests.conftest import CHAIN_ID, FakeClock, FakeRpcNetwork, SleepRecorder

A = "https://a.example"
B = "https://b.example"
C = "https://c.example"
X = "https://x.example"

FAST = RetryConfig(timeout_ms=1000, max_retries=0)


def _host(url: str) -> str:
    return httpx.URL(url).host


def _executor(
    rpc_network: FakeRpcNetwork,
    health_cache: EndpointHealthCache,
    sleeper: SleepRecorder,
    clock: FakeClock,
    urls: list[str],
    store: MemoryStore | None = None,
) -> FallbackExecutor:
    settings = RpcSettings(rpc_urls=urls, public_endpoints=[])
    return FallbackExecutor(
        provider=CandidateEndpointProvider(settings, health_cache),
        factory=RobustConnectionFactory(
            health_cache,
            connection_factory=rpc_network.connection_factory,
            sleep=sleeper,
        ),
        last_good=LastKnownGoodCache(store or MemoryStore(), clock=clock),
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def executor(
    rpc_network: FakeRpcNetwork,
    health_cache: EndpointHealthCache,
    sleeper: SleepRecorder,
    clock: FakeClock,
    store: MemoryStore,
) -> FallbackExecutor:
    return _executor(rpc_network, health_cache, sleeper, clock, [A, B, C], store)


async def _block_number(connection: JsonRpcConnection) -> int:
    return await connection.get_block_number()


class TestExecute:
    """Tests for FallbackExecutor.execute()."""

    @pytest.mark.asyncio
    async def test_first_healthy_wins(
        self,
        executor: FallbackExecutor,
        rpc_network: FakeRpcNetwork,
        store: MemoryStore,
        clock: FakeClock,
    ) -> None:
        rpc_network.add(A, down=True)
        rpc_network.add(B, block_number=42)
        rpc_network.add(C, block_number=99)

        assert await executor.execute(_block_number, CHAIN_ID, FAST) == 42

        # C is never contacted after B succeeded
        assert rpc_network.hosts_called() == [_host(A), _host(B)]
        assert await store.read() == {"url": B, "timestamp": int(clock() * 1000)}

    @pytest.mark.asyncio
    async def test_operation_failure_moves_to_next_candidate(
        self,
        executor: FallbackExecutor,
        rpc_network: FakeRpcNetwork,
        store: MemoryStore,
    ) -> None:
        for url in (A, B, C):
            rpc_network.add(url)
        used: list[str] = []

        async def flaky(connection: JsonRpcConnection) -> str:
            used.append(connection.url)
            if connection.url == A:
                raise ValueError("contract call reverted")
            return connection.url

        assert await executor.execute(flaky, CHAIN_ID, FAST) == B
        assert used == [A, B]
        assert (await store.read() or {})["url"] == B

    @pytest.mark.asyncio
    async def test_connection_closed_after_operation(
        self,
        executor: FallbackExecutor,
        rpc_network: FakeRpcNetwork,
    ) -> None:
        rpc_network.add(A)
        seen: list[JsonRpcConnection] = []

        async def keep(connection: JsonRpcConnection) -> None:
            seen.append(connection)

        await executor.execute(keep, CHAIN_ID, FAST)
        assert seen[0].closed is True

    @pytest.mark.asyncio
    async def test_cached_endpoint_tried_first_and_not_repeated(
        self,
        rpc_network: FakeRpcNetwork,
        health_cache: EndpointHealthCache,
        sleeper: SleepRecorder,
        clock: FakeClock,
    ) -> None:
        store = MemoryStore({"url": X, "timestamp": int((clock() - 30 * 60) * 1000)})
        executor = _executor(rpc_network, health_cache, sleeper, clock, [A, X, B], store)
        rpc_network.add(A, down=True)
        rpc_network.add(X)
        rpc_network.add(B)
        used: list[str] = []

        async def fail_on_x(connection: JsonRpcConnection) -> str:
            used.append(connection.url)
            if connection.url == X:
                raise RuntimeError("stale state")
            return connection.url

        assert await executor.execute(fail_on_x, CHAIN_ID, FAST) == B
        assert rpc_network.hosts_called() == [_host(X), _host(A), _host(B)]
        assert used == [X, B]
        assert rpc_network.probe_count(X) == 1

    @pytest.mark.asyncio
    async def test_cached_healthy_endpoint_used(
        self,
        rpc_network: FakeRpcNetwork,
        health_cache: EndpointHealthCache,
        sleeper: SleepRecorder,
        clock: FakeClock,
    ) -> None:
        store = MemoryStore({"url": X, "timestamp": int((clock() - 30 * 60) * 1000)})
        executor = _executor(rpc_network, health_cache, sleeper, clock, [A, X], store)
        rpc_network.add(A)
        rpc_network.add(X, block_number=7)

        assert await executor.execute(_block_number, CHAIN_ID, FAST) == 7
        assert rpc_network.hosts_called() == [_host(X)]

    @pytest.mark.asyncio
    async def test_expired_cache_not_tried_first(
        self,
        rpc_network: FakeRpcNetwork,
        health_cache: EndpointHealthCache,
        sleeper: SleepRecorder,
        clock: FakeClock,
    ) -> None:
        store = MemoryStore({"url": X, "timestamp": int((clock() - 2 * 60 * 60) * 1000)})
        executor = _executor(rpc_network, health_cache, sleeper, clock, [A, X], store)
        rpc_network.add(A)
        rpc_network.add(X)

        await executor.execute(_block_number, CHAIN_ID, FAST)
        assert rpc_network.hosts_called() == [_host(A)]

    @pytest.mark.asyncio
    async def test_all_fail(
        self,
        rpc_network: FakeRpcNetwork,
        health_cache: EndpointHealthCache,
        sleeper: SleepRecorder,
        clock: FakeClock,
    ) -> None:
        store = MemoryStore({"url": X, "timestamp": int(clock() * 1000)})
        executor = _executor(rpc_network, health_cache, sleeper, clock, [A, B, C], store)
        rpc_network.add(A, down=True)
        rpc_network.add(B, chain_id=1)
        rpc_network.add(C, status_code=500)
        health_cache.record_failure(X, "timeout")

        with pytest.raises(AllProvidersFailed) as exc_info:
            await executor.execute(_block_number, CHAIN_ID, FAST)

        error = exc_info.value
        assert error.urls == [X, A, B, C]
        lines = str(error).splitlines()[1:]
        assert len(lines) == 4
        assert lines[0] == f"{X}: skipped, cached unhealthy (timeout)"
        assert lines[1].startswith(f"{A}: exhausted after 1 attempts")
        assert "Wrong chain ID" in lines[2]
        assert "HTTP 500" in lines[3]
        # Cache untouched on total failure
        assert (await store.read() or {})["url"] == X

    @pytest.mark.asyncio
    async def test_operation_failures_reported(
        self,
        executor: FallbackExecutor,
        rpc_network: FakeRpcNetwork,
    ) -> None:
        for url in (A, B, C):
            rpc_network.add(url)

        async def broken(connection: JsonRpcConnection) -> None:
            raise ValueError("bad call")

        with pytest.raises(AllProvidersFailed) as exc_info:
            await executor.execute(broken, CHAIN_ID, FAST)
        assert [a.reason for a in exc_info.value.attempts] == ["operation failed: bad call"] * 3


class TestCreateConnection:
    """Tests for FallbackExecutor.create_connection()."""

    @pytest.mark.asyncio
    async def test_returns_open_connection(
        self,
        executor: FallbackExecutor,
        rpc_network: FakeRpcNetwork,
        store: MemoryStore,
    ) -> None:
        rpc_network.add(A, down=True)
        rpc_network.add(B)

        connection = await executor.create_connection(CHAIN_ID, FAST)
        try:
            assert connection.url == B
            assert connection.chain_id == CHAIN_ID
            assert await connection.get_block_number() == 1234
        finally:
            await connection.close()
        assert (await store.read() or {})["url"] == B

    @pytest.mark.asyncio
    async def test_cached_connection_persisted(
        self,
        rpc_network: FakeRpcNetwork,
        health_cache: EndpointHealthCache,
        sleeper: SleepRecorder,
        clock: FakeClock,
    ) -> None:
        store = MemoryStore({"url": X, "timestamp": int((clock() - 10 * 60) * 1000)})
        executor = _executor(rpc_network, health_cache, sleeper, clock, [A], store)
        rpc_network.add(X)

        connection = await executor.create_connection(CHAIN_ID, FAST)
        await connection.close()
        assert connection.url == X
        assert await store.read() == {"url": X, "timestamp": int(clock() * 1000)}

    @pytest.mark.asyncio
    async def test_all_fail(
        self,
        executor: FallbackExecutor,
        rpc_network: FakeRpcNetwork,
    ) -> None:
        for url in (A, B, C):
            rpc_network.add(url, down=True)

        with pytest.raises(AllProvidersFailed) as exc_info:
            await executor.create_connection(CHAIN_ID, FAST)
        assert exc_info.value.urls == [A, B, C]


class TestDefaultExecutor:
    """Tests for the module-level entry points."""

    @pytest.mark.asyncio
    async def test_entry_points_use_default_executor(
        self,
        executor: FallbackExecutor,
        rpc_network: FakeRpcNetwork,
    ) -> None:
        rpc_network.add(A, block_number=5)
        set_default_executor(executor)
        try:
            assert await execute_with_fallback(_block_number, CHAIN_ID, FAST) == 5
            connection = await create_connection_with_fallback(CHAIN_ID, FAST)
            assert connection.url == A
            await connection.close()
        finally:
            set_default_executor(None)

    def test_default_executor_reads_chain_id_from_env(self) -> None:
        env = {"RPC_URL": "https://mainnet-node.example", "RPC_CHAIN_ID": "8453"}
        set_default_executor(None)
        try:
            with patch.dict(os.environ, env, clear=True):
                executor = get_default_executor()
            assert executor.provider.settings.chain_id == 8453
            assert executor.resolve_chain_id() == 8453
            assert executor.resolve_chain_id(1) == 1
        finally:
            set_default_executor(None)

    @pytest.mark.asyncio
    async def test_entry_points_use_configured_chain_id(
        self,
        rpc_network: FakeRpcNetwork,
        health_cache: EndpointHealthCache,
        sleeper: SleepRecorder,
        clock: FakeClock,
    ) -> None:
        mainnet = "https://mainnet-node.example"
        env = {"RPC_URL": mainnet, "RPC_CHAIN_ID": "8453"}
        with patch.dict(os.environ, env, clear=True):
            settings = RpcSettings.from_env()
        executor = FallbackExecutor(
            provider=CandidateEndpointProvider(settings, health_cache),
            factory=RobustConnectionFactory(
                health_cache,
                connection_factory=rpc_network.connection_factory,
                sleep=sleeper,
            ),
            last_good=LastKnownGoodCache(MemoryStore(), clock=clock),
        )
        rpc_network.add(mainnet, chain_id=8453, block_number=11)

        set_default_executor(executor)
        try:
            assert await execute_with_fallback(_block_number, config=FAST) == 11
            connection = await create_connection_with_fallback(config=FAST)
            assert connection.chain_id == 8453
            await connection.close()
        finally:
            set_default_executor(None)
        assert rpc_network.hosts_called() == [_host(mainnet)]

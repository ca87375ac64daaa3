"""
Fallback executor for multi-endpoint failover.

Tries candidate endpoints in priority order for one logical operation,
starting with the last endpoint that worked.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from rpc_resilience.cache.backends import JsonFileStore
from rpc_resilience.cache.health import get_health_cache
from rpc_resilience.cache.last_good import LastKnownGoodCache
from rpc_resilience.errors import AllProvidersFailed, FailedAttempt
from rpc_resilience.resilience.retry import RetryConfig, RobustConnectionFactory
from rpc_resilience.routing.endpoints import CandidateEndpointProvider
from rpc_resilience.settings import RpcSettings
from rpc_resilience.telemetry.logger import (
    LogContext,
    get_log_context,
    get_logger,
    mask_url,
    set_log_context,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator

    from rpc_resilience.transport.http import JsonRpcConnection

T = TypeVar("T")

logger = get_logger("rpc_resilience.fallback")


class FallbackExecutor:
    """Runs operations against the first healthy endpoint.

    The cached last-known-good endpoint is tried first, then every other
    candidate in priority order. The first success ends the traversal
    and is persisted.

    Example:
        >>> executor = FallbackExecutor(provider, factory, last_good)
        >>> block = await executor.execute(lambda c: c.get_block_number(), 84532)
    """

    def __init__(
        self,
        provider: CandidateEndpointProvider,
        factory: RobustConnectionFactory,
        last_good: LastKnownGoodCache,
    ) -> None:
        self._provider = provider
        self._factory = factory
        self._last_good = last_good

    @property
    def provider(self) -> CandidateEndpointProvider:
        return self._provider

    @property
    def factory(self) -> RobustConnectionFactory:
        return self._factory

    @property
    def last_good(self) -> LastKnownGoodCache:
        return self._last_good

    def resolve_chain_id(self, chain_id: int | None = None) -> int:
        """Return chain_id, or the chain id configured in the provider's settings."""
        return self._provider.settings.chain_id if chain_id is None else chain_id

    @classmethod
    def from_settings(cls, settings: RpcSettings) -> FallbackExecutor:
        """Wire an executor from settings and the process health cache."""
        health_cache = get_health_cache()
        return cls(
            provider=CandidateEndpointProvider(settings, health_cache),
            factory=RobustConnectionFactory(health_cache),
            last_good=LastKnownGoodCache(JsonFileStore(settings.cache_file)),
        )

    def _traversal(self, cached_url: str | None) -> Iterator[str]:
        if cached_url:
            yield cached_url
        for url in self._provider.prioritized_endpoints():
            if url != cached_url:
                yield url

    async def _run(
        self,
        operation: Callable[[JsonRpcConnection], Awaitable[T]] | None,
        expected_chain_id: int,
        config: RetryConfig | None,
    ) -> Any:
        config = config or RetryConfig()
        failures: list[FailedAttempt] = []
        cached_url = await self._last_good.read()

        previous_context = get_log_context()
        try:
            for url in self._traversal(cached_url):
                safe_url = mask_url(url)
                set_log_context(
                    LogContext(
                        operation="execute" if operation else "connect",
                        chain_id=expected_chain_id,
                        endpoint=safe_url,
                    )
                )

                result = await self._factory.create(url, expected_chain_id, config)
                if result.connection is None:
                    failures.append(FailedAttempt(url=safe_url, reason=result.reason))
                    continue

                connection = result.connection
                if operation is None:
                    await self._last_good.write(url)
                    logger.info(f"Successfully created provider using: {safe_url}")
                    return connection

                try:
                    value = await operation(connection)
                except Exception as e:
                    reason = f"operation failed: {e}"
                    logger.warning(f"Provider {safe_url} failed: {e}")
                    failures.append(FailedAttempt(url=safe_url, reason=reason))
                    continue
                finally:
                    await connection.close()

                await self._last_good.write(url)
                logger.info(f"Operation succeeded using: {safe_url}")
                return value
        finally:
            set_log_context(previous_context)

        error = AllProvidersFailed(failures)
        logger.error(error.message)
        raise error

    async def create_connection(
        self,
        expected_chain_id: int,
        config: RetryConfig | None = None,
    ) -> JsonRpcConnection:
        """Return a probed connection to the first healthy endpoint.

        The caller owns the returned connection and must close it.

        Raises:
            AllProvidersFailed: If no candidate yields a connection
        """
        return await self._run(None, expected_chain_id, config)

    async def execute(
        self,
        operation: Callable[[JsonRpcConnection], Awaitable[T]],
        expected_chain_id: int,
        config: RetryConfig | None = None,
    ) -> T:
        """Run `operation` against the first endpoint where it succeeds.

        An operation that raises counts as a failure of that endpoint and
        the traversal moves on.

        Raises:
            AllProvidersFailed: If every candidate fails
        """
        return await self._run(operation, expected_chain_id, config)


_default_executor: FallbackExecutor | None = None


def get_default_executor() -> FallbackExecutor:
    """Get the process default executor, wired from the environment."""
    global _default_executor
    if _default_executor is None:
        _default_executor = FallbackExecutor.from_settings(RpcSettings.from_env())
    return _default_executor


def set_default_executor(executor: FallbackExecutor | None) -> None:
    """Replace the process default executor (None resets it)."""
    global _default_executor
    _default_executor = executor


async def create_connection_with_fallback(
    chain_id: int | None = None,
    config: RetryConfig | None = None,
) -> JsonRpcConnection:
    """Create a connection to the first healthy endpoint.

    Args:
        chain_id: Expected chain id, defaults to the configured chain id
        config: Retry configuration

    Returns:
        Probed JsonRpcConnection owned by the caller

    Raises:
        AllProvidersFailed: If every candidate fails
    """
    executor = get_default_executor()
    return await executor.create_connection(executor.resolve_chain_id(chain_id), config)


async def execute_with_fallback(
    operation: Callable[[JsonRpcConnection], Awaitable[T]],
    chain_id: int | None = None,
    config: RetryConfig | None = None,
) -> T:
    """Execute an operation with automatic endpoint fallback.

    Args:
        operation: Async callable receiving a connection
        chain_id: Expected chain id, defaults to the configured chain id
        config: Retry configuration

    Returns:
        The operation's result

    Raises:
        AllProvidersFailed: If every candidate fails
    """
    executor = get_default_executor()
    return await executor.execute(operation, executor.resolve_chain_id(chain_id), config)

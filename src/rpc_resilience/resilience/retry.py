"""
Robust connection factory with exponential backoff.

Produces a probed connection for one endpoint, retrying with backoff and
recording every attempt in the endpoint health cache.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from rpc_resilience.resilience.probe import probe
from rpc_resilience.telemetry.logger import get_logger, mask_url
from rpc_resilience.transport.http import JsonRpcConnection

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from rpc_resilience.cache.health import EndpointHealthCache

    ConnectionFactory = Callable[[str, int], JsonRpcConnection]

logger = get_logger("rpc_resilience.retry")


@dataclass
class RetryConfig:
    """Per-endpoint retry configuration.

    Attributes:
        timeout_ms: Deadline for each health probe
        max_retries: Retries after the first attempt (0 = single attempt)
        retry_delay_ms: Delay before the first retry
        backoff_multiplier: Growth factor applied per attempt
    """

    timeout_ms: int = 10000
    max_retries: int = 3
    retry_delay_ms: int = 1000
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_delay_ms < 0:
            raise ValueError("retry_delay_ms must be >= 0")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_ms(self, attempt: int) -> float:
        """Backoff before the retry that follows `attempt` (0-based)."""
        return self.retry_delay_ms * (self.backoff_multiplier ** attempt)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RetryConfig:
        """Create config from a mapping.

        Accepts snake_case field names as well as the camelCase keys
        (timeout, maxRetries, retryDelay, backoffMultiplier).
        """
        if not data:
            return cls()

        aliases = {
            "timeout": "timeout_ms",
            "maxRetries": "max_retries",
            "retryDelay": "retry_delay_ms",
            "backoffMultiplier": "backoff_multiplier",
        }
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name in cls.__dataclass_fields__:
                kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def no_retry(cls) -> RetryConfig:
        """Create a config that disables retries."""
        return cls(max_retries=0)


class ConnectionOutcome(str, Enum):
    """How a robust connection attempt ended."""

    CONNECTED = "connected"
    SKIPPED_UNHEALTHY = "skipped_unhealthy"
    EXHAUSTED = "exhausted"


@dataclass
class ConnectionResult:
    """Result of a robust connection attempt.

    Attributes:
        url: Endpoint URL
        outcome: Connected, skipped as cached-unhealthy, or exhausted
        connection: Probed handle (only when connected)
        attempts: Number of probes made
        error: Last failure reason
    """

    url: str
    outcome: ConnectionOutcome
    connection: JsonRpcConnection | None = None
    attempts: int = 0
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome is ConnectionOutcome.CONNECTED

    @property
    def reason(self) -> str:
        """Failure description for diagnostics."""
        if self.outcome is ConnectionOutcome.SKIPPED_UNHEALTHY:
            return f"skipped, cached unhealthy ({self.error})"
        if self.outcome is ConnectionOutcome.EXHAUSTED:
            return f"exhausted after {self.attempts} attempts: {self.error}"
        return "connected"


class RobustConnectionFactory:
    """Creates probed connections with retry and backoff.

    Never raises: failure is reported through ConnectionResult.outcome.

    Example:
        >>> factory = RobustConnectionFactory(EndpointHealthCache())
        >>> conn = await factory.create_robust_connection(url, 84532)
        >>> if conn is None:
        ...     print("endpoint unavailable")
    """

    def __init__(
        self,
        health_cache: EndpointHealthCache,
        *,
        connection_factory: ConnectionFactory = JsonRpcConnection,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the factory.

        Args:
            health_cache: Cache updated on every probe
            connection_factory: Builds a handle for (url, chain_id)
            sleep: Async sleep used for backoff (seconds)
        """
        self._health_cache = health_cache
        self._connection_factory = connection_factory
        self._sleep = sleep

    @property
    def health_cache(self) -> EndpointHealthCache:
        return self._health_cache

    async def create(
        self,
        url: str,
        expected_chain_id: int,
        config: RetryConfig | None = None,
    ) -> ConnectionResult:
        """Try to obtain a healthy connection to `url`.

        Args:
            url: Endpoint URL
            expected_chain_id: Chain id the endpoint must serve
            config: Retry configuration

        Returns:
            ConnectionResult
        """
        config = config or RetryConfig()
        safe_url = mask_url(url)

        cached = self._health_cache.get(url)
        if cached is not None and not cached.is_healthy:
            logger.warning(
                f"Skipping unhealthy provider (cached): {safe_url}",
                error=cached.error,
            )
            return ConnectionResult(
                url=url,
                outcome=ConnectionOutcome.SKIPPED_UNHEALTHY,
                error=cached.error,
            )

        logger.info(f"Testing RPC provider: {safe_url}")
        last_error: str | None = None

        for attempt in range(config.max_attempts):
            connection = self._connection_factory(url, expected_chain_id)
            try:
                result = await probe(connection, config.timeout_ms, expected_chain_id)
            except Exception as e:
                last_error = str(e)
                self._health_cache.record_failure(url, last_error)
                await connection.close()
                logger.warning(
                    f"Provider attempt {attempt + 1}/{config.max_attempts} failed: {safe_url}",
                    error=last_error,
                )
                if attempt < config.max_retries:
                    delay_ms = config.delay_ms(attempt)
                    logger.info(f"Retrying in {delay_ms:g}ms...")
                    await self._sleep(delay_ms / 1000)
                continue

            self._health_cache.record_success(url, result.response_time_ms)
            logger.info(
                f"Provider healthy: {safe_url} (response time: {result.response_time_ms}ms)"
            )
            return ConnectionResult(
                url=url,
                outcome=ConnectionOutcome.CONNECTED,
                connection=connection,
                attempts=attempt + 1,
            )

        logger.warning(f"All attempts failed for provider: {safe_url}")
        return ConnectionResult(
            url=url,
            outcome=ConnectionOutcome.EXHAUSTED,
            attempts=config.max_attempts,
            error=last_error,
        )

    async def create_robust_connection(
        self,
        url: str,
        expected_chain_id: int,
        config: RetryConfig | None = None,
    ) -> JsonRpcConnection | None:
        """Like create(), returning the connection or None."""
        result = await self.create(url, expected_chain_id, config)
        return result.connection

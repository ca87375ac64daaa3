"""
Endpoint health report for rpc-resilience.

Diagnostic sweep over the configured endpoints, independent of the
fallback path: every endpoint is checked once, concurrently, and nothing
is cached.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from rpc_resilience.errors import RpcResilienceError
from rpc_resilience.routing.endpoints import (
    ALCHEMY_ENDPOINT_TEMPLATE,
    dedupe,
    endpoint_name,
)
from rpc_resilience.settings import BASE_SEPOLIA_CHAIN_ID
from rpc_resilience.telemetry.logger import get_logger, mask_url
from rpc_resilience.transport.http import JsonRpcConnection

if TYPE_CHECKING:
    import httpx

    from rpc_resilience.settings import RpcSettings

logger = get_logger("rpc_resilience.health")

_DEFAULT_CHECK_TIMEOUT = 5.0

REPORT_PUBLIC_ENDPOINTS: tuple[str, ...] = (
    "https://base-sepolia.blockpi.network/v1/rpc/public",
    "https://base-sepolia.publicnode.com",
)


@dataclass
class EndpointStatus:
    """Result of checking one endpoint.

    Attributes:
        url: Endpoint URL
        name: Provider label
        healthy: Whether the endpoint answered eth_blockNumber
        latency_ms: Round-trip time, None if unknown
        error: Failure reason
    """

    url: str
    name: str
    healthy: bool
    latency_ms: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": mask_url(self.url),
            "name": self.name,
            "healthy": self.healthy,
            "latency_ms": self.latency_ms,
            "error": self.error,
        }


@dataclass
class HealthReport:
    """Healthy and unhealthy endpoints from one sweep."""

    healthy: list[EndpointStatus] = field(default_factory=list)
    unhealthy: list[EndpointStatus] = field(default_factory=list)

    @property
    def total(self) -> list[EndpointStatus]:
        return self.healthy + self.unhealthy

    @classmethod
    def from_statuses(cls, statuses: list[EndpointStatus]) -> HealthReport:
        healthy = sorted(
            (s for s in statuses if s.healthy),
            key=lambda s: s.latency_ms if s.latency_ms is not None else float("inf"),
        )
        unhealthy = [s for s in statuses if not s.healthy]
        return cls(healthy=healthy, unhealthy=unhealthy)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": [s.to_dict() for s in self.healthy],
            "unhealthy": [s.to_dict() for s in self.unhealthy],
            "total": len(self.total),
        }


async def check_endpoint_health(
    url: str,
    *,
    chain_id: int = BASE_SEPOLIA_CHAIN_ID,
    timeout: float = _DEFAULT_CHECK_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> EndpointStatus:
    """Check one endpoint with a single eth_blockNumber call.

    Never raises; failures are reported in the returned status.
    """
    name = endpoint_name(url)
    start = time.monotonic()

    async with JsonRpcConnection(
        url, chain_id, timeout=timeout, transport=transport
    ) as conn:
        try:
            await conn.get_block_number()
        except RpcResilienceError as e:
            return EndpointStatus(
                url=url,
                name=name,
                healthy=False,
                latency_ms=int((time.monotonic() - start) * 1000),
                error=e.message,
            )

    return EndpointStatus(
        url=url,
        name=name,
        healthy=True,
        latency_ms=int((time.monotonic() - start) * 1000),
    )


def report_endpoints(settings: RpcSettings) -> list[str]:
    """Endpoints covered by the health report: premium, configured, public."""
    urls: list[str] = []
    if settings.alchemy_api_key:
        urls.append(ALCHEMY_ENDPOINT_TEMPLATE.format(key=settings.alchemy_api_key))
    urls.extend(settings.rpc_urls)
    urls.extend(REPORT_PUBLIC_ENDPOINTS)
    return dedupe(urls)


async def check_all_endpoints(
    settings: RpcSettings,
    *,
    timeout: float = _DEFAULT_CHECK_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[EndpointStatus]:
    """Check every report endpoint concurrently."""
    return list(
        await asyncio.gather(
            *(
                check_endpoint_health(
                    url,
                    chain_id=settings.chain_id,
                    timeout=timeout,
                    transport=transport,
                )
                for url in report_endpoints(settings)
            )
        )
    )


async def log_endpoint_health(
    settings: RpcSettings,
    *,
    timeout: float = _DEFAULT_CHECK_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> HealthReport:
    """Check all endpoints and log a summary."""
    logger.info("Checking RPC endpoint health...")
    report = HealthReport.from_statuses(
        await check_all_endpoints(settings, timeout=timeout, transport=transport)
    )

    logger.info(f"Healthy endpoints ({len(report.healthy)})")
    for status in report.healthy:
        logger.info(f"  {status.name}: {status.latency_ms}ms")

    if report.unhealthy:
        logger.warning(f"Unhealthy endpoints ({len(report.unhealthy)})")
        for status in report.unhealthy:
            logger.warning(f"  {status.name}: {status.error}")

    return report


async def network_snapshot(connection: JsonRpcConnection) -> dict[str, Any]:
    """Describe the network behind a connection.

    Suitable as the operation passed to execute_with_fallback.
    """
    network = await connection.get_network()
    chain_id = await connection.get_chain_id()
    block_number = await connection.get_block_number()
    return {
        "success": True,
        "network": {"name": network.name, "chain_id": network.chain_id},
        "chain_id": chain_id,
        "latest_block": block_number,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

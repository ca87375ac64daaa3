"""
Health probe for a single endpoint.

Checks reachability and network identity under one deadline.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rpc_resilience.errors import (
    HealthCheckTimeout,
    RpcResilienceError,
    TransportError,
    WrongNetwork,
)
from rpc_resilience.telemetry.logger import get_logger, mask_url

if TYPE_CHECKING:
    from rpc_resilience.transport.http import JsonRpcConnection, Network

logger = get_logger("rpc_resilience.probe")


@dataclass(frozen=True)
class ProbeResult:
    """Successful probe outcome.

    Attributes:
        chain_id: Chain id reported by eth_chainId
        network: Network identity reported by net_version
        response_time_ms: Time taken by both checks
    """

    chain_id: int
    network: Network
    response_time_ms: int


async def probe(
    connection: JsonRpcConnection,
    timeout_ms: int,
    expected_chain_id: int,
) -> ProbeResult:
    """Probe an endpoint for reachability and the expected chain.

    Network identity and chain id are fetched together; if they have not
    both arrived when the deadline fires, the calls are abandoned.

    Args:
        connection: Handle pinned to the endpoint
        timeout_ms: Deadline for both checks
        expected_chain_id: Chain id the endpoint must serve

    Returns:
        ProbeResult

    Raises:
        HealthCheckTimeout: If the checks miss the deadline
        WrongNetwork: If the endpoint serves another chain
        TransportError: On any communication fault
    """
    url = mask_url(connection.url)
    start = time.monotonic()

    try:
        network, chain_id = await asyncio.wait_for(
            asyncio.gather(connection.get_network(), connection.get_chain_id()),
            timeout=timeout_ms / 1000,
        )
    except asyncio.TimeoutError as e:
        raise HealthCheckTimeout(
            f"Provider health check timeout after {timeout_ms}ms",
            url=url,
            timeout_ms=timeout_ms,
        ) from e
    except RpcResilienceError:
        raise
    except Exception as e:
        raise TransportError(f"Health check failed: {e}", url=url, cause=e) from e

    response_time_ms = int((time.monotonic() - start) * 1000)

    if chain_id != expected_chain_id:
        raise WrongNetwork(
            f"Wrong chain ID: expected {expected_chain_id}, got {chain_id}",
            url=url,
            expected=expected_chain_id,
            actual=chain_id,
        )

    logger.debug(
        f"Network verified: chainId={chain_id}",
        url=url,
        network=network.name,
    )
    return ProbeResult(
        chain_id=chain_id,
        network=network,
        response_time_ms=response_time_ms,
    )

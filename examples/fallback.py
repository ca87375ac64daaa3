#!/usr/bin/env python3
"""
Fallback example.

This example demonstrates resilient access to Base Sepolia:
- Connecting through the first healthy endpoint
- Running an operation with automatic failover
- Custom retry settings

Usage:
    export ALCHEMY_API_KEY="your-api-key"   # optional
    export RPC_URL="https://sepolia.base.org"   # optional, comma-separated
    python examples/fallback.py
"""

import asyncio

from rpc_resilience import (
    AllProvidersFailed,
    RetryConfig,
    create_connection_with_fallback,
    execute_with_fallback,
)
from rpc_resilience.telemetry import LogLevel, RpcLogger
from rpc_resilience.telemetry.health import network_snapshot


async def connect() -> None:
    """Open a connection and read the latest block."""
    connection = await create_connection_with_fallback()
    try:
        print(f"Connected to {connection!r}")
        print(f"Latest block: {await connection.get_block_number()}")
    finally:
        await connection.close()
    print()


async def snapshot() -> None:
    """Run an operation with failover and a tighter retry budget."""
    config = RetryConfig.from_dict(
        {"timeout": 5000, "maxRetries": 1, "retryDelay": 500, "backoffMultiplier": 2}
    )
    result = await execute_with_fallback(network_snapshot, config=config)
    for key, value in result.items():
        print(f"  {key}: {value}")


async def main() -> None:
    RpcLogger.configure(level=LogLevel.INFO, format="text")
    try:
        await connect()
        await snapshot()
    except AllProvidersFailed as e:
        print(e)


if __name__ == "__main__":
    asyncio.run(main())

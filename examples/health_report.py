#!/usr/bin/env python3
"""
Endpoint health report example.

Checks every configured endpoint once and prints the result as JSON.

Usage:
    python examples/health_report.py
"""

import asyncio
import json

from rpc_resilience.settings import RpcSettings
from rpc_resilience.telemetry.health import log_endpoint_health


async def main() -> None:
    report = await log_endpoint_health(RpcSettings.from_env())
    print(json.dumps(report.to_dict(), indent=2))


if __name__ == "__main__":
    asyncio.run(main())

"""区块链 RPC 节点容错层：健康探测、指数退避重试与多节点自动切换。

rpc-resilience: Resilient access to blockchain JSON-RPC endpoints.

Chooses among candidate endpoints, verifies each is reachable and on the
expected chain, retries with exponential backoff, remembers the last
endpoint that worked, and re-routes operations on failure.
"""
from __future__ import annotations

from rpc_resilience.cache import (
    EndpointHealthCache,
    EndpointHealthRecord,
    JsonFileStore,
    LastKnownGoodCache,
)
from rpc_resilience.errors import (
    AllProvidersFailed,
    CacheIOError,
    HealthCheckTimeout,
    RpcResilienceError,
    TransportError,
    WrongNetwork,
)
from rpc_resilience.resilience import (
    FallbackExecutor,
    RetryConfig,
    RobustConnectionFactory,
    create_connection_with_fallback,
    execute_with_fallback,
)
from rpc_resilience.routing import CandidateEndpointProvider
from rpc_resilience.settings import BASE_SEPOLIA_CHAIN_ID, RpcSettings
from rpc_resilience.transport import JsonRpcConnection

__version__ = "0.1.0"

__all__ = [
    # Errors
    "AllProvidersFailed",
    "BASE_SEPOLIA_CHAIN_ID",
    "CacheIOError",
    # Components
    "CandidateEndpointProvider",
    "EndpointHealthCache",
    "EndpointHealthRecord",
    "FallbackExecutor",
    "HealthCheckTimeout",
    "JsonFileStore",
    "JsonRpcConnection",
    "LastKnownGoodCache",
    # Configuration
    "RetryConfig",
    "RobustConnectionFactory",
    "RpcResilienceError",
    "RpcSettings",
    "TransportError",
    "WrongNetwork",
    # Entry points
    "create_connection_with_fallback",
    "execute_with_fallback",
    # Version
    "__version__",
]

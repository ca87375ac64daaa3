"""错误体系：RPC 容错层的结构化错误类型。

Error hierarchy for rpc-resilience.
"""

from rpc_resilience.errors.base import (
    AllProvidersFailed,
    CacheIOError,
    ErrorContext,
    FailedAttempt,
    HealthCheckTimeout,
    RpcResilienceError,
    RpcResponseError,
    TransportError,
    WrongNetwork,
)

__all__ = [
    "AllProvidersFailed",
    "CacheIOError",
    "ErrorContext",
    "FailedAttempt",
    "HealthCheckTimeout",
    "RpcResilienceError",
    "RpcResponseError",
    "TransportError",
    "WrongNetwork",
]

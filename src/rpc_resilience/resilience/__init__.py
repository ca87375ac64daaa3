"""
Resilience layer - Health probing, retry with backoff, and endpoint fallback.

This module provides:
- probe: Bounded reachability and chain id check for one endpoint
- RobustConnectionFactory: Probed connections with exponential backoff
- FallbackExecutor: Cache-first traversal of prioritized endpoints
"""

from rpc_resilience.resilience.fallback import (
    FallbackExecutor,
    create_connection_with_fallback,
    execute_with_fallback,
    get_default_executor,
    set_default_executor,
)
from rpc_resilience.resilience.probe import ProbeResult, probe
from rpc_resilience.resilience.retry import (
    ConnectionOutcome,
    ConnectionResult,
    RetryConfig,
    RobustConnectionFactory,
)

__all__ = [
    # Retry
    "ConnectionOutcome",
    "ConnectionResult",
    # Fallback
    "FallbackExecutor",
    # Probe
    "ProbeResult",
    "RetryConfig",
    "RobustConnectionFactory",
    "create_connection_with_fallback",
    "execute_with_fallback",
    "get_default_executor",
    "probe",
    "set_default_executor",
]

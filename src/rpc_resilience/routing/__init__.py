"""
Routing - candidate endpoint assembly and health-based ordering.
"""

from rpc_resilience.routing.endpoints import (
    ALCHEMY_ENDPOINT_TEMPLATE,
    PUBLIC_FALLBACK_ENDPOINTS,
    CandidateEndpointProvider,
    dedupe,
    endpoint_name,
)

__all__ = [
    "ALCHEMY_ENDPOINT_TEMPLATE",
    "CandidateEndpointProvider",
    "PUBLIC_FALLBACK_ENDPOINTS",
    "dedupe",
    "endpoint_name",
]

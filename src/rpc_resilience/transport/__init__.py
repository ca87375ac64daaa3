"""
Transport layer - JSON-RPC connection handles over httpx.
"""

from rpc_resilience.transport.http import KNOWN_NETWORKS, JsonRpcConnection, Network

__all__ = [
    "JsonRpcConnection",
    "KNOWN_NETWORKS",
    "Network",
]

"""
Caching - endpoint health records and the persisted last-known-good endpoint.
"""

from rpc_resilience.cache.backends import CacheStore, JsonFileStore, MemoryStore
from rpc_resilience.cache.health import (
    HEALTH_CHECK_TTL,
    EndpointHealthCache,
    EndpointHealthRecord,
    get_health_cache,
)
from rpc_resilience.cache.last_good import (
    DEFAULT_CACHE_FILE,
    LAST_GOOD_TTL,
    CachedEndpoint,
    LastKnownGoodCache,
)

__all__ = [
    "CacheStore",
    "CachedEndpoint",
    "DEFAULT_CACHE_FILE",
    "EndpointHealthCache",
    "EndpointHealthRecord",
    "HEALTH_CHECK_TTL",
    "JsonFileStore",
    "LAST_GOOD_TTL",
    "LastKnownGoodCache",
    "MemoryStore",
    "get_health_cache",
]

"""
Candidate endpoint provider.

Assembles the endpoints to try and orders them by cached health.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rpc_resilience.telemetry.logger import get_logger

if TYPE_CHECKING:
    from rpc_resilience.cache.health import EndpointHealthCache
    from rpc_resilience.settings import RpcSettings

logger = get_logger("rpc_resilience.routing")

ALCHEMY_ENDPOINT_TEMPLATE = "https://base-sepolia.g.alchemy.com/v2/{key}"

# Verified working ones first
PUBLIC_FALLBACK_ENDPOINTS: tuple[str, ...] = (
    "https://sepolia.base.org",
    "https://base-sepolia.gateway.pokt.network/v1/lb/62547375086761003a4a5695",
    "https://base-sepolia.publicnode.com",
    "https://base-sepolia.blockpi.network/v1/rpc/public",
    "https://base-sepolia-rpc.publicnode.com",
)

_PROVIDER_NAMES: tuple[tuple[str, str], ...] = (
    ("alchemy.com", "Alchemy"),
    ("base.org", "Base Official"),
    ("pokt.network", "Pocket Network"),
    ("publicnode.com", "PublicNode"),
    ("blockpi.network", "BlockPI"),
)

# Sort ranks
_HEALTHY = 0
_UNKNOWN = 1
_UNHEALTHY = 2


def endpoint_name(url: str) -> str:
    """Human-readable provider label for an endpoint URL."""
    for needle, name in _PROVIDER_NAMES:
        if needle in url:
            return name
    return "Unknown RPC"


def dedupe(urls: list[str]) -> list[str]:
    """Remove exact duplicates, keeping first occurrence."""
    return list(dict.fromkeys(urls))


class CandidateEndpointProvider:
    """Builds the ordered list of endpoints to try.

    Example:
        >>> provider = CandidateEndpointProvider(RpcSettings.from_env(), cache)
        >>> provider.prioritized_endpoints()
        ['https://sepolia.base.org', ...]
    """

    def __init__(
        self,
        settings: RpcSettings,
        health_cache: EndpointHealthCache,
    ) -> None:
        self._settings = settings
        self._health_cache = health_cache

    @property
    def settings(self) -> RpcSettings:
        return self._settings

    def premium_endpoint(self) -> str | None:
        key = self._settings.alchemy_api_key
        if not key:
            return None
        return ALCHEMY_ENDPOINT_TEMPLATE.format(key=key)

    def candidates(self) -> list[str]:
        """Configured, premium, then public endpoints, de-duplicated."""
        urls: list[str] = list(self._settings.rpc_urls)
        premium = self.premium_endpoint()
        if premium:
            urls.append(premium)
        urls.extend(self._settings.public_endpoints)
        return dedupe(urls)

    def _sort_key(self, url: str) -> tuple[int, int]:
        record = self._health_cache.get(url)
        if record is None:
            return (_UNKNOWN, 0)
        if not record.is_healthy:
            return (_UNHEALTHY, 0)
        return (_HEALTHY, record.response_time_ms)

    def prioritized_endpoints(self) -> list[str]:
        """Candidates ordered by health.

        Fresh healthy endpoints come first by ascending response time,
        endpoints without fresh data keep their original order after them,
        fresh unhealthy endpoints go last.
        """
        ordered = sorted(self.candidates(), key=self._sort_key)
        logger.debug("Prioritized endpoints", count=len(ordered))
        return ordered

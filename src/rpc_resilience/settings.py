"""
Environment-driven settings for rpc-resilience.
"""

from __future__ import annotations

import os
from contextlib import suppress

from pydantic import BaseModel, ConfigDict, Field

from rpc_resilience.cache.last_good import DEFAULT_CACHE_FILE
from rpc_resilience.routing.endpoints import PUBLIC_FALLBACK_ENDPOINTS

BASE_SEPOLIA_CHAIN_ID = 84532


def parse_url_list(value: str | None) -> list[str]:
    """Split a comma-separated URL list, dropping blanks."""
    if not value:
        return []
    return [s.strip() for s in value.split(",") if s.strip()]


def _first_env(*names: str) -> str | None:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


class RpcSettings(BaseModel):
    """Endpoint configuration.

    Attributes:
        rpc_urls: Operator-configured endpoints, tried before anything else
        alchemy_api_key: Key for the premium keyed endpoint
        chain_id: Chain id every endpoint must serve
        cache_file: Path of the last-known-good cache file
        public_endpoints: Public fallbacks in historical reliability order
    """

    model_config = ConfigDict(frozen=True)

    rpc_urls: list[str] = Field(default_factory=list)
    alchemy_api_key: str | None = None
    chain_id: int = BASE_SEPOLIA_CHAIN_ID
    cache_file: str = DEFAULT_CACHE_FILE
    public_endpoints: list[str] = Field(
        default_factory=lambda: list(PUBLIC_FALLBACK_ENDPOINTS)
    )

    @classmethod
    def from_env(cls) -> RpcSettings:
        """Build settings from environment variables.

        Reads NEXT_PUBLIC_RPC_URL or RPC_URL (comma-separated, the dashboard
        name wins), ALCHEMY_API_KEY or NEXT_PUBLIC_ALCHEMY_API_KEY,
        RPC_CHAIN_ID and RPC_PROVIDER_CACHE_FILE.
        """
        kwargs: dict[str, object] = {
            "rpc_urls": parse_url_list(_first_env("NEXT_PUBLIC_RPC_URL", "RPC_URL")),
            "alchemy_api_key": _first_env(
                "ALCHEMY_API_KEY", "NEXT_PUBLIC_ALCHEMY_API_KEY"
            ),
        }

        chain_id = os.getenv("RPC_CHAIN_ID")
        if chain_id:
            with suppress(ValueError):
                kwargs["chain_id"] = int(chain_id, 0)

        cache_file = os.getenv("RPC_PROVIDER_CACHE_FILE")
        if cache_file:
            kwargs["cache_file"] = cache_file

        return cls(**kwargs)

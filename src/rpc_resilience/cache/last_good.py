"""
Persisted last-known-good endpoint.

Best-effort: every failure is logged and reported as "no cached endpoint".
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, ValidationError

from rpc_resilience.errors import CacheIOError
from rpc_resilience.telemetry.logger import get_logger, mask_url

if TYPE_CHECKING:
    from collections.abc import Callable

    from rpc_resilience.cache.backends import CacheStore

logger = get_logger("rpc_resilience.cache")

LAST_GOOD_TTL = 60 * 60  # seconds
DEFAULT_CACHE_FILE = ".rpc-provider-cache.json"


class CachedEndpoint(BaseModel):
    """On-disk record of the last endpoint that worked."""

    model_config = ConfigDict(extra="ignore")

    url: str
    timestamp: int
    """Milliseconds since epoch"""


class LastKnownGoodCache:
    """Durable record of the most recently successful endpoint.

    Example:
        >>> cache = LastKnownGoodCache(JsonFileStore(DEFAULT_CACHE_FILE))
        >>> await cache.write("https://sepolia.base.org")
        >>> await cache.read()
        'https://sepolia.base.org'
    """

    def __init__(
        self,
        store: CacheStore,
        ttl: float = LAST_GOOD_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            store: Backing store
            ttl: Seconds after which the entry is ignored
            clock: Time source returning epoch seconds
        """
        self._store = store
        self._ttl = ttl
        self._clock = clock

    @property
    def store(self) -> CacheStore:
        return self._store

    async def read(self) -> str | None:
        """Return the cached URL if it was written within the TTL."""
        try:
            data = await self._store.read()
        except CacheIOError as e:
            logger.warning("Failed to read cached provider", error=e.message)
            return None

        if data is None:
            return None

        try:
            entry = CachedEndpoint.model_validate(data)
        except ValidationError as e:
            logger.warning(
                "Ignoring malformed cached provider",
                error=str(e.errors()[0]["msg"]) if e.errors() else str(e),
            )
            return None

        age_ms = self._clock() * 1000 - entry.timestamp
        if age_ms >= self._ttl * 1000:
            logger.debug("Cached provider expired", url=entry.url, age_ms=int(age_ms))
            return None

        logger.info(f"Using cached provider: {mask_url(entry.url)}")
        return entry.url

    async def write(self, url: str) -> None:
        """Persist `url` as the last working endpoint."""
        entry = CachedEndpoint(url=url, timestamp=int(self._clock() * 1000))
        try:
            await self._store.write(entry.model_dump())
        except CacheIOError as e:
            logger.warning("Failed to cache provider", error=e.message)
            return
        logger.info(f"Cached last working provider: {mask_url(url)}")

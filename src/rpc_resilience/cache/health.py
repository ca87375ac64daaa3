"""
Endpoint health cache.

Keeps the outcome of the latest probe per endpoint. Records expire
logically: staleness is computed on read, nothing sweeps the map.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

HEALTH_CHECK_TTL = 5 * 60  # seconds


@dataclass
class EndpointHealthRecord:
    """Outcome of the latest probe of one endpoint.

    Attributes:
        url: Endpoint URL
        is_healthy: Whether the last probe succeeded
        response_time_ms: Probe latency, -1 if unknown or failed
        last_checked_at: Probe timestamp (epoch seconds)
        error: Failure reason of the last probe
    """

    url: str
    is_healthy: bool
    response_time_ms: int = -1
    last_checked_at: float = 0.0
    error: str | None = None

    def age(self, now: float) -> float:
        return now - self.last_checked_at


class EndpointHealthCache:
    """TTL-aware map of endpoint health records.

    Example:
        >>> cache = EndpointHealthCache()
        >>> cache.record_success("https://sepolia.base.org", 120)
        >>> cache.get("https://sepolia.base.org").is_healthy
        True
    """

    def __init__(
        self,
        ttl: float = HEALTH_CHECK_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl: Seconds after which a record is treated as absent
            clock: Time source returning epoch seconds
        """
        self._ttl = ttl
        self._clock = clock
        self._records: dict[str, EndpointHealthRecord] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def now(self) -> float:
        return self._clock()

    def get(self, url: str) -> EndpointHealthRecord | None:
        """Get the fresh record for an endpoint, or None if missing or stale."""
        record = self._records.get(url)
        if record is None:
            return None
        if record.age(self._clock()) > self._ttl:
            return None
        return record

    def put(self, url: str, record: EndpointHealthRecord) -> None:
        self._records[url] = record

    def record_success(self, url: str, response_time_ms: int) -> EndpointHealthRecord:
        """Store a healthy probe outcome."""
        record = EndpointHealthRecord(
            url=url,
            is_healthy=True,
            response_time_ms=response_time_ms,
            last_checked_at=self._clock(),
        )
        self.put(url, record)
        return record

    def record_failure(self, url: str, error: str) -> EndpointHealthRecord:
        """Store a failed probe outcome."""
        record = EndpointHealthRecord(
            url=url,
            is_healthy=False,
            response_time_ms=-1,
            last_checked_at=self._clock(),
            error=error,
        )
        self.put(url, record)
        return record

    def snapshot(self) -> dict[str, EndpointHealthRecord]:
        """All fresh records keyed by url."""
        return {url: r for url in self._records if (r := self.get(url)) is not None}

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self.snapshot())


_global_health_cache: EndpointHealthCache | None = None


def get_health_cache() -> EndpointHealthCache:
    """Get the process default health cache.

    Returns:
        Shared EndpointHealthCache instance
    """
    global _global_health_cache
    if _global_health_cache is None:
        _global_health_cache = EndpointHealthCache()
    return _global_health_cache

"""
Cache store backends.

A store holds a single JSON document. Provides file and memory stores.
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from rpc_resilience.errors import CacheIOError


class CacheStore(ABC):
    """Abstract base class for single-document stores."""

    @abstractmethod
    async def read(self) -> dict[str, Any] | None:
        """Read the stored document.

        Returns:
            The document, or None if nothing is stored

        Raises:
            CacheIOError: If the store cannot be read or parsed
        """
        raise NotImplementedError

    @abstractmethod
    async def write(self, data: dict[str, Any]) -> None:
        """Overwrite the stored document.

        Raises:
            CacheIOError: If the store cannot be written
        """
        raise NotImplementedError

    @abstractmethod
    async def clear(self) -> None:
        """Remove the stored document."""
        raise NotImplementedError


class JsonFileStore(CacheStore):
    """Store backed by one JSON file.

    Writes are plain overwrites, no locking across processes.

    Example:
        >>> store = JsonFileStore(".rpc-provider-cache.json")
        >>> await store.write({"url": "https://sepolia.base.org", "timestamp": 0})
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def read(self) -> dict[str, Any] | None:
        async with self._lock:
            if not self._path.exists():
                return None
            try:
                data = json.loads(self._path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as e:
                raise CacheIOError(
                    f"Failed to read cache file: {e}", path=str(self._path), cause=e
                ) from e
            except json.JSONDecodeError as e:
                raise CacheIOError(
                    f"Corrupt cache file: {e}", path=str(self._path), cause=e
                ) from e

        if not isinstance(data, dict):
            raise CacheIOError(
                "Corrupt cache file: expected a JSON object", path=str(self._path)
            )
        return data

    async def write(self, data: dict[str, Any]) -> None:
        async with self._lock:
            try:
                self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            except OSError as e:
                raise CacheIOError(
                    f"Failed to write cache file: {e}", path=str(self._path), cause=e
                ) from e

    async def clear(self) -> None:
        async with self._lock:
            try:
                self._path.unlink(missing_ok=True)
            except OSError as e:
                raise CacheIOError(
                    f"Failed to remove cache file: {e}", path=str(self._path), cause=e
                ) from e


class MemoryStore(CacheStore):
    """In-memory store, for tests and short-lived processes."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = dict(data) if data is not None else None

    async def read(self) -> dict[str, Any] | None:
        return dict(self._data) if self._data is not None else None

    async def write(self, data: dict[str, Any]) -> None:
        self._data = dict(data)

    async def clear(self) -> None:
        self._data = None

"""
Cache backend protocol and the stored-entry shape.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable

CacheBackendName = Literal["fs", "memory", "none"]


@runtime_checkable
class CacheBackend(Protocol):
    """
    Key/value store for serialized cache entries.

    Entries are JSON-compatible dicts (see ``cache.serializers``). Keys are
    grouped into collections; ``None`` means the backend's default one.
    """

    name: CacheBackendName
    default_collection: str

    async def ensure_ready(self) -> None: ...

    async def close(self) -> None: ...

    async def exists(self, key: str, collection: str | None = None) -> bool: ...

    async def read(self, key: str, collection: str | None = None) -> dict[str, Any] | None:
        """Return the entry, or None when absent or unreadable."""
        ...

    async def write(self, key: str, entry: dict[str, Any], collection: str | None = None) -> None:
        """Store ``entry``, replacing any previous one."""
        ...

    async def delete(self, key: str, collection: str | None = None) -> bool:
        """Remove an entry. Returns True if something was removed."""
        ...


@dataclass
class CacheEntry:
    """
    A stored HTTP response.

    ``request_headers`` keeps only the request headers named by the
    response's ``Vary`` header; ``response_time`` is the epoch time the
    response was received (or last revalidated).
    """

    key: str
    method: str
    url: str
    status: int
    headers: list[tuple[str, str]] = field(default_factory=list)
    request_headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""
    response_time: float = 0.0
    version: int = 1


class BaseCacheBackend(ABC):
    """Backend base with no-op lifecycle hooks and a read-based ``exists``."""

    name: CacheBackendName = "none"
    default_collection: str = "http"

    async def ensure_ready(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def exists(self, key: str, collection: str | None = None) -> bool:
        return await self.read(key, collection) is not None

    @abstractmethod
    async def read(self, key: str, collection: str | None = None) -> dict[str, Any] | None:
        pass

    @abstractmethod
    async def write(self, key: str, entry: dict[str, Any], collection: str | None = None) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str, collection: str | None = None) -> bool:
        pass

    def _get_collection(self, collection: str | None) -> str:
        return collection or self.default_collection


__all__ = ["CacheBackend", "CacheBackendName", "CacheEntry", "BaseCacheBackend"]

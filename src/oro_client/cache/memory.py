"""
In-process cache backend.
"""

from __future__ import annotations

import copy
from typing import Any

from .base import BaseCacheBackend, CacheBackendName


class MemoryCache(BaseCacheBackend):
    """Dict-backed backend. Entries live as long as the process."""

    name: CacheBackendName = "memory"

    def __init__(self, default_collection: str = "http") -> None:
        self.default_collection = default_collection
        self._store: dict[str, dict[str, dict[str, Any]]] = {}

    async def read(self, key: str, collection: str | None = None) -> dict[str, Any] | None:
        entry = self._store.get(self._get_collection(collection), {}).get(key)
        return copy.deepcopy(entry) if entry is not None else None

    async def write(self, key: str, entry: dict[str, Any], collection: str | None = None) -> None:
        self._store.setdefault(self._get_collection(collection), {})[key] = copy.deepcopy(entry)

    async def delete(self, key: str, collection: str | None = None) -> bool:
        return self._store.get(self._get_collection(collection), {}).pop(key, None) is not None

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._store.values())


__all__ = ["MemoryCache"]

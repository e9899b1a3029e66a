"""
Backend orchestration for the HTTP cache.

``CacheCore`` sits between ``HttpCache`` and a ``CacheBackend``. It resolves
collections, times every backend call and turns backend failures into misses.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..logging import Timer
from .base import CacheBackend


@dataclass
class CacheStats:
    """Counters and accumulated latencies for one CacheCore."""

    hits: int = 0
    misses: int = 0
    writes: int = 0
    deletes: int = 0
    errors: int = 0
    total_read_ms: float = 0.0
    total_write_ms: float = 0.0

    @property
    def reads(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        return self.hits / self.reads if self.reads else 0.0

    @property
    def avg_read_ms(self) -> float:
        return self.total_read_ms / self.reads if self.reads else 0.0

    @property
    def avg_write_ms(self) -> float:
        return self.total_write_ms / self.writes if self.writes else 0.0

    def record_read(self, hit: bool, latency_ms: float) -> None:
        if hit:
            self.hits += 1
        else:
            self.misses += 1
        self.total_read_ms += latency_ms

    def record_write(self, latency_ms: float) -> None:
        self.writes += 1
        self.total_write_ms += latency_ms

    def to_dict(self) -> dict[str, Any]:
        return {
            **dataclasses.asdict(self),
            "hit_rate": self.hit_rate,
            "avg_read_ms": self.avg_read_ms,
            "avg_write_ms": self.avg_write_ms,
        }

    def reset(self) -> CacheStats:
        """Zero every counter and return the previous values."""
        old = dataclasses.replace(self)
        for f in dataclasses.fields(self):
            setattr(self, f.name, f.default)
        return old


class CacheCore:
    """
    Reads, writes and invalidations against an optional backend.

    With no backend every read misses and every write is dropped. Backend
    exceptions never propagate: a failed read is a miss, a failed write or
    delete is counted in ``stats.errors`` and reported as not done.
    """

    def __init__(self, backend: CacheBackend | None, default_collection: str | None = None) -> None:
        self.backend = backend
        self.default_collection = default_collection
        self.stats = CacheStats()

    @property
    def enabled(self) -> bool:
        return self.backend is not None

    def _collection(self, collection: str | None) -> str | None:
        # explicit > backend default > core default
        return collection or getattr(self.backend, "default_collection", None) or self.default_collection

    async def ensure_ready(self) -> None:
        if self.backend:
            await self.backend.ensure_ready()

    async def close(self) -> None:
        if self.backend:
            await self.backend.close()

    def get_stats(self) -> CacheStats:
        return self.stats

    def reset_stats(self) -> CacheStats:
        return self.stats.reset()

    async def get(
        self,
        key: str,
        *,
        collection: str | None = None,
        decode: Callable[[dict[str, Any]], Any] | None = None,
    ) -> Any:
        """
        Read ``key``. With ``decode``, the stored document is passed through it
        and a ``None`` result counts as a miss.
        """
        if not self.backend:
            return None

        timer = Timer()
        try:
            entry = await self.backend.read(key, self._collection(collection))
        except Exception:
            self.stats.errors += 1
            entry = None
        if entry and decode is not None:
            entry = decode(entry)
        self.stats.record_read(bool(entry), timer.stop())
        return entry or None

    async def put(self, key: str, entry: dict[str, Any], *, collection: str | None = None) -> bool:
        if not self.backend:
            return False

        timer = Timer()
        try:
            await self.backend.write(key, entry, self._collection(collection))
        except Exception:
            self.stats.errors += 1
            return False
        self.stats.record_write(timer.stop())
        return True

    async def invalidate(self, key: str, *, collection: str | None = None) -> bool:
        if not self.backend:
            return False
        try:
            removed = await self.backend.delete(key, self._collection(collection))
        except Exception:
            self.stats.errors += 1
            return False
        if removed:
            self.stats.deletes += 1
        return removed


__all__ = ["CacheCore", "CacheStats"]

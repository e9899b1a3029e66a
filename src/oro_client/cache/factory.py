"""
Cache factory and settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..config.cache import CacheConfig, FSCacheConfig as FSCacheSettings
from .base import CacheBackendName
from .core import CacheCore
from .fs import FSCache, FSCacheConfig
from .memory import MemoryCache


@dataclass
class CacheSettings:
    backend: CacheBackendName
    default_collection: str | None = None
    cache_dir: Path | None = None

    @classmethod
    def from_config(cls, config: CacheConfig) -> CacheSettings:
        if not config.enabled:
            return cls(backend="none", default_collection=config.default_collection)
        return cls(
            backend=config.backend,
            default_collection=config.default_collection,
            cache_dir=config.cache_dir if isinstance(config, FSCacheSettings) else None,
        )


def build_cache_core(settings: CacheSettings) -> CacheCore:
    backend = settings.backend
    default_coll = settings.default_collection or "http"

    if backend == "none" or backend is None:
        return CacheCore(None, default_collection=default_coll)

    if backend == "fs":
        if not settings.cache_dir:
            raise ValueError("cache_dir is required for fs cache backend")
        fs = FSCache(FSCacheConfig(dir=Path(settings.cache_dir), default_collection=default_coll))
        return CacheCore(fs, default_collection=default_coll)

    if backend == "memory":
        return CacheCore(MemoryCache(default_collection=default_coll), default_collection=default_coll)

    raise ValueError(f"Unknown cache backend: {backend!r}")


__all__ = ["CacheSettings", "build_cache_core"]

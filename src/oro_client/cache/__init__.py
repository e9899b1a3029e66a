"""
HTTP response cache for the registry client.
"""

from .base import BaseCacheBackend, CacheBackend, CacheBackendName, CacheEntry
from .core import CacheCore, CacheStats
from .factory import CacheSettings, build_cache_core
from .fs import FSCache, FSCacheConfig
from .http_cache import HttpCache
from .memory import MemoryCache
from .policy import STORABLE_STATUSES, CacheMode, CachePolicy, parse_cache_control

__all__ = [
    "BaseCacheBackend",
    "CacheBackend",
    "CacheBackendName",
    "CacheEntry",
    "CacheCore",
    "CacheStats",
    "CacheSettings",
    "build_cache_core",
    "FSCache",
    "FSCacheConfig",
    "HttpCache",
    "MemoryCache",
    "STORABLE_STATUSES",
    "CacheMode",
    "CachePolicy",
    "parse_cache_control",
]

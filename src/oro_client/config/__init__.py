"""
Typed configuration for oro-client.

``Settings`` bundles ``RegistryConfig``, ``CacheConfig`` (or ``FSCacheConfig``)
and ``LoggingConfig``; each section validates itself on construction.
"""

from .base import CacheBackendType, CacheModeName, LogFormat, LogLevel
from .cache import CacheConfig, FSCacheConfig
from .logging import LoggingConfig
from .registry import RegistryConfig
from .settings import Settings, configure, get_settings, load_env

__all__ = [
    "CacheBackendType",
    "CacheModeName",
    "LogLevel",
    "LogFormat",
    "RegistryConfig",
    "CacheConfig",
    "FSCacheConfig",
    "LoggingConfig",
    "Settings",
    "get_settings",
    "configure",
    "load_env",
]

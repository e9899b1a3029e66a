"""
Cache configuration classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .base import CacheBackendType, CacheModeName

_VALID_MODES = ("default", "no-store", "reload", "no-cache", "force-cache", "only-if-cached")


@dataclass
class CacheConfig:
    """Configuration for the HTTP response cache."""

    # Backend selection
    backend: CacheBackendType = "none"
    enabled: bool = True

    # Namespace inside the backend
    default_collection: str = "http"

    # Behavior
    mode: CacheModeName = "default"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.backend not in ("none", "fs", "memory"):
            raise ValueError(f"Invalid cache backend: {self.backend}")
        if self.mode not in _VALID_MODES:
            raise ValueError(f"Invalid cache mode: {self.mode}. Must be one of {_VALID_MODES}")
        if not self.default_collection:
            raise ValueError("default_collection cannot be empty")


@dataclass
class FSCacheConfig(CacheConfig):
    """Filesystem cache configuration."""

    backend: CacheBackendType = "fs"
    cache_dir: Path = field(default_factory=lambda: Path("./.oro-cache"))

    def __post_init__(self):
        super().__post_init__()
        if isinstance(self.cache_dir, str):
            self.cache_dir = Path(self.cache_dir)


__all__ = ["CacheConfig", "FSCacheConfig"]

"""
Base types for configuration.
"""

from __future__ import annotations

from typing import Literal

CacheBackendType = Literal["none", "fs", "memory"]
CacheModeName = Literal["default", "no-store", "reload", "no-cache", "force-cache", "only-if-cached"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]


__all__ = ["CacheBackendType", "CacheModeName", "LogLevel", "LogFormat"]

"""
Hashing utilities for oro-client.

Cache keys are content addressed with blake3 over a canonical JSON document,
so the same request always lands on the same cache entry.
"""

from __future__ import annotations

from typing import Any

from blake3 import blake3

from .serialization import stable_json_dumps


def content_hash(obj: Any) -> str:
    """
    Generate a deterministic content hash for any JSON-serializable object.

    Returns:
        64-character hexadecimal hash
    """
    return blake3(stable_json_dumps(obj).encode("utf-8")).hexdigest()


def cache_key(method: str, url: str) -> str:
    """
    Generate the HTTP cache key for a request.

    Args:
        method: HTTP method (case-insensitive)
        url: Absolute request URL

    Returns:
        64-character hexadecimal cache key
    """
    return content_hash({"method": method.upper(), "url": url})


__all__ = [
    "content_hash",
    "cache_key",
]

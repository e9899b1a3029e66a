"""
Cache serialization utilities for stored HTTP responses.

Entries are JSON documents, so the body is stored base64 encoded and
headers as ordered ``[name, value]`` pairs (duplicates and order survive).
"""

from __future__ import annotations

import base64
from typing import Any

from multidict import CIMultiDict
from yarl import URL

from ..types import RegistryResponse
from .base import CacheEntry
from .policy import CachePolicy

ENTRY_VERSION = 1


def entry_from_policy(key: str, policy: CachePolicy, body: bytes) -> CacheEntry:
    return CacheEntry(
        key=key,
        method=policy.method,
        url=policy.url,
        status=policy.status,
        headers=policy.storable_response_headers(),
        request_headers=policy.vary_request_headers(),
        body=body,
        response_time=policy.response_time,
        version=ENTRY_VERSION,
    )


def policy_from_entry(entry: CacheEntry) -> CachePolicy:
    return CachePolicy(
        entry.method,
        entry.url,
        entry.request_headers,
        entry.status,
        entry.headers,
        response_time=entry.response_time,
    )


def entry_to_cache_dict(entry: CacheEntry) -> dict[str, Any]:
    """
    Convert a CacheEntry to a dictionary suitable for cache storage.

    Args:
        entry: The stored response

    Returns:
        JSON-compatible dictionary
    """
    return {
        "version": entry.version,
        "key": entry.key,
        "method": entry.method,
        "url": entry.url,
        "status": entry.status,
        "headers": [[k, v] for k, v in entry.headers],
        "request_headers": [[k, v] for k, v in entry.request_headers],
        "body": base64.b64encode(entry.body).decode("ascii"),
        "response_time": entry.response_time,
    }


def cache_dict_to_entry(cached: dict[str, Any]) -> CacheEntry | None:
    """
    Convert a cached dictionary back to a CacheEntry.

    Returns None for documents written by an incompatible version or
    missing required fields, so they behave like a miss.
    """
    if cached.get("version") != ENTRY_VERSION:
        return None
    try:
        return CacheEntry(
            key=str(cached["key"]),
            method=str(cached["method"]),
            url=str(cached["url"]),
            status=int(cached["status"]),
            headers=[(str(k), str(v)) for k, v in cached.get("headers", [])],
            request_headers=[(str(k), str(v)) for k, v in cached.get("request_headers", [])],
            body=base64.b64decode(cached.get("body", "")),
            response_time=float(cached.get("response_time", 0.0)),
            version=ENTRY_VERSION,
        )
    except (KeyError, TypeError, ValueError):
        return None


def entry_to_response(entry: CacheEntry, *, headers: Any = None, revalidated: bool = False) -> RegistryResponse:
    """Rebuild a response from a stored entry, optionally with refreshed headers."""
    return RegistryResponse(
        url=URL(entry.url),
        status=entry.status,
        headers=CIMultiDict(headers if headers is not None else entry.headers),
        body=entry.body,
        from_cache=True,
        revalidated=revalidated,
    )


__all__ = [
    "entry_from_policy",
    "policy_from_entry",
    "entry_to_cache_dict",
    "cache_dict_to_entry",
    "entry_to_response",
]

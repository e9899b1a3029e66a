"""
JSON serialization helpers for registry payloads, cache entries and hashing.

All helpers are backed by orjson.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import orjson


def canonicalize(obj: Any) -> Any:
    """
    Convert complex objects into JSON-friendly, deterministic structures.
    """
    if isinstance(obj, dict):
        return {str(k): canonicalize(obj[k]) for k in sorted(obj, key=str)}
    if isinstance(obj, (list, tuple)):
        return [canonicalize(v) for v in obj]
    if isinstance(obj, (set, frozenset)):
        return sorted(canonicalize(v) for v in obj)
    if hasattr(obj, "to_dict") and callable(obj.to_dict):
        return canonicalize(obj.to_dict())
    return obj


def stable_json_dumps(obj: Any) -> str:
    """
    Dump an object to JSON with stable ordering for hashing.
    """
    return orjson.dumps(canonicalize(obj), option=orjson.OPT_SORT_KEYS).decode("utf-8")


def fast_json_dumps(obj: Any, *, indent: bool = False, default: Callable[[Any], Any] | None = None) -> bytes:
    """
    Fast JSON serialization to bytes (non-canonical, key order preserved).

    ``default`` converts values orjson cannot encode natively.
    """
    option = orjson.OPT_INDENT_2 if indent else None
    return orjson.dumps(obj, default=default, option=option)


def fast_json_loads(data: bytes | bytearray | memoryview | str) -> Any:
    """
    Fast JSON deserialization. Object key order is preserved.
    """
    return orjson.loads(data)


JSONDecodeError = orjson.JSONDecodeError


__all__ = [
    "canonicalize",
    "stable_json_dumps",
    "fast_json_dumps",
    "fast_json_loads",
    "JSONDecodeError",
]

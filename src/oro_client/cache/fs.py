"""
Filesystem cache backend.

One JSON document per key at ``<dir>/<collection>/<key>.json``. Writes go to
a temporary sibling first and are moved into place with ``os.replace``.
"""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..concurrency import run_sync
from ..errors import CacheReadError, CacheWriteError
from ..serialization import JSONDecodeError, fast_json_dumps, fast_json_loads
from .base import BaseCacheBackend, CacheBackendName


@dataclass
class FSCacheConfig:
    dir: Path
    default_collection: str = "http"
    name: CacheBackendName = "fs"


class FSCache(BaseCacheBackend):
    """
    Raises CacheReadError / CacheWriteError on I/O failures other than a
    missing file. An undecodable file reads as absent.
    """

    name: CacheBackendName = "fs"

    def __init__(self, cfg: FSCacheConfig) -> None:
        self.cfg = cfg
        self.default_collection = cfg.default_collection

    async def ensure_ready(self) -> None:
        await run_sync(self.cfg.dir.mkdir, parents=True, exist_ok=True)

    def _path_for(self, key: str, collection: str | None = None) -> Path:
        return self.cfg.dir / self._get_collection(collection) / f"{key}.json"

    async def exists(self, key: str, collection: str | None = None) -> bool:
        return await run_sync(self._path_for(key, collection).is_file)

    async def read(self, key: str, collection: str | None = None) -> dict[str, Any] | None:
        path = self._path_for(key, collection)
        try:
            raw = await run_sync(path.read_bytes)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheReadError(f"Cannot read cache entry {path}: {exc}", cause=exc) from exc
        try:
            data = fast_json_loads(raw)
        except JSONDecodeError:
            # The next write replaces it.
            return None
        return data if isinstance(data, dict) else None

    async def write(self, key: str, entry: dict[str, Any], collection: str | None = None) -> None:
        path = self._path_for(key, collection)
        tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        payload = fast_json_dumps(entry)

        def _write_atomic() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            try:
                tmp_path.write_bytes(payload)
                os.replace(tmp_path, path)
            finally:
                tmp_path.unlink(missing_ok=True)

        try:
            await run_sync(_write_atomic)
        except OSError as exc:
            raise CacheWriteError(f"Cannot write cache entry {path}: {exc}", cause=exc) from exc

    async def delete(self, key: str, collection: str | None = None) -> bool:
        path = self._path_for(key, collection)

        def _unlink() -> bool:
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            return True

        return await run_sync(_unlink)


__all__ = ["FSCache", "FSCacheConfig"]

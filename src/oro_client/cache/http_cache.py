"""
HTTP caching middleware.

``HttpCache`` sits between the request pipeline and the transport. It decides,
per request and cache mode, whether to replay a stored response, revalidate
it with a conditional request, or go to the network, and stores what the
network returns when the policy allows it.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any

from ..errors import CacheMissError
from ..hashing import cache_key
from ..hooks import HookManager
from ..logging import StructuredLogger
from ..types import RegistryRequest, RegistryResponse
from .base import CacheEntry
from .core import CacheCore
from .policy import CacheMode, CachePolicy
from .serializers import (
    cache_dict_to_entry,
    entry_from_policy,
    entry_to_cache_dict,
    entry_to_response,
    policy_from_entry,
)

NetworkCall = Callable[[RegistryRequest], Awaitable[RegistryResponse]]


class HttpCache:
    """Cache-Control aware response cache on top of a CacheCore."""

    def __init__(
        self,
        core: CacheCore,
        *,
        mode: CacheMode | str = CacheMode.DEFAULT,
        hooks: HookManager | None = None,
        logger: StructuredLogger | None = None,
        collection: str | None = None,
    ) -> None:
        self.core = core
        self.mode = CacheMode.parse(mode)
        self.hooks = hooks or HookManager()
        self.logger = logger
        self.collection = collection

    @property
    def enabled(self) -> bool:
        return self.core.enabled

    @staticmethod
    def key_for(url: Any) -> str:
        """Entries are keyed by the GET of a URL; unsafe methods invalidate that key."""
        return cache_key("GET", str(url))

    async def fetch(
        self,
        request: RegistryRequest,
        network: NetworkCall,
        *,
        mode: CacheMode | str | None = None,
        context: Any = None,
    ) -> RegistryResponse:
        """
        Serve ``request`` from the cache or through ``network``.

        Raises:
            CacheMissError: In ``only-if-cached`` mode when nothing usable is stored.
        """
        mode = CacheMode.parse(mode) if mode is not None else self.mode

        if not self.enabled or not request.cacheable:
            return await network(request)

        key = self.key_for(request.url)

        if not request.is_safe:
            response = await network(request)
            if response.status < 400 and await self.core.invalidate(key, collection=self.collection):
                await self._emit("cache.invalidate", key, request, context)
            return response

        if request.method != "GET" or mode is CacheMode.NO_STORE:
            return await network(request)

        if mode is CacheMode.RELOAD:
            response = await network(request)
            await self._store(key, request, response)
            return response

        entry = await self._lookup(key)
        policy = policy_from_entry(entry) if entry is not None else None

        if policy is None or not policy.vary_matches(request.headers):
            await self._emit("cache.miss", key, request, context)
            if self.logger:
                self.logger.log_cache_miss(key, str(request.url))
            if mode is CacheMode.ONLY_IF_CACHED:
                raise CacheMissError(url=str(request.url))
            response = await network(request)
            await self._store(key, request, response)
            return response

        now = time.time()
        if mode in (CacheMode.FORCE_CACHE, CacheMode.ONLY_IF_CACHED) or (
            mode is CacheMode.DEFAULT and policy.satisfies_without_revalidation(request.headers, now)
        ):
            await self._emit("cache.hit", key, request, context)
            if self.logger:
                self.logger.log_cache_hit(key, str(request.url))
            return self._replay(entry, policy, now)

        return await self._revalidate(key, request, entry, policy, network, context)

    async def invalidate(self, url: Any) -> bool:
        return await self.core.invalidate(self.key_for(url), collection=self.collection)

    async def _revalidate(
        self,
        key: str,
        request: RegistryRequest,
        entry: CacheEntry,
        policy: CachePolicy,
        network: NetworkCall,
        context: Any,
    ) -> RegistryResponse:
        conditional = request.copy()
        conditional.headers = policy.revalidation_headers(request.headers)
        response = await network(conditional)

        if response.status == 304 and policy.has_validators():
            refreshed = policy.revalidated(request.headers, response.headers, response_time=time.time())
            await self.core.put(
                key,
                entry_to_cache_dict(entry_from_policy(key, refreshed, entry.body)),
                collection=self.collection,
            )
            await self._emit("cache.revalidated", key, request, context)
            if self.logger:
                self.logger.log_cache_revalidated(key, str(request.url))
            return entry_to_response(entry, headers=refreshed.response_headers, revalidated=True)

        await self._emit("cache.miss", key, request, context)
        await self._store(key, request, response)
        return response

    async def _lookup(self, key: str) -> CacheEntry | None:
        return await self.core.get(key, collection=self.collection, decode=cache_dict_to_entry)

    async def _store(self, key: str, request: RegistryRequest, response: RegistryResponse) -> None:
        policy = CachePolicy(
            request.method,
            str(request.url),
            request.headers,
            response.status,
            response.headers,
            response_time=time.time(),
        )
        if policy.is_storable():
            entry = entry_from_policy(key, policy, response.body)
            await self.core.put(key, entry_to_cache_dict(entry), collection=self.collection)
        elif response.status != 304 and response.status < 500:
            # A response that may not be stored also replaces whatever was stored.
            # Server errors leave the stored copy alone.
            await self.core.invalidate(key, collection=self.collection)

    def _replay(self, entry: CacheEntry, policy: CachePolicy, now: float) -> RegistryResponse:
        response = entry_to_response(entry)
        response.headers["Age"] = str(int(policy.age(now)))
        return response

    async def _emit(self, event: str, key: str, request: RegistryRequest, context: Any) -> None:
        await self.hooks.emit(event, {"key": key, "url": str(request.url)}, context)


__all__ = ["HttpCache", "NetworkCall"]

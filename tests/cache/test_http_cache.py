"""
Tests for the HTTP cache middleware, exercised through the client.
"""

import pytest
from aiohttp import web

from oro_client import CacheMissError, CacheMode, RegistryUnavailableError
from oro_client.cache import MemoryCache
from oro_client.cache.policy import format_http_date


@pytest.fixture
def memory_backend() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def cached_client(make_client, memory_backend):
    return make_client(lambda b: b.cache_backend(memory_backend))


def etag_handler(doc, etag='"v1"', cache_control="max-age=0"):
    """Answers 304 when the client already holds ``etag``."""

    def handler(request: web.Request) -> web.Response:
        headers = {"ETag": etag, "Cache-Control": cache_control}
        if request.headers.get("If-None-Match") == etag:
            return web.Response(status=304, headers=headers)
        return web.json_response(doc, headers=headers)

    return handler


class TestFreshness:
    """Fresh entries are served without the network."""

    async def test_fresh_entry_is_served_from_cache(self, cached_client, registry, packument_doc, metrics):
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"Cache-Control": "max-age=300"})

        first = await cached_client.packument("oro-test")
        second = await cached_client.packument("oro-test")

        assert first.name == second.name == "oro-test"
        assert len(registry.calls("GET", "/oro-test")) == 1
        assert metrics.cache_misses == 1
        assert metrics.cache_hits == 1

    async def test_replayed_response_carries_age(self, cached_client, registry, packument_doc):
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"Cache-Control": "max-age=300"})
        request = cached_client.request("GET", "oro-test")

        await cached_client.send(request)
        replayed = await cached_client.send(request)

        assert replayed.from_cache
        assert not replayed.revalidated
        assert replayed.header("Age") == "0"
        assert replayed.json()["name"] == "oro-test"

    async def test_without_cache_every_request_hits_network(self, client, registry, packument_doc):
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"Cache-Control": "max-age=300"})

        await client.packument("oro-test")
        await client.packument("oro-test")

        assert len(registry.calls("GET", "/oro-test")) == 2

    async def test_no_store_response_is_not_stored(self, cached_client, registry, packument_doc, memory_backend):
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"Cache-Control": "no-store"})

        await cached_client.packument("oro-test")
        await cached_client.packument("oro-test")

        assert len(registry.calls("GET", "/oro-test")) == 2
        assert len(memory_backend) == 0

    async def test_full_and_corgi_documents_vary(self, cached_client, registry, packument_doc):
        """A stored full packument is not replayed for a corgi request."""
        registry.reply(
            "GET",
            "/oro-test",
            json=packument_doc,
            headers={"Cache-Control": "max-age=300", "Vary": "Accept"},
        )

        await cached_client.packument("oro-test")
        await cached_client.corgi_packument("oro-test")
        await cached_client.corgi_packument("oro-test")

        assert len(registry.calls("GET", "/oro-test")) == 2


class TestRevalidation:
    """Stale entries are revalidated with conditional requests."""

    async def test_etag_revalidation(self, cached_client, registry, packument_doc, metrics):
        registry.add("GET", "/oro-test", etag_handler(packument_doc))

        first = await cached_client.send(cached_client.request("GET", "oro-test"))
        second = await cached_client.send(cached_client.request("GET", "oro-test"))

        calls = registry.calls("GET", "/oro-test")
        assert len(calls) == 2
        assert "If-None-Match" not in calls[0].headers
        assert calls[1].headers["If-None-Match"] == '"v1"'

        assert not first.from_cache
        assert second.status == 200
        assert second.from_cache
        assert second.revalidated
        assert second.body == first.body
        assert metrics.counters["cache.revalidated"] == 1

    async def test_last_modified_revalidation(self, cached_client, registry, packument_doc):
        last_modified = format_http_date(1_600_000_000)

        def handler(request: web.Request) -> web.Response:
            headers = {"Last-Modified": last_modified, "Cache-Control": "no-cache"}
            if request.headers.get("If-Modified-Since") == last_modified:
                return web.Response(status=304, headers=headers)
            return web.json_response(packument_doc, headers=headers)

        registry.add("GET", "/oro-test", handler)

        await cached_client.packument("oro-test")
        packument = await cached_client.packument("oro-test")

        assert packument.name == "oro-test"
        assert registry.calls("GET", "/oro-test")[1].headers["If-Modified-Since"] == last_modified

    async def test_304_refreshes_freshness(self, cached_client, registry, packument_doc):
        """A 304 carrying a new max-age makes the entry fresh again."""
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"ETag": '"v1"', "Cache-Control": "max-age=0"})
        registry.reply("GET", "/oro-test", status=304, headers={"ETag": '"v1"', "Cache-Control": "max-age=300"})

        await cached_client.packument("oro-test")
        await cached_client.packument("oro-test")
        await cached_client.packument("oro-test")

        assert len(registry.calls("GET", "/oro-test")) == 2

    async def test_changed_resource_replaces_entry(self, cached_client, registry, packument_factory):
        registry.reply(
            "GET",
            "/oro-test",
            json=packument_factory("oro-test", ("1.0.0",)),
            headers={"ETag": '"v1"', "Cache-Control": "max-age=0"},
        )
        registry.add(
            "GET",
            "/oro-test",
            etag_handler(packument_factory("oro-test", ("1.0.0", "2.0.0")), etag='"v2"'),
        )

        first = await cached_client.packument("oro-test")
        second = await cached_client.packument("oro-test")
        third = await cached_client.packument("oro-test")

        assert list(first.versions) == ["1.0.0"]
        assert list(second.versions) == ["1.0.0", "2.0.0"]
        assert list(third.versions) == ["1.0.0", "2.0.0"]
        assert registry.calls("GET", "/oro-test")[2].headers["If-None-Match"] == '"v2"'

    async def test_server_error_keeps_entry(self, cached_client, registry, packument_doc, memory_backend):
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"ETag": '"v1"', "Cache-Control": "max-age=0"})
        registry.reply("GET", "/oro-test", status=500, json={"error": "boom"})

        await cached_client.packument("oro-test")
        with pytest.raises(RegistryUnavailableError):
            await cached_client.packument("oro-test")

        assert len(memory_backend) == 1

    async def test_outdated_entry_is_refetched(self, cached_client, registry, packument_doc, memory_backend):
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"Cache-Control": "max-age=300"})
        await cached_client.packument("oro-test")
        for entries in memory_backend._store.values():
            for entry in entries.values():
                entry["version"] = -1

        await cached_client.packument("oro-test")

        stats = cached_client.cache.core.stats
        assert len(registry.calls("GET", "/oro-test")) == 2
        assert stats.hits == 0
        assert stats.misses == 2


class TestCacheModes:
    """Per-request cache modes."""

    async def test_no_store_mode_bypasses_cache(self, cached_client, registry, packument_doc, memory_backend):
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"Cache-Control": "max-age=300"})

        await cached_client.packument("oro-test", cache_mode="no-store")

        assert len(memory_backend) == 0

    async def test_reload_ignores_fresh_entry(self, cached_client, registry, packument_doc):
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"Cache-Control": "max-age=300"})

        await cached_client.packument("oro-test")
        await cached_client.packument("oro-test", cache_mode=CacheMode.RELOAD)

        assert len(registry.calls("GET", "/oro-test")) == 2

    async def test_no_cache_mode_revalidates(self, cached_client, registry, packument_doc):
        registry.add("GET", "/oro-test", etag_handler(packument_doc, cache_control="max-age=300"))

        await cached_client.packument("oro-test")
        await cached_client.packument("oro-test", cache_mode=CacheMode.NO_CACHE)

        calls = registry.calls("GET", "/oro-test")
        assert len(calls) == 2
        assert calls[1].headers["If-None-Match"] == '"v1"'

    async def test_force_cache_serves_stale_entry(self, cached_client, registry, packument_doc):
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"Cache-Control": "max-age=0"})

        await cached_client.packument("oro-test")
        packument = await cached_client.packument("oro-test", cache_mode="force-cache")

        assert packument.name == "oro-test"
        assert len(registry.calls("GET", "/oro-test")) == 1

    async def test_only_if_cached_miss(self, cached_client, registry):
        with pytest.raises(CacheMissError):
            await cached_client.packument("oro-test", cache_mode=CacheMode.ONLY_IF_CACHED)

        assert registry.calls("GET", "/oro-test") == []

    async def test_only_if_cached_hit(self, cached_client, registry, packument_doc):
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"Cache-Control": "max-age=0"})

        await cached_client.packument("oro-test")
        packument = await cached_client.packument("oro-test", cache_mode=CacheMode.ONLY_IF_CACHED)

        assert packument.name == "oro-test"
        assert len(registry.calls("GET", "/oro-test")) == 1

    async def test_client_default_mode(self, make_client, registry, packument_doc):
        client = make_client(lambda b: b.cache_backend(MemoryCache()).cache_mode("force-cache"))
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"Cache-Control": "max-age=0"})

        await client.packument("oro-test")
        await client.packument("oro-test")

        assert len(registry.calls("GET", "/oro-test")) == 1


class TestInvalidation:
    """Unsafe methods invalidate stored responses."""

    async def test_put_invalidates_entry(self, cached_client, registry, packument_doc, memory_backend, metrics):
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"Cache-Control": "max-age=300"})
        registry.reply("PUT", "/oro-test", status=201, json={"ok": True})

        await cached_client.packument("oro-test")
        assert len(memory_backend) == 1

        await cached_client.send(cached_client.request("PUT", "oro-test", json={"name": "oro-test"}))

        assert len(memory_backend) == 0
        assert metrics.counters["cache.invalidate"] == 1

        await cached_client.packument("oro-test")
        assert len(registry.calls("GET", "/oro-test")) == 2

    async def test_failed_put_keeps_entry(self, cached_client, registry, packument_doc, memory_backend):
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"Cache-Control": "max-age=300"})
        registry.reply("PUT", "/oro-test", status=403, json={"error": "forbidden"})

        await cached_client.packument("oro-test")
        await cached_client.send(cached_client.request("PUT", "oro-test", json={}))

        assert len(memory_backend) == 1

    async def test_uncacheable_requests_skip_cache(self, cached_client, registry, memory_backend):
        registry.reply("GET", "/-/whoami", json={"username": "alice"}, headers={"Cache-Control": "max-age=300"})

        await cached_client.send(cached_client.request("GET", "-/whoami", cacheable=False))

        assert len(memory_backend) == 0


class TestBackends:
    """Backend wiring and failure handling."""

    async def test_failing_backend_degrades_to_network(self, make_client, registry, packument_doc, failing_backend):
        client = make_client(lambda b: b.cache_backend(failing_backend))
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"Cache-Control": "max-age=300"})

        first = await client.packument("oro-test")
        second = await client.packument("oro-test")

        assert first.name == second.name == "oro-test"
        assert len(registry.calls("GET", "/oro-test")) == 2
        assert client.cache.core.stats.errors >= 2

    async def test_fs_cache_survives_clients(self, make_client, registry, packument_doc, tmp_path):
        registry.reply("GET", "/oro-test", json=packument_doc, headers={"Cache-Control": "max-age=300"})

        async with make_client(lambda b: b.cache(tmp_path)) as first:
            await first.packument("oro-test")
        async with make_client(lambda b: b.cache(tmp_path)) as second:
            packument = await second.packument("oro-test")

        assert packument.name == "oro-test"
        assert len(registry.calls("GET", "/oro-test")) == 1
        assert list((tmp_path / "http").glob("*.json"))

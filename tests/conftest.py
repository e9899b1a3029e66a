"""
Shared test fixtures for oro-client tests.

This module provides:
- A scriptable mock registry served by aiohttp's TestServer
- Client fixtures wired to the mock registry
- Fake cache backends (in-memory, failing)
- Packument document factories
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import orjson
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from multidict import CIMultiDict

from oro_client import OroClient
from oro_client.cache import BaseCacheBackend
from oro_client.hooks import HookManager, InMemoryMetricsHook

# =============================================================================
# Mock Registry
# =============================================================================


@dataclass
class RecordedRequest:
    method: str
    path: str
    headers: CIMultiDict[str]
    body: bytes

    def json(self) -> Any:
        return orjson.loads(self.body)


Handler = Callable[[web.Request], Any]


@dataclass
class MockRegistry:
    """
    Scriptable npm registry.

    Routes are keyed by ``(method, raw_path)``; the raw path keeps percent
    escapes (``/@scope%2Fpkg``) and the query string. Each route holds a queue
    of handlers: they are used in order and the last one keeps answering.
    Unknown routes answer 404.
    """

    url: str = ""
    routes: dict[tuple[str, str], list[Handler]] = field(default_factory=dict)
    requests: list[RecordedRequest] = field(default_factory=list)

    def add(self, method: str, path: str, handler: Handler) -> None:
        self.routes.setdefault((method.upper(), path), []).append(handler)

    def reply(
        self,
        method: str,
        path: str,
        *,
        status: int = 200,
        json: Any = None,
        body: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        def handler(request: web.Request) -> web.Response:
            if json is not None:
                return web.json_response(json, status=status, headers=headers)
            return web.Response(status=status, body=body, headers=headers)

        self.add(method, path, handler)

    def calls(self, method: str, path: str) -> list[RecordedRequest]:
        return [r for r in self.requests if r.method == method.upper() and r.path == path]

    async def handle(self, request: web.Request) -> web.StreamResponse:
        body = await request.read()
        self.requests.append(RecordedRequest(request.method, request.raw_path, CIMultiDict(request.headers), body))

        handlers = self.routes.get((request.method, request.raw_path))
        if not handlers:
            return web.json_response({"error": "Not found"}, status=404)
        handler = handlers.pop(0) if len(handlers) > 1 else handlers[0]
        result = handler(request)
        if inspect.isawaitable(result):
            result = await result
        return result


@pytest_asyncio.fixture
async def registry():
    """Running mock registry."""
    mock = MockRegistry()
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", mock.handle)
    server = TestServer(app)
    await server.start_server()
    mock.url = str(server.make_url("/"))
    try:
        yield mock
    finally:
        await server.close()


@pytest.fixture
def metrics() -> InMemoryMetricsHook:
    return InMemoryMetricsHook()


@pytest_asyncio.fixture
async def make_client(registry, metrics):
    """Factory for clients pointed at the mock registry with instant retries."""
    clients: list[OroClient] = []

    def _make(configure: Callable[[Any], Any] | None = None) -> OroClient:
        builder = (
            OroClient.builder()
            .registry(registry.url)
            .retry_backoff(0.0, 0.0)
            .hooks(HookManager([metrics]))
        )
        if configure is not None:
            configure(builder)
        client = builder.build()
        clients.append(client)
        return client

    try:
        yield _make
    finally:
        for client in clients:
            await client.close()


@pytest.fixture
def client(make_client) -> OroClient:
    return make_client()


# =============================================================================
# Fake Cache Backends
# =============================================================================


class FailingCacheBackend(BaseCacheBackend):
    """Backend whose every operation raises."""

    name = "memory"

    async def read(self, key: str, collection: str | None = None) -> dict[str, Any] | None:
        raise OSError("disk on fire")

    async def write(self, key: str, entry: dict[str, Any], collection: str | None = None) -> None:
        raise OSError("disk on fire")

    async def delete(self, key: str, collection: str | None = None) -> bool:
        raise OSError("disk on fire")


@pytest.fixture
def failing_backend() -> FailingCacheBackend:
    return FailingCacheBackend()


# =============================================================================
# Packument Factories
# =============================================================================


def make_version(name: str, version: str, **fields: Any) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "name": name,
        "version": version,
        "dist": {
            "tarball": f"https://registry.npmjs.org/{name}/-/{name.split('/')[-1]}-{version}.tgz",
            "shasum": "0" * 40,
            "integrity": "sha512-" + "A" * 86 + "==",
        },
    }
    doc.update(fields)
    return doc


def make_packument(name: str = "oro-test", versions: tuple[str, ...] = ("1.0.0",), **fields: Any) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "name": name,
        "dist-tags": {"latest": versions[-1]},
        "versions": {v: make_version(name, v) for v in versions},
        "time": {v: "2024-01-01T00:00:00.000Z" for v in versions},
    }
    doc.update(fields)
    return doc


@pytest.fixture
def packument_doc() -> dict[str, Any]:
    return make_packument("oro-test", ("0.9.0", "1.0.0", "1.1.0"))


@pytest.fixture
def packument_factory() -> Callable[..., dict[str, Any]]:
    return make_packument

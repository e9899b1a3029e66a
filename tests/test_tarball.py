"""
Tests for tarball streaming and download.
"""

import asyncio
import gc
import os

import pytest

from oro_client import Credentials, RequestError, ResponseError
from oro_client.cache import MemoryCache

TARBALL_PATH = "/oro-test/-/oro-test-1.0.0.tgz"
TARBALL = os.urandom(200_000)


@pytest.fixture
def tarball_registry(registry):
    registry.reply("GET", TARBALL_PATH, body=TARBALL, headers={"Content-Type": "application/octet-stream"})
    return registry


class TestStreamTarball:
    """Chunked tarball streaming."""

    async def test_stream_chunks(self, client, tarball_registry):
        chunks = [chunk async for chunk in client.stream_tarball("oro-test/-/oro-test-1.0.0.tgz", chunk_size=16_384)]

        assert b"".join(chunks) == TARBALL
        assert all(len(chunk) <= 16_384 for chunk in chunks)
        assert len(chunks) > 1

    async def test_absolute_url(self, client, tarball_registry):
        chunks = [chunk async for chunk in client.stream_tarball(tarball_registry.url + TARBALL_PATH.lstrip("/"))]

        assert b"".join(chunks) == TARBALL

    async def test_missing_tarball(self, client, registry):
        with pytest.raises(ResponseError) as exc_info:
            async for _ in client.stream_tarball("oro-test/-/oro-test-9.9.9.tgz"):
                pass

        assert exc_info.value.http_status == 404

    async def test_retry_before_streaming(self, client, registry, metrics):
        registry.reply("GET", TARBALL_PATH, status=503, json={"error": "busy"})
        registry.reply("GET", TARBALL_PATH, body=TARBALL)

        chunks = [chunk async for chunk in client.stream_tarball(TARBALL_PATH)]

        assert b"".join(chunks) == TARBALL
        assert metrics.retries == 1
        assert metrics.counters["request.end"] == 1

    async def test_closing_early_ends_request(self, client, tarball_registry, metrics):
        chunks = client.stream_tarball(TARBALL_PATH, chunk_size=1024)
        async for _ in chunks:
            break
        await chunks.aclose()

        assert metrics.counters["request.start"] == 1
        assert metrics.counters["request.end"] == 1
        assert metrics.statuses[200] == 1

    async def test_abandoned_stream_is_finalized_cleanly(self, client, tarball_registry, metrics):
        """Breaking out without closing leaves cleanup to the loop's generator finalizer."""
        loop = asyncio.get_running_loop()
        reported: list[dict] = []
        previous = loop.get_exception_handler()
        loop.set_exception_handler(lambda _loop, context: reported.append(context))
        try:
            async for _ in client.stream_tarball(TARBALL_PATH, chunk_size=1024):
                break
            gc.collect()
            for _ in range(10):
                await asyncio.sleep(0)
        finally:
            loop.set_exception_handler(previous)

        assert metrics.counters["request.end"] == 1
        assert reported == []

    async def test_consumer_error_is_reported(self, client, tarball_registry, metrics):
        chunks = client.stream_tarball(TARBALL_PATH, chunk_size=1024)
        async for _ in chunks:
            break
        with pytest.raises(RequestError):
            await chunks.athrow(RequestError("disk full"))

        assert metrics.counters["request.error"] == 1
        assert metrics.counters["request.end"] == 1

    async def test_credentials_are_sent(self, make_client, tarball_registry):
        client = make_client(lambda b: b.credentials(tarball_registry.url, Credentials.from_token("s3cr3t")))

        async for _ in client.stream_tarball(TARBALL_PATH):
            pass

        assert tarball_registry.requests[-1].headers["Authorization"] == "Bearer s3cr3t"

    async def test_tarballs_bypass_cache(self, make_client, registry):
        backend = MemoryCache()
        client = make_client(lambda b: b.cache_backend(backend))
        registry.reply("GET", TARBALL_PATH, body=TARBALL, headers={"Cache-Control": "max-age=300"})

        async for _ in client.stream_tarball(TARBALL_PATH):
            pass

        assert len(backend) == 0


class TestDownloadTarball:
    """Downloading to disk."""

    async def test_download(self, client, tarball_registry, tmp_path):
        dest = tmp_path / "pkgs" / "oro-test-1.0.0.tgz"

        written = await client.download_tarball(TARBALL_PATH, dest)

        assert written == len(TARBALL)
        assert dest.read_bytes() == TARBALL
        assert sorted(p.name for p in dest.parent.iterdir()) == ["oro-test-1.0.0.tgz"]

    async def test_failed_download_leaves_nothing(self, client, registry, tmp_path):
        dest = tmp_path / "oro-test-9.9.9.tgz"

        with pytest.raises(ResponseError):
            await client.download_tarball("oro-test/-/oro-test-9.9.9.tgz", dest)

        assert list(tmp_path.iterdir()) == []

    async def test_download_replaces_existing_file(self, client, tarball_registry, tmp_path):
        dest = tmp_path / "oro-test-1.0.0.tgz"
        dest.write_bytes(b"stale")

        await client.download_tarball(TARBALL_PATH, dest)

        assert dest.read_bytes() == TARBALL

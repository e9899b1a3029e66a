"""
Tarball download.
"""

from __future__ import annotations

import asyncio
import contextlib
import uuid
from collections.abc import AsyncIterator
from pathlib import Path
from typing import TYPE_CHECKING

import aiofiles
import aiofiles.os
import aiohttp
from yarl import URL

from ..errors import ErrorContext, RegistryTimeoutError, RequestError

if TYPE_CHECKING:
    from ..context import RequestContext

DEFAULT_CHUNK_SIZE = 64 * 1024


class TarballMixin:
    """
    Tarball streaming for OroClient.

    Requires ``self.request()`` and ``self.stream()`` on the implementing class.
    Tarballs bypass the HTTP cache.
    """

    registry: URL

    async def stream_tarball(
        self,
        url: str | URL,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        context: RequestContext | None = None,
    ) -> AsyncIterator[bytes]:
        """
        Stream a tarball as byte chunks.

        ``url`` is usually ``dist.tarball`` from a packument; relative URLs
        resolve against the registry.
        """
        request = self.request("GET", url, headers={"Accept": "*/*"}, cacheable=False)
        async with self.stream(request, context=context) as response:
            try:
                async for chunk in response.content.iter_chunked(chunk_size):
                    yield chunk
            except asyncio.TimeoutError as exc:
                raise RegistryTimeoutError(
                    f"Reading tarball from {request.url} timed out",
                    url=str(request.url),
                    cause=exc,
                ) from exc
            except aiohttp.ClientError as exc:
                raise RequestError(
                    f"Reading tarball from {request.url} failed: {exc}",
                    context=ErrorContext(method="GET", url=str(request.url)),
                    cause=exc,
                ) from exc

    async def download_tarball(
        self,
        url: str | URL,
        dest: str | Path,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        context: RequestContext | None = None,
    ) -> int:
        """
        Download a tarball to ``dest``. Returns the number of bytes written.

        The file appears at ``dest`` only once the download completed.
        """
        dest = Path(dest)
        await aiofiles.os.makedirs(dest.parent, exist_ok=True)
        tmp_path = dest.with_name(f".{dest.name}.{uuid.uuid4().hex}.tmp")

        written = 0
        try:
            async with aiofiles.open(tmp_path, "wb") as f:
                async for chunk in self.stream_tarball(url, chunk_size=chunk_size, context=context):
                    await f.write(chunk)
                    written += len(chunk)
            await aiofiles.os.replace(tmp_path, dest)
        finally:
            with contextlib.suppress(FileNotFoundError):
                await aiofiles.os.remove(tmp_path)
        return written


__all__ = ["TarballMixin", "DEFAULT_CHUNK_SIZE"]

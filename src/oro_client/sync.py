"""Thin sync wrappers for the async-first client.

Use with caution - these are meant for scripting contexts where an event
loop is not available.

Key design:
- Uses asyncio.run() when no event loop is active
- Raises RuntimeError if called inside an existing event loop
- Each call opens and closes its own client session
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from .client import OroClient

if TYPE_CHECKING:
    from .packument import CorgiPackument, Packument

T = TypeVar("T")


def _ensure_no_loop(name: str, alternative: str) -> None:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return
    raise RuntimeError(
        f"{name}() cannot be called inside an async context. Use 'await {alternative}' instead."
    )


def _run(client: OroClient | None, call: Callable[[OroClient], Awaitable[T]]) -> T:
    async def _main() -> T:
        active = client or OroClient.from_settings()
        try:
            return await call(active)
        finally:
            # The session is bound to this loop, which asyncio.run() is about to close.
            await active.close()

    return asyncio.run(_main())


def packument_sync(name: str, client: OroClient | None = None) -> Packument:
    """Sync wrapper for OroClient.packument.

    Args:
        name: Package name.
        client: Client to use; one is built from the global settings if omitted.

    Raises:
        RuntimeError: If called inside an existing async event loop.
    """
    _ensure_no_loop("packument_sync", "client.packument(name)")
    return _run(client, lambda c: c.packument(name))


def corgi_packument_sync(name: str, client: OroClient | None = None) -> CorgiPackument:
    """Sync wrapper for OroClient.corgi_packument.

    Raises:
        RuntimeError: If called inside an existing async event loop.
    """
    _ensure_no_loop("corgi_packument_sync", "client.corgi_packument(name)")
    return _run(client, lambda c: c.corgi_packument(name))


__all__ = ["packument_sync", "corgi_packument_sync"]

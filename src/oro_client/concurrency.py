"""
Blocking I/O off the event loop.

Only the filesystem cache needs this; network I/O is native aiohttp.
"""

from __future__ import annotations

import asyncio
import os
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Any, TypeVar

T = TypeVar("T")

_POLL_INTERVAL = 0.001

_executor: ThreadPoolExecutor | None = None
_executor_pid: int | None = None
_lock = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    """Shared pool, created on first use and again in a forked child."""
    global _executor, _executor_pid
    with _lock:
        if _executor is None or _executor_pid != os.getpid():
            _executor = ThreadPoolExecutor(
                max_workers=min(32, (os.cpu_count() or 1) + 4),
                thread_name_prefix="oro-cache-io",
            )
            _executor_pid = os.getpid()
        return _executor


async def _wait(future: Future[T]) -> T:
    # Polled rather than wrapped with asyncio.wrap_future: the thread-safe
    # wakeup it relies on can be lost under some test harnesses.
    try:
        while not future.done():
            await asyncio.sleep(_POLL_INTERVAL)
    except asyncio.CancelledError:
        future.cancel()
        raise
    return future.result()


async def run_sync(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    """Run a blocking callable on the cache I/O pool and await its result."""
    return await _wait(_get_executor().submit(partial(func, *args, **kwargs)))


__all__ = ["run_sync"]

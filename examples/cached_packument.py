#!/usr/bin/env python3
"""
Example: packuments through the filesystem HTTP cache

Demonstrates:
1. Fetching full and corgi packuments
2. Replaying a fresh response from the cache
3. Reading hook metrics
"""

import asyncio
import sys
import tempfile
from pathlib import Path

from oro_client import HookManager, InMemoryMetricsHook, OroClient


async def main(name: str) -> None:
    cache_dir = Path(tempfile.mkdtemp(prefix="oro_cache_"))
    print(f"Cache directory: {cache_dir}")

    metrics = InMemoryMetricsHook()
    client = OroClient.builder().cache(cache_dir).hooks(HookManager([metrics])).build()

    async with client:
        packument = await client.packument(name)
        latest = packument.latest
        print(f"{packument.name}: {len(packument.versions)} versions, latest {latest.version if latest else '-'}")

        corgi = await client.corgi_packument(name)
        print(f"corgi document modified {corgi.modified}")

        # Second fetch is served from the cache while the registry's max-age holds.
        await client.packument(name)

    snapshot = metrics.snapshot()
    print(f"cache hits: {snapshot['cache_hits']}, misses: {snapshot['cache_misses']}")
    print(f"statuses: {snapshot['statuses']}")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "react"))

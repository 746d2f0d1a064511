"""Redis-backed counter store.

Learn: counters are JSON blobs stored with SETEX, so Redis drops a window
on its own once the TTL runs out. The connection is created lazily by
redis.asyncio; nothing is dialled until the first command, which keeps
app construction free of network I/O.
"""

import json
from typing import Any, Optional

import redis.asyncio as aioredis


def create_redis(url: str) -> aioredis.Redis:
    """Build the Redis client (pool opens on first use)."""
    return aioredis.from_url(url, encoding="utf-8", decode_responses=True)


class RedisCounterStore:
    """CounterStore over a redis.asyncio client."""

    def __init__(self, client: aioredis.Redis):
        self.client = client

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        raw = await self.client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        await self.client.set(key, json.dumps(value), ex=max(1, int(ttl_seconds)))

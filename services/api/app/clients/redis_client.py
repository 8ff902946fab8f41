"""
Redis-backed key-value store.

Every record is a JSON string under a composite key:
  user:{id}                      — profile
  post:{id}                      — post with denormalised author snapshot
  comment:{post_id}:{id}         — comment
  draft:{user_id}:{id}           — draft
  upvote:{user_id}:{post_id}     — presence toggle
  bookmark:{user_id}:{post_id}   — presence toggle
  follow:{follower}:{followee}   — presence toggle

The store is linearisable per key only; nothing here spans keys atomically.
Prefix scans return records in key order.
"""
import json
import logging
import re
from typing import Any, Optional

import redis.asyncio as aioredis

from app.config import settings

logger = logging.getLogger(__name__)

_redis: Optional[aioredis.Redis] = None

# Characters with meaning in a Redis MATCH pattern
_GLOB_SPECIAL = re.compile(r"([\\*?\[\]])")


async def init_redis() -> None:
    global _redis
    _redis = aioredis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        password=settings.redis_password,
        decode_responses=True,
    )
    await _redis.ping()
    logger.info("Redis connected at %s:%s", settings.redis_host, settings.redis_port)


async def close_redis() -> None:
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    if _redis is None:
        raise RuntimeError("Redis not initialised — call init_redis() at startup")
    return _redis


def _match_prefix(prefix: str) -> str:
    return _GLOB_SPECIAL.sub(r"\\\1", prefix) + "*"


class KeyValueStore:
    """get / set / delete / prefix-scan over JSON values."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self._redis = redis

    async def get(self, key: str) -> Any:
        raw = await self._redis.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        await self._redis.set(key, json.dumps(value))

    async def delete(self, key: str) -> bool:
        """Remove `key`; True if it existed."""
        return bool(await self._redis.delete(key))

    async def keys_by_prefix(self, prefix: str) -> list[str]:
        keys = [k async for k in self._redis.scan_iter(match=_match_prefix(prefix), count=500)]
        keys.sort()
        return keys

    async def items_by_prefix(self, prefix: str) -> list[tuple[str, Any]]:
        keys = await self.keys_by_prefix(prefix)
        if not keys:
            return []
        values = await self._redis.mget(keys)
        # A key may vanish between SCAN and MGET
        return [(k, json.loads(v)) for k, v in zip(keys, values) if v is not None]

    async def get_by_prefix(self, prefix: str) -> list[Any]:
        return [value for _, value in await self.items_by_prefix(prefix)]


def get_store() -> KeyValueStore:
    """FastAPI dependency returning a store bound to the shared connection."""
    return KeyValueStore(get_redis())

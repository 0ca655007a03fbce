"""
Redis-backed cache for backend GET responses.

Each cached entry can carry revalidation tags. A tag is a Redis set holding the
keys of every entry fetched under it, so a mutation can drop all of them with
one `revalidate_tag` call instead of tracking URLs.
"""
import hashlib
import json
import logging
from typing import Any, Iterable, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from .enums import RevalidateTag

logger = logging.getLogger("edgehomes.cache")

KEY_PREFIX = "edgehomes:cache:"
TAG_PREFIX = "edgehomes:tag:"


def cache_key(method: str, url: str, params: Optional[dict] = None, bearer: Optional[str] = None) -> str:
    """Builds a stable key; user-specific requests are keyed by a hash of the token."""
    parts = [method.upper(), url, json.dumps(params or {}, sort_keys=True, default=str)]
    if bearer:
        parts.append(hashlib.sha256(bearer.encode("utf-8")).hexdigest())
    digest = hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()
    return f"{KEY_PREFIX}{digest}"


def tag_key(tag: RevalidateTag) -> str:
    return f"{TAG_PREFIX}{tag.value}"


class ResponseCache:
    def __init__(self, client: redis.Redis, default_ttl: int = 60):
        self.client = client
        self.default_ttl = default_ttl

    async def get(self, key: str) -> Optional[Any]:
        try:
            cached = await self.client.get(key)
        except RedisError as e:
            logger.warning(f"Cache read failed, treating as miss: {e}")
            return None
        if cached is None:
            return None
        try:
            return json.loads(cached)
        except json.JSONDecodeError:
            logger.warning(f"Dropping undecodable cache entry {key}")
            await self.delete(key)
            return None

    async def set(self, key: str, value: Any, tags: Iterable[RevalidateTag] = (), ttl: Optional[int] = None) -> None:
        expiry = ttl or self.default_ttl
        try:
            await self.client.set(key, json.dumps(value, default=str), ex=expiry)
            for tag in tags:
                await self.client.sadd(tag_key(tag), key)
                # The tag set lives as long as its newest entry
                await self.client.expire(tag_key(tag), expiry)
        except RedisError as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except RedisError as e:
            logger.warning(f"Cache delete failed for {key}: {e}")

    async def revalidate_tag(self, tag: RevalidateTag) -> int:
        """Deletes every entry fetched under `tag`. Returns how many keys were dropped."""
        try:
            members = await self.client.smembers(tag_key(tag))
            keys = [m.decode("utf-8") if isinstance(m, bytes) else m for m in members]
            if keys:
                await self.client.delete(*keys)
            await self.client.delete(tag_key(tag))
        except RedisError as e:
            logger.error(f"Failed to revalidate tag {tag.value}: {e}")
            return 0
        logger.info(f"Revalidated tag {tag.value} ({len(keys)} entries)")
        return len(keys)

    async def revalidate(self, *tags: RevalidateTag) -> None:
        for tag in tags:
            await self.revalidate_tag(tag)

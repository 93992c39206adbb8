"""
services/cache_service.py
-------------------------
Tag-based response cache backed by Redis, scoped per tenant.

Tags:
  - A prefix listed in GLOBAL_CACHE_PREFIXES is used verbatim; invalidating it
    clears the entry for every tenant.
  - Any other prefix gets the caller's company id appended ("dealers-42").
    The company id always comes from the resolved caller, never from the
    request, so one tenant cannot flush another tenant's cache.

Storage layout:
  <key_prefix>key:<key>  → JSON value (with TTL)
  <key_prefix>tag:<tag>  → Redis set of the full keys cached under the tag

A value may be registered under several tags (dealer locations live under
the tenant tag and under ORPHAN_DEALERS_TAG).

Invalidation reads the tag set and deletes it together with its members in
one server-side script, so a remember() racing with it either lands before
(and is deleted) or after (and is registered under a fresh tag set).

Cache failures are never fatal: reads fall back to the loader, writes are
skipped, invalidation reports success=False and logs.
"""

import json
from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol, Union

import redis.asyncio as redis
from redis.exceptions import RedisError

from dealerdesk.core.config import Settings
from dealerdesk.core.errors import ValidationError
from dealerdesk.core.logging import get_logger
from dealerdesk.schemas.cache import CacheRefreshResult
from dealerdesk.schemas.user import CurrentUser

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 3600

# Orphan dealers are visible to every tenant; data derived from them is also
# cached under this shared tag.
ORPHAN_DEALERS_TAG = "orphan-dealers"

# KEYS[1] is the tag set. Returns the number of cached values removed.
INVALIDATE_TAG_SCRIPT = """
local members = redis.call('SMEMBERS', KEYS[1])
for _, key in ipairs(members) do
    redis.call('DEL', key)
end
redis.call('DEL', KEYS[1])
return #members
"""


def compute_cache_tag(prefix: str, company_id: int, global_prefixes: Iterable[str]) -> str:
    """
    compute_cache_tag("technical-sites", 42, {"technical-sites"}) → "technical-sites"
    compute_cache_tag("dealers", 42, {"technical-sites"})         → "dealers-42"
    """
    if not prefix:
        raise ValidationError("Cache prefix is required")
    if prefix in set(global_prefixes):
        return prefix
    return f"{prefix}-{company_id}"


class TagInvalidator(Protocol):
    async def invalidate(self, tag: str) -> bool: ...


class RedisTagCache:
    """
    Usage:
        cache = RedisTagCache.from_settings(settings)
        value = await cache.get("dealer-locations:7")
        await cache.remember("dealers-7", "dealer-locations:7", value)
        await cache.invalidate("dealers-7")
        await cache.close()
    """

    def __init__(self, client: "redis.Redis", key_prefix: str = "") -> None:
        self._client = client
        self._key_prefix = key_prefix

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisTagCache":
        client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
        )
        return cls(client, key_prefix=settings.CACHE_KEY_PREFIX)

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}key:{key}"

    def _tag_key(self, tag: str) -> str:
        return f"{self._key_prefix}tag:{tag}"

    async def get(self, key: str) -> Any:
        try:
            data = await self._client.get(self._key(key))
        except RedisError as exc:
            logger.warning("Cache GET failed", key=key, error=str(exc))
            return None
        if data is None:
            return None
        return json.loads(data)

    async def remember(
        self,
        tags: Union[str, Iterable[str]],
        key: str,
        value: Any,
        ttl: int = DEFAULT_TTL_SECONDS,
    ) -> bool:
        tags = [tags] if isinstance(tags, str) else list(tags)
        full_key = self._key(key)
        try:
            await self._client.set(full_key, json.dumps(value, default=str), ex=ttl)
            for tag in tags:
                await self._client.sadd(self._tag_key(tag), full_key)
        except RedisError as exc:
            logger.warning("Cache SET failed", key=key, tags=tags, error=str(exc))
            return False
        return True

    async def invalidate(self, tag: str) -> bool:
        """Atomically delete every key registered under `tag`, and the tag itself."""
        tag_key = self._tag_key(tag)
        try:
            deleted = await self._client.eval(INVALIDATE_TAG_SCRIPT, 1, tag_key)
        except RedisError as exc:
            logger.warning("Cache invalidation failed", tag=tag, error=str(exc))
            return False
        logger.info("Cache invalidated", tag=tag, deleted=deleted)
        return True

    async def close(self) -> None:
        await self._client.aclose()


async def cached(
    cache: Optional[RedisTagCache],
    tags: Union[str, Iterable[str]],
    key: str,
    loader: Callable[[], Awaitable[Any]],
) -> Any:
    """Return the cached value for `key`, or load it and remember it under `tags`."""
    if cache is None:
        return await loader()
    value = await cache.get(key)
    if value is not None:
        return value
    value = await loader()
    await cache.remember(tags, key, value)
    return value


class CacheService:

    @staticmethod
    async def refresh_company_cache(
        invalidator: Optional[TagInvalidator],
        current_user: CurrentUser,
        prefix: str,
        global_prefixes: Iterable[str],
    ) -> CacheRefreshResult:
        """
        Invalidate `prefix` for the caller's tenant (or globally, for global
        prefixes). Never raises on cache failure; success=False instead.
        """
        tag = compute_cache_tag(prefix, current_user.company_id, global_prefixes)

        if invalidator is None:
            logger.warning("No cache configured; nothing to invalidate", tag=tag)
            return CacheRefreshResult(success=False, tag=tag, message="Failed to clear cache")

        try:
            ok = await invalidator.invalidate(tag)
        except Exception as exc:
            logger.error("Cache invalidator raised", tag=tag, error=str(exc))
            ok = False

        if not ok:
            return CacheRefreshResult(success=False, tag=tag, message="Failed to clear cache")

        logger.info(
            "Company cache cleared",
            tag=tag,
            user_id=current_user.id,
            company_id=current_user.company_id,
        )
        return CacheRefreshResult(success=True, tag=tag, message=f"Cache cleared for {tag}")

"""
Fail-soft key-value store over the remote Redis cache.
"""

import json
from typing import Any, Optional

import redis.asyncio as redis

from shared.logging import get_logger


class KeyValueStore:
    """JSON get/set/delete/exists over Redis.

    Every operation swallows transport errors, logs a warning and answers
    ``None``/``False``/``0`` so cache trouble only ever forces an upstream
    fetch. The client is built once per store and handed to whoever needs it.
    """

    def __init__(
        self,
        redis_url: str,
        client: Optional[redis.Redis] = None,
        pattern_invalidation: bool = False,
    ):
        self.redis_url = redis_url
        self.pattern_invalidation = pattern_invalidation
        self.logger = get_logger("storefront.kv_store")
        self._redis: Optional[redis.Redis] = client

    def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        return self._redis

    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded value or None on miss or error."""
        try:
            raw = await self._get_redis().get(key)
        except Exception as e:
            self.logger.warning("Cache get failed", key=key, error=str(e))
            return None

        if raw is None:
            return None

        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            self.logger.warning("Cache value is not valid JSON", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Store ``value`` under ``key`` with an expiry."""
        try:
            payload = json.dumps(value, default=str)
            await self._get_redis().setex(key, ttl_seconds, payload)
            self.logger.debug("Cached value", key=key, ttl=ttl_seconds)
            return True
        except Exception as e:
            self.logger.warning("Cache set failed", key=key, error=str(e))
            return False

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self._get_redis().delete(key))
        except Exception as e:
            self.logger.warning("Cache delete failed", key=key, error=str(e))
            return False

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self._get_redis().exists(key))
        except Exception as e:
            self.logger.warning("Cache exists failed", key=key, error=str(e))
            return False

    async def ping(self) -> bool:
        try:
            return bool(await self._get_redis().ping())
        except Exception as e:
            self.logger.warning("Cache ping failed", error=str(e))
            return False

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``.

        Only runs when pattern invalidation is enabled; otherwise nothing is
        deleted and 0 is returned.
        """
        if not self.pattern_invalidation:
            self.logger.warning("Pattern invalidation disabled, prefix not cleared", prefix=prefix)
            return 0

        deleted = 0
        try:
            client = self._get_redis()
            async for key in client.scan_iter(match=f"{prefix}*", count=500):
                deleted += int(await client.delete(key) or 0)
        except Exception as e:
            self.logger.warning("Cache prefix delete failed", prefix=prefix, deleted=deleted, error=str(e))
        return deleted

    async def close(self) -> None:
        if self._redis is not None:
            try:
                await self._redis.aclose()
            except Exception as e:
                self.logger.warning("Cache close failed", error=str(e))
            self._redis = None

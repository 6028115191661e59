"""Best-effort Redis read-through cache for feed pages and post details."""

from __future__ import annotations

import json
import logging
from typing import Any

import redis

from vecinu.core.settings import settings

logger = logging.getLogger(__name__)

FEED_NAMESPACE = "feed"
POST_NAMESPACE = "post"


def create_redis_client(url: str | None) -> redis.Redis | None:
    """Build a Redis client for ``url`` or return ``None`` when unset."""
    if not url:
        return None
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        decode_responses=True,
        socket_timeout=2.0,
        socket_connect_timeout=2.0,
    )


class FeedCache:
    """Cache wrapper that never lets a Redis failure reach the caller.

    Reads that fail are treated as misses; writes and invalidations that fail
    are logged and dropped. TTL expiry bounds any staleness.
    """

    def __init__(
        self,
        client: redis.Redis | None,
        *,
        feed_ttl: int = settings.feed_cache_ttl_seconds,
        post_ttl: int = settings.post_cache_ttl_seconds,
    ) -> None:
        self._redis = client
        self.feed_ttl = feed_ttl
        self.post_ttl = post_ttl

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    @staticmethod
    def feed_key(neighborhood_slug: str | None = None, category: str | None = None) -> str:
        parts = [FEED_NAMESPACE]
        if category:
            parts.append(f"cat:{category}")
        if neighborhood_slug:
            parts.append(f"nbh:{neighborhood_slug}")
        return ":".join(parts)

    @staticmethod
    def post_key(post_id: object) -> str:
        return f"{POST_NAMESPACE}:{post_id}"

    def get(self, key: str) -> Any | None:
        if self._redis is None:
            return None
        try:
            raw = self._redis.get(key)
            return json.loads(raw) if raw else None
        except (redis.RedisError, ValueError, TypeError) as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None

    def set(self, key: str, value: Any, ttl: int) -> None:
        if self._redis is None:
            return
        try:
            self._redis.set(key, json.dumps(value), ex=ttl)
        except (redis.RedisError, TypeError, ValueError) as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    def get_feed(self, key: str) -> dict[str, Any] | None:
        cached = self.get(key)
        return cached if isinstance(cached, dict) else None

    def set_feed(self, key: str, payload: dict[str, Any]) -> None:
        self.set(key, payload, self.feed_ttl)

    def get_post(self, post_id: object) -> dict[str, Any] | None:
        cached = self.get(self.post_key(post_id))
        return cached if isinstance(cached, dict) else None

    def set_post(self, post_id: object, payload: dict[str, Any]) -> None:
        self.set(self.post_key(post_id), payload, self.post_ttl)

    def invalidate_feed(self) -> int:
        """Drop every cached feed page.

        Returns:
            Number of keys removed (0 when the cache is disabled or failing).
        """
        if self._redis is None:
            return 0
        try:
            keys = self._redis.keys(f"{FEED_NAMESPACE}:*")
            if not keys:
                return 0
            return int(self._redis.delete(*keys))
        except redis.RedisError as exc:
            logger.error("Failed to invalidate feed cache: %s", exc)
            return 0

    def invalidate_post(self, post_id: object) -> None:
        if self._redis is None:
            return
        try:
            self._redis.delete(self.post_key(post_id))
        except redis.RedisError as exc:
            logger.error("Failed to invalidate post cache: %s", exc)

    def close(self) -> None:
        if self._redis is not None:
            self._redis.close()

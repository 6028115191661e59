"""Sliding-window rate limiting backed by Redis sorted sets."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass

import redis
from starlette.requests import Request

from vecinu.core.settings import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single limit check."""

    success: bool
    limit: int
    remaining: int
    reset_after: int


class SlidingWindowRateLimiter:
    """Per-identity request limiter over a rolling time window.

    Each hit is a member of the sorted set ``ratelimit:{name}:{identity}``
    scored by its timestamp. When Redis is unavailable every request is
    allowed.
    """

    def __init__(
        self,
        client: redis.Redis | None,
        limits: dict[str, tuple[int, int]] | None = None,
        *,
        enabled: bool = True,
    ) -> None:
        self._redis = client
        self.limits = dict(limits if limits is not None else settings.rate_limits)
        self.enabled = enabled and client is not None

    def check(self, name: str, identity: str) -> RateLimitResult:
        """Record a hit for ``identity`` against limiter ``name`` and evaluate it."""
        max_requests, window = self.limits[name]
        if not self.enabled or self._redis is None:
            return RateLimitResult(True, max_requests, max_requests, 0)

        key = f"ratelimit:{name}:{identity}"
        now = time.time()
        member = f"{now:.6f}:{uuid.uuid4().hex[:8]}"
        try:
            pipe = self._redis.pipeline()
            pipe.zremrangebyscore(key, 0, now - window)
            pipe.zadd(key, {member: now})
            pipe.zcard(key)
            pipe.expire(key, window)
            _, _, count, _ = pipe.execute()
        except redis.RedisError as exc:
            logger.warning("Rate limiter unavailable for %s: %s", name, exc)
            return RateLimitResult(True, max_requests, max_requests, 0)

        count = int(count)
        if count > max_requests:
            # Rejected hits do not consume the window.
            try:
                self._redis.zrem(key, member)
            except redis.RedisError as exc:
                logger.warning("Rate limiter cleanup failed for %s: %s", name, exc)
            return RateLimitResult(False, max_requests, 0, window)
        return RateLimitResult(True, max_requests, max_requests - count, window)


def get_client_ip(request: Request) -> str:
    """Return the caller IP from proxy headers, falling back to ``"unknown"``."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return "unknown"

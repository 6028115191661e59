"""Process-wide collaborators built at startup and injected per request."""
from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass

from sqlalchemy.orm import Session
from starlette.requests import Request

from vecinu.core.settings import settings
from vecinu.db.session import SessionLocal
from vecinu.services.feed_cache import FeedCache, create_redis_client
from vecinu.services.identity import IdentityClient
from vecinu.services.notifications import NotificationDispatcher
from vecinu.services.rate_limit import SlidingWindowRateLimiter
from vecinu.services.storage import StorageClient

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    feed_cache: FeedCache
    rate_limiter: SlidingWindowRateLimiter
    identity: IdentityClient
    storage: StorageClient
    notifications: NotificationDispatcher
    session_factory: Callable[[], AbstractContextManager[Session]]

    async def close(self) -> None:
        self.feed_cache.close()
        await self.identity.close()
        await self.storage.close()


def build_services(
    session_factory: Callable[[], AbstractContextManager[Session]] | None = None,
) -> ServiceContainer:
    """Wire the collaborators from ``settings``.

    Redis-backed services are disabled when ``REDIS_URL`` is unset.
    """
    if session_factory is None:
        session_factory = SessionLocal

    redis_client = create_redis_client(settings.redis_url)
    if redis_client is None:
        logger.warning("REDIS_URL not set; feed cache and rate limiting are disabled")

    return ServiceContainer(
        feed_cache=FeedCache(redis_client),
        rate_limiter=SlidingWindowRateLimiter(redis_client, enabled=settings.rate_limit_enabled),
        identity=IdentityClient(),
        storage=StorageClient(),
        notifications=NotificationDispatcher(session_factory),
        session_factory=session_factory,
    )


def get_services(request: Request) -> ServiceContainer:
    """Return the container stored on the application at startup."""
    return request.app.state.services  # type: ignore[no-any-return]


def get_feed_cache(request: Request) -> FeedCache:
    return get_services(request).feed_cache


def get_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    return get_services(request).rate_limiter


def get_identity_client(request: Request) -> IdentityClient:
    return get_services(request).identity


def get_storage_client(request: Request) -> StorageClient:
    return get_services(request).storage


def get_notification_dispatcher(request: Request) -> NotificationDispatcher:
    return get_services(request).notifications


def get_session_factory(request: Request) -> Callable[[], AbstractContextManager[Session]]:
    return get_services(request).session_factory

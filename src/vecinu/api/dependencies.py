"""Shared API dependencies for authentication and common functionality."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Annotated
from urllib.parse import urlsplit

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from vecinu.core.errors import AuthenticationError, AuthorizationError, RateLimitError
from vecinu.core.security import decode_session_token
from vecinu.core.settings import settings
from vecinu.db.session import get_db
from vecinu.models import User
from vecinu.services import user_service
from vecinu.services.container import (
    get_feed_cache,
    get_identity_client,
    get_notification_dispatcher,
    get_rate_limiter,
    get_session_factory,
    get_storage_client,
)
from vecinu.services.feed_cache import FeedCache
from vecinu.services.identity import IdentityClient
from vecinu.services.notifications import NotificationDispatcher
from vecinu.services.rate_limit import SlidingWindowRateLimiter, get_client_ip
from vecinu.services.storage import StorageClient
from vecinu.utils.cursor import KeysetCursor, decode_cursor

BANNED_MESSAGE = "Contul tău a fost suspendat"
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

# HTTP Bearer scheme; the session cookie is accepted when the header is absent
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]

FeedCacheDep = Annotated[FeedCache, Depends(get_feed_cache)]
RateLimiterDep = Annotated[SlidingWindowRateLimiter, Depends(get_rate_limiter)]
IdentityDep = Annotated[IdentityClient, Depends(get_identity_client)]
StorageDep = Annotated[StorageClient, Depends(get_storage_client)]
DispatcherDep = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]
SessionFactoryDep = Annotated[
    Callable[[], AbstractContextManager[Session]],
    Depends(get_session_factory),
]


def get_session_token(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str | None:
    """Return the raw session token from the bearer header or the session cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.session_cookie_name) or None


SessionTokenDep = Annotated[str | None, Depends(get_session_token)]


def get_current_user(token: SessionTokenDep, db: SessionDep) -> User:
    """Resolve the session to a local, non-banned user.

    Raises:
        AuthenticationError: If no valid session is present or no local user matches.
        AuthorizationError: If the user is banned.
    """
    if not token:
        raise AuthenticationError()
    claims = decode_session_token(token)
    user = user_service.get_user_by_email(db, claims["email"])
    if user is None:
        raise AuthenticationError()
    if user.is_banned:
        raise AuthorizationError(BANNED_MESSAGE)
    return user


def get_optional_user(token: SessionTokenDep, db: SessionDep) -> User | None:
    """Like ``get_current_user`` but anonymous callers and bad sessions yield ``None``."""
    if not token:
        return None
    try:
        return get_current_user(token, db)
    except (AuthenticationError, AuthorizationError):
        return None


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]
OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]


def get_moderator(user: CurrentUserDep) -> User:
    """Require a moderator or admin."""
    if not user.is_staff:
        raise AuthorizationError("Acces restricționat la moderatori")
    return user


ModeratorDep = Annotated[User, Depends(get_moderator)]


def _origin_of(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}".lower()


def verify_origin(request: Request) -> None:
    """Reject cross-site mutating requests.

    ``Origin`` is compared against ``APP_URL``, falling back to ``Referer``.
    Skipped for safe methods, in debug mode, or when ``APP_URL`` is unset.
    """
    if request.method in SAFE_METHODS or settings.debug or not settings.app_url:
        return
    expected = _origin_of(settings.app_url)
    origin = request.headers.get("origin")
    if origin:
        if _origin_of(origin) != expected:
            raise AuthorizationError("Cerere invalidă (origine necunoscută)")
        return
    referer = request.headers.get("referer")
    if not referer or _origin_of(referer) != expected:
        raise AuthorizationError("Cerere invalidă (origine necunoscută)")


def enforce_rate_limit(limiter: SlidingWindowRateLimiter, name: str, identity: str) -> None:
    result = limiter.check(name, identity)
    if not result.success:
        raise RateLimitError(retry_after=result.reset_after)


class RateLimitByIp:
    """Dependency applying limiter ``name`` to the caller's IP address."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __call__(self, request: Request, limiter: RateLimiterDep) -> None:
        enforce_rate_limit(limiter, self.name, get_client_ip(request))


class RateLimitByUser:
    """Dependency applying limiter ``name`` to the authenticated user's id."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __call__(self, user: CurrentUserDep, limiter: RateLimiterDep) -> None:
        enforce_rate_limit(limiter, self.name, str(user.id))


def get_cursor(cursor: Annotated[str | None, Query(max_length=512)] = None) -> KeysetCursor | None:
    """Decode the opaque ``cursor`` query parameter."""
    if not cursor:
        return None
    return decode_cursor(cursor)


CursorDep = Annotated[KeysetCursor | None, Depends(get_cursor)]
LimitDep = Annotated[
    int,
    Query(ge=1, le=settings.pagination_max_limit),
]

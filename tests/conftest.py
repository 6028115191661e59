# tests/conftest.py
from __future__ import annotations

import contextlib
from collections.abc import Generator, Iterator
from datetime import timedelta
from itertools import count
from typing import Any
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from vecinu.core.settings import settings
from vecinu.db.session import Base
from vecinu.db.session import get_db as app_get_session
from vecinu.db.time import utcnow
from vecinu.main import app as fastapi_app
from vecinu.models import Neighborhood, Post, PostCategory, User, UserRole
from vecinu.services import container
from vecinu.services.feed_cache import FeedCache
from vecinu.services.identity import IdentityClient
from vecinu.services.notifications import NotificationDispatcher
from vecinu.services.rate_limit import SlidingWindowRateLimiter
from vecinu.services.storage import StorageClient

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def session_factory(db_session: Session):
    """Session factory handing background tasks the test session."""
    return lambda: contextlib.nullcontext(db_session)


@pytest.fixture()
def mock_redis() -> MagicMock:
    """Redis stand-in: every key misses and no feed keys exist."""
    client = MagicMock()
    client.get.return_value = None
    client.keys.return_value = []
    client.delete.return_value = 0
    return client


@pytest.fixture()
def feed_cache(mock_redis: MagicMock) -> FeedCache:
    return FeedCache(mock_redis, feed_ttl=300, post_ttl=600)


@pytest.fixture()
def rate_limiter() -> SlidingWindowRateLimiter:
    """Limiter with no Redis behind it, so every request is allowed."""
    return SlidingWindowRateLimiter(None)


@pytest.fixture()
def identity_client() -> MagicMock:
    client = MagicMock(spec=IdentityClient)
    client.enabled = True
    return client


@pytest.fixture()
def storage_client() -> MagicMock:
    client = MagicMock(spec=StorageClient)
    client.enabled = True
    return client


@pytest.fixture()
def dispatcher(session_factory) -> NotificationDispatcher:
    return NotificationDispatcher(session_factory)


@pytest.fixture(autouse=True)
def override_services(
    app: FastAPI,
    feed_cache: FeedCache,
    rate_limiter: SlidingWindowRateLimiter,
    identity_client: MagicMock,
    storage_client: MagicMock,
    dispatcher: NotificationDispatcher,
    session_factory,
) -> Iterator[None]:
    """Route every container getter to the per-test collaborators.

    Tests needing a different limiter or cache re-register the override.
    """
    overrides = {
        container.get_feed_cache: lambda: feed_cache,
        container.get_rate_limiter: lambda: rate_limiter,
        container.get_identity_client: lambda: identity_client,
        container.get_storage_client: lambda: storage_client,
        container.get_notification_dispatcher: lambda: dispatcher,
        container.get_session_factory: lambda: session_factory,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def make_token(email: str, *, expires_in: timedelta = timedelta(hours=1), **claims: Any) -> str:
    """Mint a provider-style access token for ``email``."""
    payload = {
        "sub": claims.pop("sub", "provider-user"),
        "email": email,
        "aud": settings.jwt_audience,
        "exp": utcnow() + expires_in,
        **claims,
    }
    return jwt.encode(payload, settings.identity_jwt_secret, algorithm=settings.jwt_algorithm)


def auth_headers_for(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user.email)}"}


def create_user(
    db_session: Session,
    *,
    neighborhood: Neighborhood | None = None,
    role: UserRole = UserRole.USER,
    full_name: str | None = None,
) -> User:
    index = next(_USER_COUNTER)
    user = User(
        email=f"user{index}@example.com",
        full_name=full_name or f"Vecin {index}",
        role=role.value,
        neighborhood_id=neighborhood.id if neighborhood else None,
        email_verified_at=utcnow(),
    )
    db_session.add(user)
    db_session.flush()
    db_session.refresh(user)
    return user


def create_post(
    db_session: Session,
    author: User,
    *,
    category: PostCategory = PostCategory.QUESTION,
    title: str | None = "Întrebare despre cartier",
    body: str = "Știe cineva când se redeschide piața?",
    price_cents: int | None = None,
    created_at=None,
    **fields: Any,
) -> Post:
    post = Post(
        author_id=author.id,
        neighborhood_id=author.neighborhood_id,
        category=category.value,
        title=title,
        body=body,
        price_cents=price_cents,
        created_at=created_at or utcnow(),
        **fields,
    )
    db_session.add(post)
    db_session.flush()
    db_session.refresh(post)
    return post


@pytest.fixture()
def neighborhood(db_session: Session) -> Neighborhood:
    """Create the default test neighborhood."""
    neighborhood = Neighborhood(name="Fabric", slug="fabric", city="Timișoara", member_count=0)
    db_session.add(neighborhood)
    db_session.flush()
    db_session.refresh(neighborhood)
    return neighborhood


@pytest.fixture()
def other_neighborhood(db_session: Session) -> Neighborhood:
    neighborhood = Neighborhood(name="Iosefin", slug="iosefin", city="Timișoara", member_count=0)
    db_session.add(neighborhood)
    db_session.flush()
    db_session.refresh(neighborhood)
    return neighborhood


@pytest.fixture()
def test_user(db_session: Session, neighborhood: Neighborhood) -> User:
    """Create and return a persisted resident of the default neighborhood."""
    return create_user(db_session, neighborhood=neighborhood, full_name="Ana Popescu")


@pytest.fixture()
def other_user(db_session: Session, neighborhood: Neighborhood) -> User:
    """Create and return a second resident."""
    return create_user(db_session, neighborhood=neighborhood, full_name="Mihai Ionescu")


@pytest.fixture()
def moderator(db_session: Session, neighborhood: Neighborhood) -> User:
    return create_user(
        db_session,
        neighborhood=neighborhood,
        role=UserRole.MODERATOR,
        full_name="Moderator Cartier",
    )


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return auth_headers_for(test_user)


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return auth_headers_for(other_user)


@pytest.fixture()
def moderator_token(moderator: User) -> dict[str, str]:
    return auth_headers_for(moderator)


@pytest.fixture()
def test_post(db_session: Session, test_user: User) -> Post:
    """Create a baseline question post authored by ``test_user``."""
    return create_post(db_session, test_user)


@pytest.fixture()
def sell_post(db_session: Session, test_user: User) -> Post:
    """Create a marketplace listing authored by ``test_user``."""
    return create_post(
        db_session,
        test_user,
        category=PostCategory.SELL,
        title="Bicicletă de oraș",
        body="Vând bicicletă de oraș, stare foarte bună.",
        price_cents=15000,
    )


@pytest.fixture()
def user_factory(db_session: Session, neighborhood: Neighborhood):
    """Return a callable creating extra residents (default neighborhood unless given)."""

    def _create(**kwargs: Any) -> User:
        kwargs.setdefault("neighborhood", neighborhood)
        return create_user(db_session, **kwargs)

    return _create


@pytest.fixture()
def post_factory(db_session: Session):
    """Return a callable creating posts for a given author."""

    def _create(author: User, **kwargs: Any) -> Post:
        return create_post(db_session, author, **kwargs)

    return _create


@pytest.fixture()
def auth_headers():
    """Return a callable building bearer headers for any user."""
    return auth_headers_for


@pytest.fixture()
def make_session_token():
    """Return a callable minting provider-style tokens with custom claims."""
    return make_token

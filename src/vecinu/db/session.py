"""Engine, declarative base and request-scoped sessions for Vecinu.

Requests get a session through ``get_db``; background work (view counts,
notifications) opens its own from ``SessionLocal`` via the service container.
"""

from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from vecinu.core.settings import settings


class Base(DeclarativeBase):
    """Base for users, neighborhoods, posts, comments and moderation records."""


# Registers every table on Base.metadata for create_all and alembic autogenerate.
import vecinu.models  # noqa: E402,F401

DATABASE_URL = settings.effective_database_url

# SQLite is used for local runs; its connections cross the threadpool.
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.sql_debug,
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield one session per request; services commit, this only closes."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create the schema directly, for a fresh local database without alembic."""
    Base.metadata.create_all(bind=engine)

"""CRUD-style helpers for managing users and their neighborhood."""
from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from vecinu.core.errors import ConflictError, NotFoundError
from vecinu.db.time import utcnow
from vecinu.models import Comment, CommentStatus, Neighborhood, Post, PostStatus, User
from vecinu.schemas.user import ProfileUpdate, SettingsUpdate

__all__ = [
    "get_user",
    "get_user_by_email",
    "create_user",
    "touch_last_active",
    "update_profile",
    "update_settings",
    "select_neighborhood",
    "list_neighborhoods",
    "get_neighborhood_by_slug",
    "count_public_activity",
]


def get_user(db: Session, user_id: uuid.UUID) -> User:
    """Return a single user by primary key or raise ``NotFoundError``."""
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("Utilizatorul")
    return user


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email.lower()))


def create_user(db: Session, *, email: str, full_name: str) -> User:
    """Persist the local profile for a freshly registered account."""
    if get_user_by_email(db, email) is not None:
        raise ConflictError("Această adresă de email este deja folosită")
    db_user = User(email=email.lower(), full_name=full_name)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def touch_last_active(db: Session, user: User, *, email_confirmed: bool = False) -> None:
    user.last_active_at = utcnow()
    if email_confirmed and user.email_verified_at is None:
        user.email_verified_at = utcnow()
    db.commit()


def update_profile(db: Session, user: User, update_data: ProfileUpdate) -> User:
    """Apply partial updates to an existing user."""
    for key, value in update_data.model_dump(exclude_unset=True).items():
        if key == "full_name" and not value:
            continue
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


def update_settings(db: Session, user: User, update_data: SettingsUpdate) -> User:
    changes = update_data.model_dump(exclude_unset=True)
    neighborhood_id = changes.pop("neighborhood_id", None)
    for key, value in changes.items():
        setattr(user, key, value)
    if neighborhood_id is not None:
        # Commits the profile changes together with the membership move.
        return select_neighborhood(db, user, neighborhood_id)
    db.commit()
    db.refresh(user)
    return user


def _adjust_member_count(db: Session, neighborhood_id: uuid.UUID, delta: int) -> None:
    stmt = update(Neighborhood).where(Neighborhood.id == neighborhood_id)
    if delta < 0:
        stmt = stmt.where(Neighborhood.member_count > 0)
    db.execute(
        stmt.values(member_count=Neighborhood.member_count + delta).execution_options(
            synchronize_session=False
        )
    )


def select_neighborhood(db: Session, user: User, neighborhood_id: uuid.UUID) -> User:
    """Move the user into an active neighborhood, updating both member counts atomically."""
    neighborhood = db.scalar(
        select(Neighborhood).where(
            Neighborhood.id == neighborhood_id,
            Neighborhood.is_active.is_(True),
        )
    )
    if neighborhood is None:
        raise NotFoundError("Cartierul")

    previous = user.neighborhood_id
    if previous != neighborhood.id:
        if previous is not None:
            _adjust_member_count(db, previous, -1)
        _adjust_member_count(db, neighborhood.id, 1)
        user.neighborhood_id = neighborhood.id
    db.commit()
    db.refresh(user)
    return user


def list_neighborhoods(db: Session, city: str | None = None) -> Sequence[Neighborhood]:
    stmt = select(Neighborhood).where(Neighborhood.is_active.is_(True))
    if city:
        stmt = stmt.where(Neighborhood.city == city)
    return list(db.scalars(stmt.order_by(Neighborhood.name.asc())))


def get_neighborhood_by_slug(db: Session, slug: str) -> Neighborhood:
    neighborhood = db.scalar(select(Neighborhood).where(Neighborhood.slug == slug))
    if neighborhood is None:
        raise NotFoundError("Cartierul")
    return neighborhood


def count_public_activity(db: Session, user_id: uuid.UUID) -> tuple[int, int]:
    """Return ``(post_count, comment_count)`` over the user's visible content."""
    post_count = db.scalar(
        select(func.count(Post.id)).where(
            Post.author_id == user_id,
            Post.status.in_([PostStatus.ACTIVE.value, PostStatus.SOLD.value]),
        )
    )
    comment_count = db.scalar(
        select(func.count(Comment.id)).where(
            Comment.author_id == user_id,
            Comment.status == CommentStatus.ACTIVE.value,
        )
    )
    return int(post_count or 0), int(comment_count or 0)

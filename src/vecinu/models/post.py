# src/vecinu/models/post.py
"""SQLAlchemy models for posts and related attributes."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vecinu.db.session import Base
from vecinu.db.time import utcnow
from vecinu.models.neighborhood import Neighborhood
from vecinu.models.user import User


class PostCategory(StrEnum):
    ALERT = "ALERT"
    SELL = "SELL"
    BUY = "BUY"
    SERVICE = "SERVICE"
    QUESTION = "QUESTION"
    EVENT = "EVENT"
    LOST_FOUND = "LOST_FOUND"


MARKETPLACE_CATEGORIES = frozenset({PostCategory.SELL, PostCategory.BUY, PostCategory.SERVICE})


class PostStatus(StrEnum):
    ACTIVE = "active"
    HIDDEN = "hidden"
    SOLD = "sold"
    DELETED = "deleted"


class Post(Base):
    """Primary content entity produced by residents.

    Posts belong to a single neighborhood and are never hard-deleted; the
    ``deleted`` status is terminal and excludes the row from every read.
    """

    __tablename__ = "posts"
    __table_args__ = (
        Index(
            "ix_posts_feed",
            "neighborhood_id",
            "status",
            "is_pinned",
            "created_at",
            "id",
        ),
        Index("ix_posts_author_created", "author_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    author_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    neighborhood_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("neighborhoods.id"),
        nullable=False,
    )
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=PostStatus.ACTIVE.value)

    # Marketplace pricing; priceCents is null when no price was given.
    price_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="RON")
    is_free: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Denormalized counters maintained with SQL-level increments.
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    author: Mapped[User] = relationship("User")
    neighborhood: Mapped[Neighborhood] = relationship("Neighborhood")
    images: Mapped[list[PostImage]] = relationship(
        "PostImage",
        back_populates="post",
        order_by="PostImage.position",
        cascade="all, delete-orphan",
    )

    @property
    def is_marketplace(self) -> bool:
        return self.category in MARKETPLACE_CATEGORIES


class PostImage(Base):
    """Image stored in object storage and attached to a post."""

    __tablename__ = "post_images"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    width: Mapped[int | None] = mapped_column(Integer, nullable=True)
    height: Mapped[int | None] = mapped_column(Integer, nullable=True)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 0-based display order within the post.
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    post: Mapped[Post] = relationship("Post", back_populates="images")


class SavedPost(Base):
    """Join table of posts bookmarked by users."""

    __tablename__ = "saved_posts"
    __table_args__ = (UniqueConstraint("user_id", "post_id", name="uq_saved_posts_user_post"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    post: Mapped[Post] = relationship("Post")

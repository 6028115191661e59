# src/vecinu/models/user.py
"""SQLAlchemy models for registered residents."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vecinu.db.session import Base
from vecinu.db.time import utcnow

if TYPE_CHECKING:
    from vecinu.models.neighborhood import Neighborhood


class UserRole(StrEnum):
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"
    BUSINESS = "business"


STAFF_ROLES = frozenset({UserRole.MODERATOR, UserRole.ADMIN})


def default_notification_preferences() -> dict[str, Any]:
    """Return the preference set assigned to new accounts."""
    return {
        "email_comments": True,
        "email_alerts": True,
        "email_digest": "weekly",
        "push_enabled": False,
    }


class User(Base):
    """Local profile for an account owned by the identity provider.

    Credentials live with the identity provider; the row is matched to a
    session by its verified email address.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=UserRole.USER.value)

    neighborhood_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("neighborhoods.id"),
        nullable=True,
    )

    # Ban state; all three fields are cleared together on unban.
    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    banned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    banned_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    email_verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    notification_preferences: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=default_notification_preferences,
    )
    language: Mapped[str] = mapped_column(String(8), nullable=False, default="ro")
    last_active_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
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

    neighborhood: Mapped[Neighborhood | None] = relationship("Neighborhood")

    @property
    def is_staff(self) -> bool:
        """Return True for moderators and admins."""
        return self.role in STAFF_ROLES

    @property
    def public_name(self) -> str:
        return self.display_name or self.full_name

# src/vecinu/models/moderation.py
"""Models tracking user reports and the moderator audit trail."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vecinu.db.session import Base
from vecinu.db.time import utcnow
from vecinu.models.user import User


class ReportTargetType(StrEnum):
    POST = "post"
    COMMENT = "comment"
    USER = "user"


class ReportStatus(StrEnum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"


# Reports in these states block a second report for the same reporter/target.
ACTIVE_REPORT_STATUSES = (ReportStatus.PENDING.value, ReportStatus.REVIEWED.value)
_ACTIVE_REPORT_PREDICATE = text("status IN ('pending', 'reviewed')")


class AuditAction(StrEnum):
    HIDE_POST = "hide_post"
    UNHIDE_POST = "unhide_post"
    DELETE_POST = "delete_post"
    HIDE_COMMENT = "hide_comment"
    UNHIDE_COMMENT = "unhide_comment"
    DELETE_COMMENT = "delete_comment"
    BAN_USER = "ban_user"
    UNBAN_USER = "unban_user"
    DISMISS_REPORT = "dismiss_report"
    RESOLVE_REPORT = "resolve_report"


class AuditTargetType(StrEnum):
    POST = "post"
    COMMENT = "comment"
    USER = "user"
    REPORT = "report"


class Report(Base):
    """A user complaint about a post, comment or another user."""

    __tablename__ = "reports"
    __table_args__ = (
        Index(
            "uq_reports_active_reporter_target",
            "reporter_id",
            "target_type",
            "target_id",
            unique=True,
            postgresql_where=_ACTIVE_REPORT_PREDICATE,
            sqlite_where=_ACTIVE_REPORT_PREDICATE,
        ),
        Index("ix_reports_status_created", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    reporter_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    target_type: Mapped[str] = mapped_column(String(16), nullable=False)
    # Polymorphic reference; resolved against target_type at read time.
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=ReportStatus.PENDING.value,
    )
    action_taken: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=True,
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    reporter: Mapped[User] = relationship("User", foreign_keys=[reporter_id])
    reviewer: Mapped[User | None] = relationship("User", foreign_keys=[reviewed_by])


class AuditLog(Base):
    """Append-only record of a single moderator action."""

    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_logs_created", "created_at", "id"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    admin_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    target_type: Mapped[str] = mapped_column(String(16), nullable=False)
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes, hence the attribute name.
    action_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    admin: Mapped[User] = relationship("User")

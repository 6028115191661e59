# src/vecinu/services/moderation.py
"""Moderation services for Vecinu.

Every moderator action mutates its target and appends exactly one
``AuditLog`` row, committed together.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from vecinu.core.errors import ConflictError, NotFoundError, ValidationError
from vecinu.db.time import utcnow
from vecinu.models import (
    AuditAction,
    AuditLog,
    AuditTargetType,
    Comment,
    CommentStatus,
    Post,
    PostStatus,
    Report,
    ReportStatus,
    ReportTargetType,
    User,
    UserRole,
)
from vecinu.repositories.post_repo import PostRepository, escape_like
from vecinu.schemas.moderation import BAN_REASON_MIN_LENGTH
from vecinu.services.comment_service import adjust_comment_count
from vecinu.services.lifecycle import Actor, transition_comment, transition_post
from vecinu.utils.cursor import KeysetCursor, keyset_condition

ADMIN_LIST_LIMIT = 50


class ModerationService:
    """Service handling moderator actions and their audit trail."""

    @staticmethod
    def write_audit_log(
        db: Session,
        *,
        admin: User,
        action: AuditAction,
        target_type: AuditTargetType,
        target_id: uuid.UUID,
        reason: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Stage an audit row in the caller's transaction (no commit)."""
        entry = AuditLog(
            admin_id=admin.id,
            action=action.value,
            target_type=target_type.value,
            target_id=target_id,
            reason=reason,
            action_metadata=metadata,
        )
        db.add(entry)
        return entry

    @staticmethod
    def _get_post(db: Session, post_id: uuid.UUID) -> Post:
        post = db.scalar(
            select(Post).where(Post.id == post_id, Post.status != PostStatus.DELETED.value)
        )
        if post is None:
            raise NotFoundError("Postarea")
        return post

    @staticmethod
    def _get_comment(db: Session, comment_id: uuid.UUID) -> Comment:
        comment = db.scalar(
            select(Comment).where(
                Comment.id == comment_id,
                Comment.status != CommentStatus.DELETED.value,
            )
        )
        if comment is None:
            raise NotFoundError("Comentariul")
        return comment

    @classmethod
    def hide_post(cls, db: Session, admin: User, post_id: uuid.UUID, reason: str | None = None) -> Post:
        post = cls._get_post(db, post_id)
        transition_post(post, PostStatus.HIDDEN, Actor.MODERATOR)
        cls.write_audit_log(
            db,
            admin=admin,
            action=AuditAction.HIDE_POST,
            target_type=AuditTargetType.POST,
            target_id=post.id,
            reason=reason,
        )
        db.commit()
        return post

    @classmethod
    def unhide_post(cls, db: Session, admin: User, post_id: uuid.UUID) -> Post:
        post = cls._get_post(db, post_id)
        transition_post(post, PostStatus.ACTIVE, Actor.MODERATOR)
        cls.write_audit_log(
            db,
            admin=admin,
            action=AuditAction.UNHIDE_POST,
            target_type=AuditTargetType.POST,
            target_id=post.id,
        )
        db.commit()
        return post

    @classmethod
    def delete_post(cls, db: Session, admin: User, post_id: uuid.UUID, reason: str | None = None) -> Post:
        post = cls._get_post(db, post_id)
        transition_post(post, PostStatus.DELETED, Actor.MODERATOR)
        cls.write_audit_log(
            db,
            admin=admin,
            action=AuditAction.DELETE_POST,
            target_type=AuditTargetType.POST,
            target_id=post.id,
            reason=reason,
        )
        db.commit()
        return post

    @classmethod
    def hide_comment(
        cls,
        db: Session,
        admin: User,
        comment_id: uuid.UUID,
        reason: str | None = None,
    ) -> Comment:
        comment = cls._get_comment(db, comment_id)
        transition_comment(comment, CommentStatus.HIDDEN, Actor.MODERATOR)
        cls.write_audit_log(
            db,
            admin=admin,
            action=AuditAction.HIDE_COMMENT,
            target_type=AuditTargetType.COMMENT,
            target_id=comment.id,
            reason=reason,
        )
        db.commit()
        return comment

    @classmethod
    def unhide_comment(cls, db: Session, admin: User, comment_id: uuid.UUID) -> Comment:
        comment = cls._get_comment(db, comment_id)
        transition_comment(comment, CommentStatus.ACTIVE, Actor.MODERATOR)
        cls.write_audit_log(
            db,
            admin=admin,
            action=AuditAction.UNHIDE_COMMENT,
            target_type=AuditTargetType.COMMENT,
            target_id=comment.id,
        )
        db.commit()
        return comment

    @classmethod
    def delete_comment(
        cls,
        db: Session,
        admin: User,
        comment_id: uuid.UUID,
        reason: str | None = None,
    ) -> Comment:
        """Soft-delete a comment, decrement its post counter and audit, atomically."""
        comment = cls._get_comment(db, comment_id)
        transition_comment(comment, CommentStatus.DELETED, Actor.MODERATOR)
        adjust_comment_count(db, comment.post_id, -1)
        cls.write_audit_log(
            db,
            admin=admin,
            action=AuditAction.DELETE_COMMENT,
            target_type=AuditTargetType.COMMENT,
            target_id=comment.id,
            reason=reason,
        )
        db.commit()
        return comment

    @classmethod
    def ban_user(cls, db: Session, admin: User, user_id: uuid.UUID, reason: str | None) -> User:
        """Ban a user.

        Raises:
            ValidationError: The reason is missing or too short, or the
                moderator targets themself.
            NotFoundError: No such user.
        """
        cleaned = (reason or "").strip()
        if len(cleaned) < BAN_REASON_MIN_LENGTH:
            raise ValidationError(
                "Motivul suspendării este obligatoriu",
                details={"reason": ["Motivul trebuie să aibă cel puțin 5 caractere"]},
            )
        if user_id == admin.id:
            raise ValidationError("Nu te poți suspenda singur")

        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("Utilizatorul")

        user.is_banned = True
        user.banned_at = utcnow()
        user.banned_reason = cleaned
        cls.write_audit_log(
            db,
            admin=admin,
            action=AuditAction.BAN_USER,
            target_type=AuditTargetType.USER,
            target_id=user.id,
            reason=cleaned,
        )
        db.commit()
        return user

    @classmethod
    def unban_user(cls, db: Session, admin: User, user_id: uuid.UUID) -> User:
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("Utilizatorul")
        user.is_banned = False
        user.banned_at = None
        user.banned_reason = None
        cls.write_audit_log(
            db,
            admin=admin,
            action=AuditAction.UNBAN_USER,
            target_type=AuditTargetType.USER,
            target_id=user.id,
        )
        db.commit()
        return user

    @staticmethod
    def get_report(db: Session, report_id: uuid.UUID) -> Report:
        report = db.get(Report, report_id)
        if report is None:
            raise NotFoundError("Raportul")
        return report

    @classmethod
    def _get_pending_report(cls, db: Session, report_id: uuid.UUID) -> Report:
        report = cls.get_report(db, report_id)
        if report.status != ReportStatus.PENDING:
            raise ConflictError("Raportul a fost deja procesat")
        return report

    @classmethod
    def resolve_report(cls, db: Session, admin: User, report_id: uuid.UUID, action_taken: str) -> Report:
        report = cls._get_pending_report(db, report_id)
        report.status = ReportStatus.REVIEWED.value
        report.action_taken = action_taken
        report.reviewed_by = admin.id
        report.reviewed_at = utcnow()
        cls.write_audit_log(
            db,
            admin=admin,
            action=AuditAction.RESOLVE_REPORT,
            target_type=AuditTargetType.REPORT,
            target_id=report.id,
            metadata={"actionTaken": action_taken},
        )
        db.commit()
        return report

    @classmethod
    def dismiss_report(
        cls,
        db: Session,
        admin: User,
        report_id: uuid.UUID,
        reason: str | None = None,
    ) -> Report:
        report = cls._get_pending_report(db, report_id)
        report.status = ReportStatus.DISMISSED.value
        report.action_taken = "dismissed"
        report.reviewed_by = admin.id
        report.reviewed_at = utcnow()
        cls.write_audit_log(
            db,
            admin=admin,
            action=AuditAction.DISMISS_REPORT,
            target_type=AuditTargetType.REPORT,
            target_id=report.id,
            reason=reason,
        )
        db.commit()
        return report

    @staticmethod
    def get_stats(db: Session) -> dict[str, int]:
        def count(stmt: Any) -> int:
            return int(db.scalar(stmt) or 0)

        return {
            "pending_reports": count(
                select(func.count(Report.id)).where(Report.status == ReportStatus.PENDING.value)
            ),
            "total_reports": count(select(func.count(Report.id))),
            "banned_users": count(select(func.count(User.id)).where(User.is_banned.is_(True))),
            "hidden_posts": count(
                select(func.count(Post.id)).where(Post.status == PostStatus.HIDDEN.value)
            ),
        }

    @staticmethod
    def list_reports(
        db: Session,
        *,
        status: str | None,
        cursor: KeysetCursor | None,
        limit: int,
    ) -> list[Report]:
        stmt = select(Report)
        if status:
            stmt = stmt.where(Report.status == status)
        if cursor is not None:
            stmt = stmt.where(
                keyset_condition(
                    [(Report.created_at, cursor.created_at), (Report.id, cursor.id)],
                    descending=True,
                )
            )
        stmt = stmt.order_by(Report.created_at.desc(), Report.id.desc()).limit(limit + 1)
        return list(db.scalars(stmt))

    @staticmethod
    def get_report_target(db: Session, report: Report) -> Post | Comment | User | None:
        """Load the entity a report points at, including deleted content."""
        model: type[Post] | type[Comment] | type[User] = {
            ReportTargetType.POST: Post,
            ReportTargetType.COMMENT: Comment,
            ReportTargetType.USER: User,
        }[ReportTargetType(report.target_type)]
        return db.get(model, report.target_id)

    @staticmethod
    def list_posts(db: Session, *, status: str | None, term: str | None) -> list[Post]:
        return PostRepository(db).list_for_admin(status=status, term=term, limit=ADMIN_LIST_LIMIT)

    @staticmethod
    def list_users(db: Session, *, filter_by: str, term: str | None) -> list[User]:
        stmt = select(User)
        if filter_by == "banned":
            stmt = stmt.where(User.is_banned.is_(True))
        elif filter_by == "moderators":
            stmt = stmt.where(User.role.in_([UserRole.MODERATOR.value, UserRole.ADMIN.value]))
        if term:
            pattern = f"%{escape_like(term)}%"
            stmt = stmt.where(
                or_(
                    User.email.ilike(pattern, escape="\\"),
                    User.full_name.ilike(pattern, escape="\\"),
                    User.display_name.ilike(pattern, escape="\\"),
                )
            )
        stmt = stmt.order_by(User.created_at.desc(), User.id.desc()).limit(ADMIN_LIST_LIMIT)
        return list(db.scalars(stmt))

    @staticmethod
    def list_audit_logs(
        db: Session,
        *,
        cursor: KeysetCursor | None,
        limit: int,
    ) -> list[AuditLog]:
        stmt = select(AuditLog)
        if cursor is not None:
            stmt = stmt.where(
                keyset_condition(
                    [(AuditLog.created_at, cursor.created_at), (AuditLog.id, cursor.id)],
                    descending=True,
                )
            )
        stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit + 1)
        return list(db.scalars(stmt))

"""Notification creation, dispatch and inbox queries."""
from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from vecinu.core.errors import NotFoundError
from vecinu.db.time import utcnow
from vecinu.models import Comment, Notification, NotificationType, Post, SavedPost, User
from vecinu.utils.cursor import KeysetCursor, keyset_condition

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractContextManager[Session]]


def create_notification(
    db: Session,
    *,
    user_id: uuid.UUID,
    type_: NotificationType,
    title: str,
    body: str | None = None,
    data: dict[str, Any] | None = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type_.value,
        title=title,
        body=body,
        data=data,
    )
    db.add(notification)
    return notification


def notify_for_comment(db: Session, comment: Comment) -> Notification | None:
    """Stage the notification a new comment triggers, if any.

    A reply notifies the parent comment's author; a top-level comment notifies
    the post author. Nobody is notified about their own activity.
    """
    commenter = db.get(User, comment.author_id)
    post = db.get(Post, comment.post_id)
    if commenter is None or post is None:
        return None

    if comment.parent_id is not None:
        parent = db.get(Comment, comment.parent_id)
        if parent is None or parent.author_id == commenter.id:
            return None
        return create_notification(
            db,
            user_id=parent.author_id,
            type_=NotificationType.COMMENT_REPLY,
            title=f"{commenter.public_name} a răspuns la comentariul tău",
            data={"postId": str(post.id), "commentId": str(comment.id), "replierId": str(commenter.id)},
        )

    if post.author_id == commenter.id:
        return None
    return create_notification(
        db,
        user_id=post.author_id,
        type_=NotificationType.NEW_COMMENT,
        title=f"{commenter.public_name} a comentat la postarea ta",
        body=post.title,
        data={"postId": str(post.id), "commentId": str(comment.id), "commenterId": str(commenter.id)},
    )


def notify_post_sold(db: Session, post: Post) -> list[Notification]:
    """Stage one notification per user (other than the author) who saved ``post``."""
    saver_ids = db.scalars(
        select(SavedPost.user_id).where(
            SavedPost.post_id == post.id,
            SavedPost.user_id != post.author_id,
        )
    )
    label = post.title or "Un anunț salvat"
    return [
        create_notification(
            db,
            user_id=user_id,
            type_=NotificationType.POST_SOLD,
            title=f"{label} a fost marcat ca vândut",
            data={"postId": str(post.id)},
        )
        for user_id in saver_ids
    ]


class NotificationDispatcher:
    """Creates notifications outside the request that triggered them.

    Methods are scheduled as background tasks: each opens its own session
    and logs any failure instead of raising.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        self.session_factory = session_factory

    def comment_created(self, comment_id: uuid.UUID) -> None:
        try:
            with self.session_factory() as db:
                comment = db.get(Comment, comment_id)
                if comment is None:
                    return
                if notify_for_comment(db, comment) is not None:
                    db.commit()
        except Exception:  # noqa: BLE001 - must never fail the comment request
            logger.exception("Failed to create notification for comment %s", comment_id)

    def post_sold(self, post_id: uuid.UUID) -> None:
        try:
            with self.session_factory() as db:
                post = db.get(Post, post_id)
                if post is None:
                    return
                if notify_post_sold(db, post):
                    db.commit()
        except Exception:  # noqa: BLE001 - must never fail the sold toggle
            logger.exception("Failed to create sold notifications for post %s", post_id)


def list_notifications(
    db: Session,
    user: User,
    *,
    unread_only: bool,
    cursor: KeysetCursor | None,
    limit: int,
) -> list[Notification]:
    stmt = select(Notification).where(Notification.user_id == user.id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    if cursor is not None:
        stmt = stmt.where(
            keyset_condition(
                [(Notification.created_at, cursor.created_at), (Notification.id, cursor.id)],
                descending=True,
            )
        )
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit + 1)
    return list(db.scalars(stmt))


def unread_count(db: Session, user: User) -> int:
    stmt = select(func.count(Notification.id)).where(
        Notification.user_id == user.id,
        Notification.is_read.is_(False),
    )
    return int(db.scalar(stmt) or 0)


def mark_read(db: Session, user: User, notification_id: uuid.UUID) -> Notification:
    """Mark one of the user's notifications read; already-read ones are left as is."""
    notification = db.scalar(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user.id,
        )
    )
    if notification is None:
        raise NotFoundError("Notificarea")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.commit()
        db.refresh(notification)
    return notification


def mark_all_read(db: Session, user: User) -> int:
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.is_read.is_(False))
        .values(is_read=True, read_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return int(result.rowcount or 0)

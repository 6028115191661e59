"""Service-level helpers for comments and their replies."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from vecinu.core.errors import AuthorizationError, NotFoundError, ValidationError
from vecinu.models import Comment, CommentStatus, Post, PostStatus, User
from vecinu.schemas.comment import CommentCreate
from vecinu.services.lifecycle import Actor, transition_comment
from vecinu.utils.cursor import KeysetCursor, keyset_condition

__all__ = [
    "REPLY_PREVIEW_SIZE",
    "CommentThread",
    "adjust_comment_count",
    "create_comment",
    "get_comment",
    "update_comment",
    "delete_comment",
    "list_threads",
    "list_replies",
]

COMMENT_RESOURCE = "Comentariul"
COMMENTABLE_POST_STATUSES = (PostStatus.ACTIVE.value, PostStatus.SOLD.value)
REPLY_PREVIEW_SIZE = 3


@dataclass
class CommentThread:
    comment: Comment
    replies: list[Comment] = field(default_factory=list)
    reply_count: int = 0


def adjust_comment_count(db: Session, post_id: uuid.UUID, delta: int) -> None:
    """Apply ``delta`` to the post's counter as a single SQL update."""
    db.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(comment_count=Post.comment_count + delta)
        .execution_options(synchronize_session=False)
    )


def get_comment(db: Session, comment_id: uuid.UUID) -> Comment:
    """Return a non-deleted comment or raise ``NotFoundError``."""
    comment = db.scalar(
        select(Comment).where(Comment.id == comment_id, Comment.status != CommentStatus.DELETED.value)
    )
    if comment is None:
        raise NotFoundError(COMMENT_RESOURCE)
    return comment


def create_comment(db: Session, author: User, data: CommentCreate) -> Comment:
    """Insert a comment and bump the post's ``comment_count`` in one transaction.

    Raises:
        AuthorizationError: The author is banned.
        NotFoundError: The post is missing, hidden or deleted.
        ValidationError: ``parent_id`` names a reply, or a comment on another post.
    """
    if author.is_banned:
        raise AuthorizationError("Contul tău a fost suspendat")

    post = db.scalar(
        select(Post).where(Post.id == data.post_id, Post.status.in_(COMMENTABLE_POST_STATUSES))
    )
    if post is None:
        raise NotFoundError("Postarea")

    if data.parent_id is not None:
        parent = db.scalar(
            select(Comment).where(
                Comment.id == data.parent_id,
                Comment.status == CommentStatus.ACTIVE.value,
            )
        )
        if parent is None or parent.post_id != post.id:
            raise NotFoundError(COMMENT_RESOURCE)
        if parent.parent_id is not None:
            raise ValidationError(
                "Nu poți răspunde la un răspuns",
                details={"parentId": ["Doar comentariile principale pot primi răspunsuri"]},
            )

    comment = Comment(
        post_id=post.id,
        author_id=author.id,
        parent_id=data.parent_id,
        body=data.body,
    )
    db.add(comment)
    adjust_comment_count(db, post.id, 1)
    db.commit()
    db.refresh(comment)
    return comment


def update_comment(db: Session, comment_id: uuid.UUID, user: User, body: str) -> Comment:
    comment = get_comment(db, comment_id)
    if comment.author_id != user.id:
        raise AuthorizationError("Doar autorul poate edita comentariul")
    if comment.status != CommentStatus.ACTIVE:
        raise NotFoundError(COMMENT_RESOURCE)
    comment.body = body
    db.commit()
    db.refresh(comment)
    return comment


def delete_comment(db: Session, comment_id: uuid.UUID, user: User) -> Comment:
    """Soft-delete a comment as its author and decrement the post counter.

    Staff deleting another user's comment go through ``ModerationService``.
    """
    comment = get_comment(db, comment_id)
    if comment.author_id != user.id:
        raise AuthorizationError("Doar autorul poate șterge comentariul")
    transition_comment(comment, CommentStatus.DELETED, Actor.AUTHOR)
    adjust_comment_count(db, comment.post_id, -1)
    db.commit()
    return comment


def list_threads(
    db: Session,
    post_id: uuid.UUID,
    *,
    cursor: KeysetCursor | None,
    limit: int,
) -> list[CommentThread]:
    """Return up to ``limit + 1`` active top-level comments, oldest first.

    Each thread carries its first replies and the total active reply count.
    """
    stmt = (
        select(Comment)
        .where(
            Comment.post_id == post_id,
            Comment.parent_id.is_(None),
            Comment.status == CommentStatus.ACTIVE.value,
        )
        .options(selectinload(Comment.author))
    )
    if cursor is not None:
        stmt = stmt.where(
            keyset_condition(
                [(Comment.created_at, cursor.created_at), (Comment.id, cursor.id)],
                descending=False,
            )
        )
    stmt = stmt.order_by(Comment.created_at.asc(), Comment.id.asc()).limit(limit + 1)
    top_level = list(db.scalars(stmt))
    if not top_level:
        return []

    parent_ids = [comment.id for comment in top_level]
    counts = dict(
        db.execute(
            select(Comment.parent_id, func.count(Comment.id))
            .where(Comment.parent_id.in_(parent_ids), Comment.status == CommentStatus.ACTIVE.value)
            .group_by(Comment.parent_id)
        ).all()
    )

    threads = []
    for comment in top_level:
        replies = list(
            db.scalars(
                select(Comment)
                .where(
                    Comment.parent_id == comment.id,
                    Comment.status == CommentStatus.ACTIVE.value,
                )
                .options(selectinload(Comment.author))
                .order_by(Comment.created_at.asc(), Comment.id.asc())
                .limit(REPLY_PREVIEW_SIZE)
            )
        )
        threads.append(
            CommentThread(comment=comment, replies=replies, reply_count=counts.get(comment.id, 0))
        )
    return threads


def list_replies(db: Session, comment_id: uuid.UUID) -> list[Comment]:
    """Return every active reply to a comment, oldest first."""
    get_comment(db, comment_id)
    stmt = (
        select(Comment)
        .where(Comment.parent_id == comment_id, Comment.status == CommentStatus.ACTIVE.value)
        .options(selectinload(Comment.author))
        .order_by(Comment.created_at.asc(), Comment.id.asc())
    )
    return list(db.scalars(stmt))

"""Data access helpers for working with posts."""
from __future__ import annotations

import uuid

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql import Select

from vecinu.models import Post, PostStatus, SavedPost
from vecinu.utils.cursor import KeysetCursor, keyset_condition

__all__ = ["PostRepository", "escape_like"]

PUBLIC_STATUSES = (PostStatus.ACTIVE.value, PostStatus.SOLD.value)


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostRepository:
    """Thin wrapper around database access for post entities."""

    def __init__(self, session: Session) -> None:
        self.session = session

    @staticmethod
    def _with_relations(stmt: Select[tuple[Post]]) -> Select[tuple[Post]]:
        return stmt.options(selectinload(Post.author), selectinload(Post.images))

    def get_by_id(self, post_id: uuid.UUID) -> Post | None:
        """Return a post by identifier unless it has been deleted."""
        stmt = select(Post).where(Post.id == post_id, Post.status != PostStatus.DELETED.value)
        return self.session.scalars(self._with_relations(stmt)).first()

    def list_feed(
        self,
        neighborhood_id: uuid.UUID,
        *,
        category: str | None,
        cursor: KeysetCursor | None,
        limit: int,
    ) -> list[Post]:
        """Return active posts, pinned first, newest first; fetches ``limit + 1``."""
        stmt = select(Post).where(
            Post.neighborhood_id == neighborhood_id,
            Post.status == PostStatus.ACTIVE.value,
        )
        if category:
            stmt = stmt.where(Post.category == category)
        if cursor is not None:
            stmt = stmt.where(
                keyset_condition(
                    [
                        (Post.is_pinned, bool(cursor.pinned)),
                        (Post.created_at, cursor.created_at),
                        (Post.id, cursor.id),
                    ],
                    descending=True,
                )
            )
        stmt = stmt.order_by(Post.is_pinned.desc(), Post.created_at.desc(), Post.id.desc())
        return list(self.session.scalars(self._with_relations(stmt).limit(limit + 1)))

    def search(
        self,
        neighborhood_id: uuid.UUID,
        term: str,
        *,
        category: str | None,
        cursor: KeysetCursor | None,
        limit: int,
    ) -> list[Post]:
        """Case-insensitive substring match over title and body."""
        pattern = f"%{escape_like(term)}%"
        stmt = select(Post).where(
            Post.neighborhood_id == neighborhood_id,
            Post.status == PostStatus.ACTIVE.value,
            or_(Post.title.ilike(pattern, escape="\\"), Post.body.ilike(pattern, escape="\\")),
        )
        if category:
            stmt = stmt.where(Post.category == category)
        return self._newest_first(stmt, cursor, limit)

    def list_by_author(
        self,
        author_id: uuid.UUID,
        *,
        cursor: KeysetCursor | None,
        limit: int,
    ) -> list[Post]:
        stmt = select(Post).where(Post.author_id == author_id, Post.status.in_(PUBLIC_STATUSES))
        return self._newest_first(stmt, cursor, limit)

    def list_saved(
        self,
        user_id: uuid.UUID,
        *,
        cursor: KeysetCursor | None,
        limit: int,
    ) -> list[SavedPost]:
        """Return saved-post rows (newest save first) whose post is still public."""
        stmt = (
            select(SavedPost)
            .join(Post, SavedPost.post_id == Post.id)
            .where(SavedPost.user_id == user_id, Post.status.in_(PUBLIC_STATUSES))
            .options(
                selectinload(SavedPost.post).selectinload(Post.author),
                selectinload(SavedPost.post).selectinload(Post.images),
            )
        )
        if cursor is not None:
            stmt = stmt.where(
                keyset_condition(
                    [(SavedPost.created_at, cursor.created_at), (SavedPost.id, cursor.id)],
                    descending=True,
                )
            )
        stmt = stmt.order_by(SavedPost.created_at.desc(), SavedPost.id.desc()).limit(limit + 1)
        return list(self.session.scalars(stmt))

    def list_for_admin(self, *, status: str | None, term: str | None, limit: int) -> list[Post]:
        stmt = select(Post)
        if status:
            stmt = stmt.where(Post.status == status)
        if term:
            pattern = f"%{escape_like(term)}%"
            stmt = stmt.where(
                or_(Post.title.ilike(pattern, escape="\\"), Post.body.ilike(pattern, escape="\\"))
            )
        stmt = stmt.order_by(Post.created_at.desc(), Post.id.desc()).limit(limit)
        return list(self.session.scalars(self._with_relations(stmt)))

    def _newest_first(
        self,
        stmt: Select[tuple[Post]],
        cursor: KeysetCursor | None,
        limit: int,
    ) -> list[Post]:
        if cursor is not None:
            stmt = stmt.where(
                keyset_condition(
                    [(Post.created_at, cursor.created_at), (Post.id, cursor.id)],
                    descending=True,
                )
            )
        stmt = stmt.order_by(Post.created_at.desc(), Post.id.desc()).limit(limit + 1)
        return list(self.session.scalars(self._with_relations(stmt)))

"""Comment-related Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field, field_validator

from vecinu.models import Comment
from vecinu.schemas.common import CamelModel
from vecinu.schemas.post import PostAuthor
from vecinu.services.sanitize import sanitize_text


def _clean_comment_body(value: str) -> str:
    cleaned = sanitize_text(value)
    if not cleaned:
        raise ValueError("Comentariul nu poate fi gol")
    return cleaned


class CommentCreate(CamelModel):
    post_id: uuid.UUID
    parent_id: uuid.UUID | None = None
    body: str = Field(..., min_length=1, max_length=2000)

    @field_validator("body")
    @classmethod
    def _sanitize_body(cls, value: str) -> str:
        return _clean_comment_body(value)


class CommentUpdate(CamelModel):
    body: str = Field(..., min_length=1, max_length=2000)

    @field_validator("body")
    @classmethod
    def _sanitize_body(cls, value: str) -> str:
        return _clean_comment_body(value)


class CommentResponse(CamelModel):
    id: uuid.UUID
    post_id: uuid.UUID
    parent_id: uuid.UUID | None
    body: str
    status: str
    created_at: datetime
    updated_at: datetime
    author: PostAuthor

    @classmethod
    def from_comment(cls, comment: Comment) -> CommentResponse:
        return cls(
            id=comment.id,
            post_id=comment.post_id,
            parent_id=comment.parent_id,
            body=comment.body,
            status=comment.status,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            author=PostAuthor(
                id=comment.author.id,
                name=comment.author.public_name,
                avatar_url=comment.author.avatar_url,
            ),
        )


class CommentThreadResponse(CommentResponse):
    """Top-level comment with a preview of its replies."""

    replies: list[CommentResponse] = Field(default_factory=list)
    reply_count: int = 0

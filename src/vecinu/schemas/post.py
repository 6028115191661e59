"""Post-related Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from vecinu.models import Post, PostCategory
from vecinu.schemas.common import CamelModel
from vecinu.services.sanitize import sanitize_optional, sanitize_text

BODY_MIN_LENGTH = 10


def _clean_body(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = sanitize_text(value)
    if len(cleaned) < BODY_MIN_LENGTH:
        raise ValueError("Conținutul trebuie să aibă cel puțin 10 caractere")
    return cleaned


class PostCreate(CamelModel):
    """Schema for creating a new post."""

    title: str | None = Field(None, max_length=200, description="Optional headline")
    body: str = Field(..., min_length=BODY_MIN_LENGTH, max_length=5000)
    category: PostCategory
    price_cents: int | None = Field(None, ge=0, le=100_000_000, description="Price in bani")
    is_free: bool = False

    @field_validator("title")
    @classmethod
    def _sanitize_title(cls, value: str | None) -> str | None:
        return sanitize_optional(value)

    @field_validator("body")
    @classmethod
    def _sanitize_body(cls, value: str) -> str:
        return _clean_body(value)  # type: ignore[return-value]


class PostUpdate(CamelModel):
    """Partial author edit; ``status`` is routed through the lifecycle rules."""

    title: str | None = Field(None, max_length=200)
    body: str | None = Field(None, min_length=BODY_MIN_LENGTH, max_length=5000)
    category: PostCategory | None = None
    price_cents: int | None = Field(None, ge=0, le=100_000_000)
    is_free: bool | None = None
    status: Literal["active", "sold"] | None = None

    @field_validator("title")
    @classmethod
    def _sanitize_title(cls, value: str | None) -> str | None:
        return sanitize_optional(value)

    @field_validator("body")
    @classmethod
    def _sanitize_body(cls, value: str | None) -> str | None:
        return _clean_body(value)

    @field_validator("body", "category", "is_free")
    @classmethod
    def _required_when_sent(cls, value: object) -> object:
        if value is None:
            raise ValueError("Câmpul nu poate fi gol")
        return value


class PostAuthor(CamelModel):
    id: uuid.UUID
    name: str
    avatar_url: str | None = None


class PostImageResponse(CamelModel):
    id: uuid.UUID
    url: str
    thumbnail_url: str | None = None
    width: int | None = None
    height: int | None = None
    position: int = 0


class NeighborhoodRef(CamelModel):
    id: uuid.UUID
    name: str
    slug: str


class PostResponse(CamelModel):
    """Schema for post information returned by feed, search and detail endpoints."""

    id: uuid.UUID
    title: str | None
    body: str
    category: str
    price_cents: int | None
    currency: str
    is_free: bool
    is_pinned: bool
    status: str
    comment_count: int
    view_count: int
    expires_at: datetime | None = None
    created_at: datetime
    author: PostAuthor
    images: list[PostImageResponse] = Field(default_factory=list)
    neighborhood: NeighborhoodRef | None = None

    @classmethod
    def from_post(cls, post: Post, *, with_neighborhood: bool = False) -> PostResponse:
        return cls(
            id=post.id,
            title=post.title,
            body=post.body,
            category=post.category,
            price_cents=post.price_cents,
            currency=post.currency,
            is_free=post.is_free,
            is_pinned=post.is_pinned,
            status=post.status,
            comment_count=post.comment_count,
            view_count=post.view_count,
            expires_at=post.expires_at,
            created_at=post.created_at,
            author=PostAuthor(
                id=post.author.id,
                name=post.author.public_name,
                avatar_url=post.author.avatar_url,
            ),
            images=[PostImageResponse.model_validate(image) for image in post.images],
            neighborhood=(
                NeighborhoodRef.model_validate(post.neighborhood) if with_neighborhood else None
            ),
        )

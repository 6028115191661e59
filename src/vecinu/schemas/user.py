"""User, account and settings Pydantic schemas."""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from vecinu.models import User
from vecinu.schemas.common import CamelModel
from vecinu.services.sanitize import sanitize_optional, sanitize_text


class RegisterRequest(CamelModel):
    """Schema for creating an account with the identity provider."""

    full_name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    confirm_password: str

    @field_validator("full_name")
    @classmethod
    def _sanitize_name(cls, value: str) -> str:
        return sanitize_text(value)

    @field_validator("password")
    @classmethod
    def _password_strength(cls, value: str) -> str:
        if not re.search(r"[A-Z]", value):
            raise ValueError("Parola trebuie să conțină cel puțin o literă mare")
        if not re.search(r"[0-9]", value):
            raise ValueError("Parola trebuie să conțină cel puțin o cifră")
        return value

    @model_validator(mode="after")
    def _passwords_match(self) -> RegisterRequest:
        if self.password != self.confirm_password:
            raise ValueError("Parolele nu coincid")
        return self


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ResendVerificationRequest(CamelModel):
    email: EmailStr


class NotificationPreferences(BaseModel):
    """Kept in snake_case on the wire, matching the JSON column contents."""

    email_comments: bool
    email_alerts: bool
    email_digest: Literal["daily", "weekly", "never"]
    push_enabled: bool


class ProfileUpdate(CamelModel):
    full_name: str | None = Field(None, min_length=2, max_length=100)
    display_name: str | None = Field(None, max_length=50)
    bio: str | None = Field(None, max_length=500)
    avatar_url: str | None = Field(None, max_length=2048)

    @field_validator("full_name", "display_name", "bio")
    @classmethod
    def _sanitize(cls, value: str | None) -> str | None:
        return sanitize_optional(value)


class SettingsUpdate(CamelModel):
    display_name: str | None = Field(None, max_length=50)
    bio: str | None = Field(None, max_length=500)
    notification_preferences: NotificationPreferences | None = None
    language: Literal["ro"] | None = None
    neighborhood_id: uuid.UUID | None = None

    @field_validator("display_name", "bio")
    @classmethod
    def _sanitize(cls, value: str | None) -> str | None:
        return sanitize_optional(value)

    @field_validator("notification_preferences", "language")
    @classmethod
    def _required_when_sent(cls, value: object) -> object:
        if value is None:
            raise ValueError("Câmpul nu poate fi gol")
        return value


class SelectNeighborhoodRequest(CamelModel):
    neighborhood_id: uuid.UUID


class NeighborhoodResponse(CamelModel):
    id: uuid.UUID
    name: str
    slug: str
    city: str
    description: str | None = None
    member_count: int


def _neighborhood_or_none(user: User) -> NeighborhoodResponse | None:
    if user.neighborhood is None:
        return None
    return NeighborhoodResponse.model_validate(user.neighborhood)


class UserResponse(CamelModel):
    """The authenticated user's own account."""

    id: uuid.UUID
    email: str
    full_name: str
    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    role: str
    email_verified: bool
    has_neighborhood: bool
    neighborhood: NeighborhoodResponse | None = None
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> UserResponse:
        return cls(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            display_name=user.display_name,
            bio=user.bio,
            avatar_url=user.avatar_url,
            role=user.role,
            email_verified=user.email_verified_at is not None,
            has_neighborhood=user.neighborhood_id is not None,
            neighborhood=_neighborhood_or_none(user),
            created_at=user.created_at,
        )


class SettingsResponse(CamelModel):
    email: str
    full_name: str
    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    notification_preferences: NotificationPreferences
    language: str
    neighborhood: NeighborhoodResponse | None = None

    @classmethod
    def from_user(cls, user: User) -> SettingsResponse:
        return cls(
            email=user.email,
            full_name=user.full_name,
            display_name=user.display_name,
            bio=user.bio,
            avatar_url=user.avatar_url,
            notification_preferences=NotificationPreferences.model_validate(
                user.notification_preferences
            ),
            language=user.language,
            neighborhood=_neighborhood_or_none(user),
        )


class PublicProfileResponse(CamelModel):
    id: uuid.UUID
    name: str
    bio: str | None = None
    avatar_url: str | None = None
    role: str
    neighborhood: NeighborhoodResponse | None = None
    created_at: datetime
    post_count: int
    comment_count: int

    @classmethod
    def from_user(cls, user: User, *, post_count: int, comment_count: int) -> PublicProfileResponse:
        return cls(
            id=user.id,
            name=user.public_name,
            bio=user.bio,
            avatar_url=user.avatar_url,
            role=user.role,
            neighborhood=_neighborhood_or_none(user),
            created_at=user.created_at,
            post_count=post_count,
            comment_count=comment_count,
        )


class AdminUserResponse(CamelModel):
    id: uuid.UUID
    email: str
    full_name: str
    display_name: str | None = None
    role: str
    is_banned: bool
    banned_at: datetime | None = None
    banned_reason: str | None = None
    created_at: datetime

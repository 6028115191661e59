"""Moderation-related Pydantic schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator

from vecinu.models import ReportTargetType
from vecinu.schemas.common import CamelModel
from vecinu.services.sanitize import sanitize_optional, sanitize_text

BAN_REASON_MIN_LENGTH = 5


class ReportCreate(CamelModel):
    """Schema for a user-submitted report."""

    target_type: ReportTargetType
    target_id: uuid.UUID
    reason: str = Field(..., min_length=5, max_length=1000)
    details: str | None = Field(None, max_length=2000)

    @field_validator("reason")
    @classmethod
    def _sanitize_reason(cls, value: str) -> str:
        cleaned = sanitize_text(value)
        if len(cleaned) < 5:
            raise ValueError("Motivul trebuie să aibă cel puțin 5 caractere")
        return cleaned

    @field_validator("details")
    @classmethod
    def _sanitize_details(cls, value: str | None) -> str | None:
        return sanitize_optional(value)


class ReportResponse(CamelModel):
    id: uuid.UUID
    reporter_id: uuid.UUID
    target_type: str
    target_id: uuid.UUID
    reason: str
    details: str | None = None
    status: str
    action_taken: str | None = None
    reviewed_by: uuid.UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime


class ReportSubmitResult(CamelModel):
    """Outcome of a report submission; repeated submissions are not errors."""

    reported: bool = True
    message: str
    report_id: uuid.UUID


class ReportDecision(CamelModel):
    """Moderator decision on a pending report."""

    action: Literal["resolve", "dismiss"]
    action_taken: str | None = Field(None, min_length=1, max_length=64)
    reason: str | None = Field(None, max_length=1000)

    @model_validator(mode="after")
    def _require_action_taken(self) -> ReportDecision:
        if self.action == "resolve" and not (self.action_taken and self.action_taken.strip()):
            raise ValueError("actionTaken este obligatoriu la rezolvare")
        return self


class ContentModeration(CamelModel):
    """Hide or unhide a post or comment."""

    action: Literal["hide", "unhide"]
    reason: str | None = Field(None, max_length=1000)


class UserModeration(CamelModel):
    """Ban or unban a user; the ban reason is checked by the moderation service."""

    action: Literal["ban", "unban"]
    reason: str | None = Field(None, max_length=1000)


class AuditLogResponse(CamelModel):
    id: uuid.UUID
    admin_id: uuid.UUID
    action: str
    target_type: str
    target_id: uuid.UUID
    reason: str | None = None
    metadata: dict[str, Any] | None = Field(None, validation_alias="action_metadata")
    created_at: datetime


class AdminStats(CamelModel):
    pending_reports: int
    total_reports: int
    banned_users: int
    hidden_posts: int

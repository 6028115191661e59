"""Submission of user reports with per-target duplicate suppression."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vecinu.core.errors import NotFoundError
from vecinu.models import (
    ACTIVE_REPORT_STATUSES,
    Comment,
    CommentStatus,
    Post,
    PostStatus,
    Report,
    ReportTargetType,
    User,
)
from vecinu.schemas.moderation import ReportCreate

logger = logging.getLogger(__name__)

__all__ = ["ALREADY_REPORTED_MESSAGE", "REPORTED_MESSAGE", "ReportOutcome", "submit_report"]

REPORTED_MESSAGE = "reported"
ALREADY_REPORTED_MESSAGE = "already reported"


@dataclass
class ReportOutcome:
    report: Report
    created: bool

    @property
    def message(self) -> str:
        return REPORTED_MESSAGE if self.created else ALREADY_REPORTED_MESSAGE


def _ensure_target_exists(db: Session, target_type: ReportTargetType, target_id: uuid.UUID) -> None:
    if target_type is ReportTargetType.POST:
        found = db.scalar(
            select(Post.id).where(Post.id == target_id, Post.status != PostStatus.DELETED.value)
        )
        resource = "Postarea"
    elif target_type is ReportTargetType.COMMENT:
        found = db.scalar(
            select(Comment.id).where(
                Comment.id == target_id,
                Comment.status != CommentStatus.DELETED.value,
            )
        )
        resource = "Comentariul"
    else:
        found = db.scalar(select(User.id).where(User.id == target_id))
        resource = "Utilizatorul"
    if found is None:
        raise NotFoundError(resource)


def _find_active(db: Session, reporter_id: uuid.UUID, target_type: str, target_id: uuid.UUID) -> Report | None:
    return db.scalar(
        select(Report).where(
            Report.reporter_id == reporter_id,
            Report.target_type == target_type,
            Report.target_id == target_id,
            Report.status.in_(ACTIVE_REPORT_STATUSES),
        )
    )


def submit_report(db: Session, reporter: User, data: ReportCreate) -> ReportOutcome:
    """Record a report, or return the reporter's existing active one for the target.

    The pre-check covers the common case; the partial unique index on active
    reports catches concurrent duplicates, which are answered the same way.
    """
    _ensure_target_exists(db, data.target_type, data.target_id)
    target_type = data.target_type.value

    existing = _find_active(db, reporter.id, target_type, data.target_id)
    if existing is not None:
        return ReportOutcome(report=existing, created=False)

    report = Report(
        reporter_id=reporter.id,
        target_type=target_type,
        target_id=data.target_id,
        reason=data.reason,
        details=data.details,
    )
    try:
        with db.begin_nested():
            db.add(report)
    except IntegrityError:
        existing = _find_active(db, reporter.id, target_type, data.target_id)
        if existing is None:
            raise
        logger.info("Concurrent duplicate report by %s on %s %s", reporter.id, target_type, data.target_id)
        return ReportOutcome(report=existing, created=False)

    db.commit()
    db.refresh(report)
    return ReportOutcome(report=report, created=True)

# src/vecinu/api/endpoints/admin.py
"""Moderator console endpoints for the Vecinu API."""

from __future__ import annotations

import uuid
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Depends, Query

from vecinu.api.dependencies import (
    CursorDep,
    FeedCacheDep,
    LimitDep,
    ModeratorDep,
    SessionDep,
    verify_origin,
)
from vecinu.core.settings import settings
from vecinu.models import Comment, Post, PostStatus, ReportStatus, User
from vecinu.schemas.comment import CommentResponse
from vecinu.schemas.common import page_meta, success_response
from vecinu.schemas.moderation import (
    AdminStats,
    AuditLogResponse,
    ContentModeration,
    ReportDecision,
    ReportResponse,
    UserModeration,
)
from vecinu.schemas.post import PostResponse
from vecinu.schemas.user import AdminUserResponse
from vecinu.services.moderation import ModerationService
from vecinu.utils.cursor import next_cursor, split_page

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(verify_origin)])


def _serialize_target(target: Post | Comment | User | None) -> Any:
    if isinstance(target, Post):
        return PostResponse.from_post(target)
    if isinstance(target, Comment):
        return CommentResponse.from_comment(target)
    if isinstance(target, User):
        return AdminUserResponse.model_validate(target)
    return None


@router.get("/stats")
def get_stats(db: SessionDep, _: ModeratorDep) -> dict[str, Any]:
    return success_response(AdminStats(**ModerationService.get_stats(db)))


@router.get("/reports")
def list_reports(
    db: SessionDep,
    _: ModeratorDep,
    cursor: CursorDep,
    report_status: Annotated[ReportStatus | None, Query(alias="status")] = None,
    limit: LimitDep = settings.pagination_default_limit,
) -> dict[str, Any]:
    rows = ModerationService.list_reports(
        db,
        status=report_status.value if report_status else None,
        cursor=cursor,
        limit=limit,
    )
    page, has_more = split_page(rows, limit)
    return success_response(
        [ReportResponse.model_validate(report) for report in page],
        page_meta(next_cursor(page, has_more), has_more),
    )


@router.get("/reports/{report_id}")
def get_report(report_id: uuid.UUID, db: SessionDep, _: ModeratorDep) -> dict[str, Any]:
    """Return a report together with the entity it points at."""
    report = ModerationService.get_report(db, report_id)
    target = ModerationService.get_report_target(db, report)
    return success_response(
        {"report": ReportResponse.model_validate(report), "target": _serialize_target(target)}
    )


@router.patch("/reports/{report_id}")
def decide_report(
    report_id: uuid.UUID,
    data: ReportDecision,
    db: SessionDep,
    moderator: ModeratorDep,
) -> dict[str, Any]:
    if data.action == "resolve":
        report = ModerationService.resolve_report(
            db,
            moderator,
            report_id,
            (data.action_taken or "").strip(),
        )
    else:
        report = ModerationService.dismiss_report(db, moderator, report_id, data.reason)
    return success_response(ReportResponse.model_validate(report))


@router.get("/posts")
def list_posts(
    db: SessionDep,
    _: ModeratorDep,
    post_status: Annotated[PostStatus | None, Query(alias="status")] = None,
    q: Annotated[str | None, Query(max_length=100)] = None,
) -> dict[str, Any]:
    posts = ModerationService.list_posts(
        db,
        status=post_status.value if post_status else None,
        term=q.strip() if q else None,
    )
    return success_response([PostResponse.from_post(post) for post in posts])


@router.patch("/posts/{post_id}")
def moderate_post(
    post_id: uuid.UUID,
    data: ContentModeration,
    db: SessionDep,
    moderator: ModeratorDep,
    cache: FeedCacheDep,
) -> dict[str, Any]:
    if data.action == "hide":
        post = ModerationService.hide_post(db, moderator, post_id, data.reason)
    else:
        post = ModerationService.unhide_post(db, moderator, post_id)
    cache.invalidate_post(post_id)
    cache.invalidate_feed()
    return success_response(PostResponse.from_post(post))


@router.delete("/posts/{post_id}")
def delete_post(
    post_id: uuid.UUID,
    db: SessionDep,
    moderator: ModeratorDep,
    cache: FeedCacheDep,
    reason: Annotated[str | None, Query(max_length=1000)] = None,
) -> dict[str, Any]:
    ModerationService.delete_post(db, moderator, post_id, reason)
    cache.invalidate_post(post_id)
    cache.invalidate_feed()
    return success_response({"id": post_id, "deleted": True})


@router.patch("/comments/{comment_id}")
def moderate_comment(
    comment_id: uuid.UUID,
    data: ContentModeration,
    db: SessionDep,
    moderator: ModeratorDep,
    cache: FeedCacheDep,
) -> dict[str, Any]:
    if data.action == "hide":
        comment = ModerationService.hide_comment(db, moderator, comment_id, data.reason)
    else:
        comment = ModerationService.unhide_comment(db, moderator, comment_id)
    cache.invalidate_post(comment.post_id)
    return success_response(CommentResponse.from_comment(comment))


@router.delete("/comments/{comment_id}")
def delete_comment(
    comment_id: uuid.UUID,
    db: SessionDep,
    moderator: ModeratorDep,
    cache: FeedCacheDep,
    reason: Annotated[str | None, Query(max_length=1000)] = None,
) -> dict[str, Any]:
    comment = ModerationService.delete_comment(db, moderator, comment_id, reason)
    cache.invalidate_post(comment.post_id)
    return success_response({"id": comment_id, "deleted": True})


@router.get("/users")
def list_users(
    db: SessionDep,
    _: ModeratorDep,
    filter_by: Annotated[Literal["all", "banned", "moderators"], Query(alias="filter")] = "all",
    q: Annotated[str | None, Query(max_length=100)] = None,
) -> dict[str, Any]:
    users = ModerationService.list_users(db, filter_by=filter_by, term=q.strip() if q else None)
    return success_response([AdminUserResponse.model_validate(user) for user in users])


@router.patch("/users/{user_id}")
def moderate_user(
    user_id: uuid.UUID,
    data: UserModeration,
    db: SessionDep,
    moderator: ModeratorDep,
) -> dict[str, Any]:
    if data.action == "ban":
        user = ModerationService.ban_user(db, moderator, user_id, data.reason)
    else:
        user = ModerationService.unban_user(db, moderator, user_id)
    return success_response(AdminUserResponse.model_validate(user))


@router.get("/audit-logs")
def list_audit_logs(
    db: SessionDep,
    _: ModeratorDep,
    cursor: CursorDep,
    limit: LimitDep = settings.pagination_default_limit,
) -> dict[str, Any]:
    rows = ModerationService.list_audit_logs(db, cursor=cursor, limit=limit)
    page, has_more = split_page(rows, limit)
    return success_response(
        [AuditLogResponse.model_validate(entry) for entry in page],
        page_meta(next_cursor(page, has_more), has_more),
    )

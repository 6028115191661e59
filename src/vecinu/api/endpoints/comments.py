"""Comment endpoints for the Vecinu API."""

from __future__ import annotations

import uuid
from typing import Annotated, Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status

from vecinu.api.dependencies import (
    CurrentUserDep,
    CursorDep,
    DispatcherDep,
    FeedCacheDep,
    LimitDep,
    OptionalUserDep,
    RateLimitByUser,
    SessionDep,
    verify_origin,
)
from vecinu.core.settings import settings
from vecinu.schemas.comment import (
    CommentCreate,
    CommentResponse,
    CommentThreadResponse,
    CommentUpdate,
)
from vecinu.schemas.common import page_meta, success_response
from vecinu.services import comment_service, post_service
from vecinu.services.comment_service import CommentThread
from vecinu.services.moderation import ModerationService
from vecinu.utils.cursor import next_cursor, split_page

router = APIRouter(prefix="/comments", tags=["comments"], dependencies=[Depends(verify_origin)])


def _thread_response(thread: CommentThread) -> CommentThreadResponse:
    base = CommentResponse.from_comment(thread.comment)
    return CommentThreadResponse(
        **base.model_dump(),
        replies=[CommentResponse.from_comment(reply) for reply in thread.replies],
        reply_count=thread.reply_count,
    )


@router.get("")
def list_comments(
    post_id: Annotated[uuid.UUID, Query(alias="postId")],
    db: SessionDep,
    viewer: OptionalUserDep,
    cursor: CursorDep,
    limit: LimitDep = settings.pagination_default_limit,
) -> dict[str, Any]:
    """Return top-level comments oldest first, each with a preview of its replies."""
    post_service.get_post_for_viewer(db, post_id, viewer)
    threads = comment_service.list_threads(db, post_id, cursor=cursor, limit=limit)
    page, has_more = split_page(threads, limit)
    return success_response(
        [_thread_response(thread) for thread in page],
        page_meta(next_cursor([thread.comment for thread in page], has_more), has_more),
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimitByUser("comments"))],
)
def create_comment(
    data: CommentCreate,
    db: SessionDep,
    current_user: CurrentUserDep,
    dispatcher: DispatcherDep,
    cache: FeedCacheDep,
    background_tasks: BackgroundTasks,
) -> dict[str, Any]:
    comment = comment_service.create_comment(db, current_user, data)
    background_tasks.add_task(dispatcher.comment_created, comment.id)
    cache.invalidate_post(comment.post_id)
    return success_response(CommentResponse.from_comment(comment))


@router.patch("/{comment_id}")
def update_comment(
    comment_id: uuid.UUID,
    data: CommentUpdate,
    db: SessionDep,
    current_user: CurrentUserDep,
) -> dict[str, Any]:
    comment = comment_service.update_comment(db, comment_id, current_user, data.body)
    return success_response(CommentResponse.from_comment(comment))


@router.delete("/{comment_id}")
def delete_comment(
    comment_id: uuid.UUID,
    db: SessionDep,
    current_user: CurrentUserDep,
    cache: FeedCacheDep,
) -> dict[str, Any]:
    """Soft-delete a comment; staff removing someone else's comment are audited."""
    comment = comment_service.get_comment(db, comment_id)
    if comment.author_id != current_user.id and current_user.is_staff:
        ModerationService.delete_comment(db, current_user, comment_id)
    else:
        comment_service.delete_comment(db, comment_id, current_user)
    cache.invalidate_post(comment.post_id)
    return success_response({"id": comment_id, "deleted": True})


@router.get("/{comment_id}/replies")
def list_replies(comment_id: uuid.UUID, db: SessionDep) -> dict[str, Any]:
    replies = comment_service.list_replies(db, comment_id)
    return success_response([CommentResponse.from_comment(reply) for reply in replies])

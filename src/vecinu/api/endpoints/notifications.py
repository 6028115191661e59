"""Notification inbox endpoints for the Vecinu API."""

from __future__ import annotations

import uuid
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from vecinu.api.dependencies import CurrentUserDep, CursorDep, LimitDep, SessionDep, verify_origin
from vecinu.core.settings import settings
from vecinu.schemas.common import page_meta, success_response
from vecinu.schemas.notification import NotificationResponse
from vecinu.services import notifications as notification_service
from vecinu.utils.cursor import next_cursor, split_page

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
    dependencies=[Depends(verify_origin)],
)


@router.get("")
def list_notifications(
    db: SessionDep,
    current_user: CurrentUserDep,
    cursor: CursorDep,
    unread_only: Annotated[bool, Query(alias="unreadOnly")] = False,
    limit: LimitDep = settings.pagination_default_limit,
) -> dict[str, Any]:
    rows = notification_service.list_notifications(
        db,
        current_user,
        unread_only=unread_only,
        cursor=cursor,
        limit=limit,
    )
    page, has_more = split_page(rows, limit)
    return success_response(
        [NotificationResponse.model_validate(item) for item in page],
        page_meta(
            next_cursor(page, has_more),
            has_more,
            unreadCount=notification_service.unread_count(db, current_user),
        ),
    )


@router.patch("/{notification_id}/read")
def mark_read(notification_id: uuid.UUID, db: SessionDep, current_user: CurrentUserDep) -> dict[str, Any]:
    notification = notification_service.mark_read(db, current_user, notification_id)
    return success_response(NotificationResponse.model_validate(notification))


@router.post("/read-all")
def mark_all_read(db: SessionDep, current_user: CurrentUserDep) -> dict[str, Any]:
    count = notification_service.mark_all_read(db, current_user)
    return success_response({"count": count})

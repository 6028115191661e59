"""Profile, settings and public user endpoints for the Vecinu API."""

from __future__ import annotations

import uuid
from typing import Any

from fastapi import APIRouter, Depends

from vecinu.api.dependencies import CurrentUserDep, CursorDep, LimitDep, SessionDep, verify_origin
from vecinu.core.settings import settings
from vecinu.repositories.post_repo import PostRepository
from vecinu.schemas.common import page_meta, success_response
from vecinu.schemas.post import PostResponse
from vecinu.schemas.user import (
    ProfileUpdate,
    PublicProfileResponse,
    SelectNeighborhoodRequest,
    SettingsResponse,
    SettingsUpdate,
    UserResponse,
)
from vecinu.services import user_service
from vecinu.utils.cursor import next_cursor, split_page

# The caller's own account lives under /user, everyone else under /users.
account_router = APIRouter(prefix="/user", tags=["users"], dependencies=[Depends(verify_origin)])
router = APIRouter(prefix="/users", tags=["users"])


@account_router.patch("/profile")
def update_profile(data: ProfileUpdate, db: SessionDep, current_user: CurrentUserDep) -> dict[str, Any]:
    user = user_service.update_profile(db, current_user, data)
    return success_response(UserResponse.from_user(user))


@account_router.get("/settings")
def get_settings(current_user: CurrentUserDep) -> dict[str, Any]:
    return success_response(SettingsResponse.from_user(current_user))


@account_router.patch("/settings")
def update_settings(data: SettingsUpdate, db: SessionDep, current_user: CurrentUserDep) -> dict[str, Any]:
    user = user_service.update_settings(db, current_user, data)
    return success_response(SettingsResponse.from_user(user))


@account_router.post("/select-neighborhood")
def select_neighborhood(
    data: SelectNeighborhoodRequest,
    db: SessionDep,
    current_user: CurrentUserDep,
) -> dict[str, Any]:
    """Join a neighborhood, leaving the previous one if any."""
    user = user_service.select_neighborhood(db, current_user, data.neighborhood_id)
    return success_response(UserResponse.from_user(user))


@router.get("/{user_id}")
def get_public_profile(user_id: uuid.UUID, db: SessionDep) -> dict[str, Any]:
    user = user_service.get_user(db, user_id)
    post_count, comment_count = user_service.count_public_activity(db, user.id)
    return success_response(
        PublicProfileResponse.from_user(user, post_count=post_count, comment_count=comment_count)
    )


@router.get("/{user_id}/posts")
def list_user_posts(
    user_id: uuid.UUID,
    db: SessionDep,
    cursor: CursorDep,
    limit: LimitDep = settings.pagination_default_limit,
) -> dict[str, Any]:
    user = user_service.get_user(db, user_id)
    rows = PostRepository(db).list_by_author(user.id, cursor=cursor, limit=limit)
    page, has_more = split_page(rows, limit)
    return success_response(
        [PostResponse.from_post(post) for post in page],
        page_meta(next_cursor(page, has_more), has_more),
    )

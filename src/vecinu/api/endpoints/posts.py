# src/vecinu/api/endpoints/posts.py
"""Post-related endpoints for the Vecinu API."""

from __future__ import annotations

import logging
import uuid
from typing import Annotated, Any

from fastapi import APIRouter, BackgroundTasks, Depends, File, Query, UploadFile, status

from vecinu.api.dependencies import (
    CurrentUserDep,
    CursorDep,
    DispatcherDep,
    FeedCacheDep,
    LimitDep,
    OptionalUserDep,
    RateLimitByIp,
    RateLimitByUser,
    SessionDep,
    SessionFactoryDep,
    StorageDep,
    verify_origin,
)
from vecinu.core.errors import InternalServerError
from vecinu.core.settings import settings
from vecinu.models import PostCategory, PostStatus
from vecinu.repositories.post_repo import PostRepository
from vecinu.schemas.common import page_meta, success_response
from vecinu.schemas.post import PostCreate, PostImageResponse, PostResponse, PostUpdate
from vecinu.services import post_service
from vecinu.services.moderation import ModerationService
from vecinu.services.storage import StorageError
from vecinu.services.user_service import get_neighborhood_by_slug
from vecinu.utils.cursor import next_cursor, split_page

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"], dependencies=[Depends(verify_origin)])


@router.get("", dependencies=[Depends(RateLimitByIp("api"))])
def list_feed(
    db: SessionDep,
    cache: FeedCacheDep,
    neighborhood: Annotated[str, Query(min_length=1, max_length=100)],
    cursor: CursorDep,
    category: PostCategory | None = None,
    limit: LimitDep = settings.pagination_default_limit,
) -> dict[str, Any]:
    """Return a neighborhood's active posts, pinned first, newest first.

    The first page at the default page size is served through the feed cache.
    """
    cacheable = cursor is None and limit == settings.pagination_default_limit
    cache_key = cache.feed_key(neighborhood, category.value if category else None)
    if cacheable:
        cached = cache.get_feed(cache_key)
        if cached is not None:
            return cached

    target = get_neighborhood_by_slug(db, neighborhood)
    rows = PostRepository(db).list_feed(
        target.id,
        category=category.value if category else None,
        cursor=cursor,
        limit=limit,
    )
    page, has_more = split_page(rows, limit)
    body = success_response(
        [PostResponse.from_post(post) for post in page],
        page_meta(next_cursor(page, has_more, with_pinned=True), has_more),
    )
    if cacheable:
        cache.set_feed(cache_key, body)
    return body


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimitByUser("posts"))],
)
def create_post(
    data: PostCreate,
    db: SessionDep,
    current_user: CurrentUserDep,
    cache: FeedCacheDep,
) -> dict[str, Any]:
    post = post_service.create_post(db, current_user, data)
    cache.invalidate_feed()
    return success_response(PostResponse.from_post(post))


@router.get("/saved")
def list_saved_posts(
    db: SessionDep,
    current_user: CurrentUserDep,
    cursor: CursorDep,
    limit: LimitDep = settings.pagination_default_limit,
) -> dict[str, Any]:
    """Return the caller's bookmarked posts, most recently saved first."""
    rows = PostRepository(db).list_saved(current_user.id, cursor=cursor, limit=limit)
    page, has_more = split_page(rows, limit)
    return success_response(
        [PostResponse.from_post(saved.post) for saved in page],
        page_meta(next_cursor(page, has_more), has_more),
    )


@router.get("/{post_id}")
def get_post(
    post_id: uuid.UUID,
    db: SessionDep,
    viewer: OptionalUserDep,
    cache: FeedCacheDep,
    background_tasks: BackgroundTasks,
    session_factory: SessionFactoryDep,
) -> dict[str, Any]:
    """Return a post; the view counter is bumped after the response is sent."""
    cached = cache.get_post(post_id)
    if cached is None:
        post = post_service.get_post_for_viewer(db, post_id, viewer)
        body = success_response(PostResponse.from_post(post, with_neighborhood=True))
        if post.status != PostStatus.HIDDEN:
            cache.set_post(post_id, body)
    else:
        body = cached
    background_tasks.add_task(post_service.record_view, session_factory, post_id)
    return body


@router.patch("/{post_id}")
def update_post(
    post_id: uuid.UUID,
    data: PostUpdate,
    db: SessionDep,
    current_user: CurrentUserDep,
    cache: FeedCacheDep,
    dispatcher: DispatcherDep,
    background_tasks: BackgroundTasks,
) -> dict[str, Any]:
    previous_status = post_service.get_post(db, post_id).status
    post = post_service.update_post(db, post_id, current_user, data)
    if post.status == PostStatus.SOLD and previous_status != PostStatus.SOLD:
        background_tasks.add_task(dispatcher.post_sold, post.id)
    cache.invalidate_post(post.id)
    cache.invalidate_feed()
    return success_response(PostResponse.from_post(post))


@router.delete("/{post_id}")
def delete_post(
    post_id: uuid.UUID,
    db: SessionDep,
    current_user: CurrentUserDep,
    cache: FeedCacheDep,
    storage: StorageDep,
    background_tasks: BackgroundTasks,
) -> dict[str, Any]:
    """Soft-delete a post; staff removing someone else's post are audited."""
    post = post_service.get_post(db, post_id)
    image_urls = [image.url for image in post.images]
    if post.author_id != current_user.id and current_user.is_staff:
        ModerationService.delete_post(db, current_user, post_id)
    else:
        post_service.delete_post(db, post_id, current_user)

    if image_urls:
        background_tasks.add_task(storage.delete_images, image_urls)
    cache.invalidate_post(post_id)
    cache.invalidate_feed()
    return success_response({"id": post_id, "deleted": True})


@router.patch("/{post_id}/sold")
def toggle_sold(
    post_id: uuid.UUID,
    db: SessionDep,
    current_user: CurrentUserDep,
    cache: FeedCacheDep,
    dispatcher: DispatcherDep,
    background_tasks: BackgroundTasks,
) -> dict[str, Any]:
    """Flip a marketplace post between active and sold."""
    post = post_service.toggle_sold(db, post_id, current_user)
    if post.status == PostStatus.SOLD:
        background_tasks.add_task(dispatcher.post_sold, post.id)
    cache.invalidate_post(post.id)
    cache.invalidate_feed()
    return success_response(PostResponse.from_post(post))


@router.get("/{post_id}/save")
def get_saved_state(post_id: uuid.UUID, db: SessionDep, current_user: CurrentUserDep) -> dict[str, Any]:
    post_service.get_post(db, post_id)
    return success_response({"saved": post_service.is_saved(db, post_id, current_user)})


@router.post("/{post_id}/save")
def save_post(post_id: uuid.UUID, db: SessionDep, current_user: CurrentUserDep) -> dict[str, Any]:
    post_service.save_post(db, post_id, current_user)
    return success_response({"saved": True})


@router.delete("/{post_id}/save")
def unsave_post(post_id: uuid.UUID, db: SessionDep, current_user: CurrentUserDep) -> dict[str, Any]:
    post_service.unsave_post(db, post_id, current_user)
    return success_response({"saved": False})


@router.post("/{post_id}/images", status_code=status.HTTP_201_CREATED)
async def upload_image(
    post_id: uuid.UUID,
    file: Annotated[UploadFile, File()],
    db: SessionDep,
    current_user: CurrentUserDep,
    storage: StorageDep,
    cache: FeedCacheDep,
) -> dict[str, Any]:
    """Attach an uploaded image to one of the caller's posts."""
    post = post_service.check_image_slot(db, post_id, current_user)
    content = await file.read()
    try:
        stored = await storage.upload_post_image(current_user.id, content, file.content_type or "")
    except StorageError as exc:
        logger.error("Image upload failed for post %s: %s", post_id, exc)
        raise InternalServerError("Încărcarea imaginii a eșuat") from exc

    image = post_service.attach_image(db, post, stored)
    cache.invalidate_post(post_id)
    return success_response(PostImageResponse.model_validate(image))

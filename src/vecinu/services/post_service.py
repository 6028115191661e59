"""Service-level helpers for the post lifecycle, saves and images."""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from vecinu.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from vecinu.core.settings import settings
from vecinu.db.time import days_from_now
from vecinu.models import (
    MARKETPLACE_CATEGORIES,
    Post,
    PostCategory,
    PostImage,
    PostStatus,
    SavedPost,
    User,
)
from vecinu.repositories.post_repo import PostRepository
from vecinu.schemas.post import PostCreate, PostUpdate
from vecinu.services.lifecycle import Actor, transition_post
from vecinu.services.storage import StoredImage

logger = logging.getLogger(__name__)

__all__ = [
    "ensure_can_post",
    "get_post",
    "get_post_for_viewer",
    "create_post",
    "update_post",
    "toggle_sold",
    "delete_post",
    "record_view",
    "save_post",
    "unsave_post",
    "is_saved",
    "check_image_slot",
    "attach_image",
]

POST_RESOURCE = "Postarea"


def ensure_can_post(user: User) -> None:
    """Reject banned users and users without a neighborhood before any write."""
    if user.is_banned:
        raise AuthorizationError("Contul tău a fost suspendat")
    if user.neighborhood_id is None:
        raise AuthorizationError("Trebuie să selectezi un cartier pentru a posta")


def get_post(db: Session, post_id: uuid.UUID) -> Post:
    """Return a non-deleted post or raise ``NotFoundError``."""
    post = PostRepository(db).get_by_id(post_id)
    if post is None:
        raise NotFoundError(POST_RESOURCE)
    return post


def get_post_for_viewer(db: Session, post_id: uuid.UUID, viewer: User | None) -> Post:
    """Return a post visible to ``viewer``; hidden posts only reach author and staff."""
    post = get_post(db, post_id)
    if post.status == PostStatus.HIDDEN:
        if viewer is None or (viewer.id != post.author_id and not viewer.is_staff):
            raise NotFoundError(POST_RESOURCE)
    return post


def create_post(db: Session, author: User, data: PostCreate) -> Post:
    """Persist a new post in the author's neighborhood.

    Marketplace posts get an expiry date; ``is_free`` forces the price to null.
    """
    ensure_can_post(author)
    is_marketplace = data.category in MARKETPLACE_CATEGORIES
    post = Post(
        author_id=author.id,
        neighborhood_id=author.neighborhood_id,
        category=data.category.value,
        title=data.title,
        body=data.body,
        price_cents=None if data.is_free else data.price_cents,
        is_free=data.is_free,
        expires_at=days_from_now(settings.marketplace_expiry_days) if is_marketplace else None,
    )
    db.add(post)
    db.commit()
    db.refresh(post)
    logger.info("Post %s created by %s", post.id, author.id)
    return post


def _require_author(post: Post, user: User) -> None:
    if post.author_id != user.id:
        raise AuthorizationError("Doar autorul poate modifica această postare")


def _change_category(post: Post, category: PostCategory) -> None:
    """Move a post between categories, keeping marketplace-only fields consistent."""
    was_marketplace = post.category in MARKETPLACE_CATEGORIES
    is_marketplace = category in MARKETPLACE_CATEGORIES
    if not is_marketplace and post.status == PostStatus.SOLD:
        raise ConflictError("Un anunț vândut nu poate fi mutat în altă categorie")
    post.category = category.value
    if was_marketplace and not is_marketplace:
        post.expires_at = None
        post.price_cents = None
        post.is_free = False
    elif is_marketplace and not was_marketplace:
        post.expires_at = days_from_now(settings.marketplace_expiry_days)


def update_post(db: Session, post_id: uuid.UUID, user: User, data: PostUpdate) -> Post:
    """Apply an author edit; a ``status`` change goes through the state machine.

    The status change is applied against the stored category, before any
    category move in the same edit.
    """
    post = get_post(db, post_id)
    _require_author(post, user)

    changes = data.model_dump(exclude_unset=True)
    new_status = changes.pop("status", None)
    category = changes.pop("category", None)
    if new_status is not None and new_status != post.status:
        transition_post(post, PostStatus(new_status), Actor.AUTHOR)
    for field, value in changes.items():
        setattr(post, field, value)
    if category is not None and category != post.category:
        _change_category(post, category)
    if post.is_free:
        post.price_cents = None

    db.commit()
    db.refresh(post)
    return post


def toggle_sold(db: Session, post_id: uuid.UUID, user: User) -> Post:
    """Flip a marketplace post between ``active`` and ``sold``."""
    post = get_post(db, post_id)
    _require_author(post, user)
    target = PostStatus.ACTIVE if post.status == PostStatus.SOLD else PostStatus.SOLD
    transition_post(post, target, Actor.AUTHOR)
    db.commit()
    db.refresh(post)
    return post


def delete_post(db: Session, post_id: uuid.UUID, user: User) -> Post:
    """Soft-delete a post as its author.

    Staff deleting someone else's post go through ``ModerationService`` so the
    action is audited.
    """
    post = get_post(db, post_id)
    _require_author(post, user)
    transition_post(post, PostStatus.DELETED, Actor.AUTHOR)
    db.commit()
    return post


def record_view(session_factory, post_id: uuid.UUID) -> None:
    """Increment ``view_count``; runs after the response and never raises."""
    try:
        with session_factory() as db:
            db.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(view_count=Post.view_count + 1)
                .execution_options(synchronize_session=False)
            )
            db.commit()
    except SQLAlchemyError:
        logger.exception("Failed to record view for post %s", post_id)


def is_saved(db: Session, post_id: uuid.UUID, user: User) -> bool:
    stmt = select(SavedPost.id).where(SavedPost.post_id == post_id, SavedPost.user_id == user.id)
    return db.scalar(stmt) is not None


def save_post(db: Session, post_id: uuid.UUID, user: User) -> bool:
    """Bookmark an active post; saving twice is a no-op.

    Returns:
        True if a new bookmark was created.
    """
    post = get_post(db, post_id)
    if post.status != PostStatus.ACTIVE:
        raise ValidationError("Doar postările active pot fi salvate")
    if is_saved(db, post_id, user):
        return False
    try:
        with db.begin_nested():
            db.add(SavedPost(user_id=user.id, post_id=post_id))
    except IntegrityError:
        return False
    db.commit()
    return True


def unsave_post(db: Session, post_id: uuid.UUID, user: User) -> None:
    saved = db.scalar(
        select(SavedPost).where(SavedPost.post_id == post_id, SavedPost.user_id == user.id)
    )
    if saved is not None:
        db.delete(saved)
        db.commit()


def check_image_slot(db: Session, post_id: uuid.UUID, user: User) -> Post:
    """Verify ``user`` may attach another image to the post."""
    ensure_can_post(user)
    post = get_post(db, post_id)
    _require_author(post, user)
    if len(post.images) >= settings.image_max_per_post:
        raise ValidationError(
            f"Poți adăuga maximum {settings.image_max_per_post} imagini",
            details={"file": ["TOO_MANY_IMAGES"]},
        )
    return post


def attach_image(db: Session, post: Post, stored: StoredImage) -> PostImage:
    image = PostImage(
        post_id=post.id,
        url=stored.url,
        thumbnail_url=stored.thumbnail_url,
        size_bytes=stored.size_bytes,
        position=len(post.images),
    )
    db.add(image)
    db.commit()
    db.refresh(image)
    return image

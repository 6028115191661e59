# mypy: ignore-errors
"""Unit tests for the post and comment status transitions."""

import pytest

from vecinu.core.errors import AuthorizationError, ConflictError
from vecinu.models import Comment, CommentStatus, Post, PostCategory, PostStatus
from vecinu.services.lifecycle import Actor, transition_comment, transition_post


def _post(status=PostStatus.ACTIVE, category=PostCategory.SELL) -> Post:
    return Post(status=status.value, category=category.value, body="Conținut de test")


@pytest.mark.parametrize(
    ("current", "target", "actor"),
    [
        (PostStatus.ACTIVE, PostStatus.HIDDEN, Actor.MODERATOR),
        (PostStatus.HIDDEN, PostStatus.ACTIVE, Actor.MODERATOR),
        (PostStatus.ACTIVE, PostStatus.SOLD, Actor.AUTHOR),
        (PostStatus.SOLD, PostStatus.ACTIVE, Actor.AUTHOR),
        (PostStatus.ACTIVE, PostStatus.DELETED, Actor.AUTHOR),
        (PostStatus.HIDDEN, PostStatus.DELETED, Actor.MODERATOR),
        (PostStatus.SOLD, PostStatus.DELETED, Actor.AUTHOR),
    ],
)
def test_allowed_post_transitions(current, target, actor) -> None:
    post = _post(current)
    previous = transition_post(post, target, actor)
    assert previous == current
    assert post.status == target


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (PostStatus.DELETED, PostStatus.ACTIVE),
        (PostStatus.DELETED, PostStatus.HIDDEN),
        (PostStatus.HIDDEN, PostStatus.SOLD),
        (PostStatus.SOLD, PostStatus.HIDDEN),
    ],
)
def test_missing_post_edges_conflict(current, target) -> None:
    post = _post(current)
    with pytest.raises(ConflictError):
        transition_post(post, target, Actor.MODERATOR)
    assert post.status == current


def test_author_cannot_hide() -> None:
    with pytest.raises(AuthorizationError):
        transition_post(_post(), PostStatus.HIDDEN, Actor.AUTHOR)


def test_moderator_cannot_mark_sold() -> None:
    with pytest.raises(AuthorizationError):
        transition_post(_post(), PostStatus.SOLD, Actor.MODERATOR)


def test_sold_requires_marketplace_category() -> None:
    post = _post(category=PostCategory.EVENT)
    with pytest.raises(AuthorizationError):
        transition_post(post, PostStatus.SOLD, Actor.AUTHOR)
    assert post.status == PostStatus.ACTIVE


def test_comment_transitions() -> None:
    comment = Comment(status=CommentStatus.ACTIVE.value, body="x")
    transition_comment(comment, CommentStatus.HIDDEN, Actor.MODERATOR)
    transition_comment(comment, CommentStatus.ACTIVE, Actor.MODERATOR)
    transition_comment(comment, CommentStatus.DELETED, Actor.AUTHOR)
    assert comment.status == CommentStatus.DELETED

    with pytest.raises(ConflictError):
        transition_comment(comment, CommentStatus.ACTIVE, Actor.MODERATOR)


def test_hidden_comment_cannot_be_deleted_by_author() -> None:
    comment = Comment(status=CommentStatus.HIDDEN.value, body="x")
    with pytest.raises(ConflictError):
        transition_comment(comment, CommentStatus.DELETED, Actor.AUTHOR)

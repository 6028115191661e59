# src/vecinu/services/lifecycle.py
"""Status state machine for posts and comments.

Allowed edges and the actor kind permitted to take each one:

    post:    active -> hidden (moderator)     hidden -> active (moderator)
             active <-> sold (author, marketplace categories only)
             active | hidden | sold -> deleted (author or moderator)
    comment: active -> hidden (moderator)     hidden -> active (moderator)
             active -> deleted (author or moderator)

``deleted`` is terminal for both.
"""

from __future__ import annotations

from enum import StrEnum

from vecinu.core.errors import AuthorizationError, ConflictError
from vecinu.models import Comment, CommentStatus, Post, PostStatus


class Actor(StrEnum):
    AUTHOR = "author"
    MODERATOR = "moderator"


_AUTHOR = frozenset({Actor.AUTHOR})
_MODERATOR = frozenset({Actor.MODERATOR})
_EITHER = frozenset({Actor.AUTHOR, Actor.MODERATOR})

POST_TRANSITIONS: dict[tuple[str, str], frozenset[Actor]] = {
    (PostStatus.ACTIVE, PostStatus.HIDDEN): _MODERATOR,
    (PostStatus.HIDDEN, PostStatus.ACTIVE): _MODERATOR,
    (PostStatus.ACTIVE, PostStatus.SOLD): _AUTHOR,
    (PostStatus.SOLD, PostStatus.ACTIVE): _AUTHOR,
    (PostStatus.ACTIVE, PostStatus.DELETED): _EITHER,
    (PostStatus.HIDDEN, PostStatus.DELETED): _EITHER,
    (PostStatus.SOLD, PostStatus.DELETED): _EITHER,
}

COMMENT_TRANSITIONS: dict[tuple[str, str], frozenset[Actor]] = {
    (CommentStatus.ACTIVE, CommentStatus.HIDDEN): _MODERATOR,
    (CommentStatus.HIDDEN, CommentStatus.ACTIVE): _MODERATOR,
    (CommentStatus.ACTIVE, CommentStatus.DELETED): _EITHER,
}

_SOLD_EDGES = {(PostStatus.ACTIVE, PostStatus.SOLD), (PostStatus.SOLD, PostStatus.ACTIVE)}


def _check(
    transitions: dict[tuple[str, str], frozenset[Actor]],
    current: str,
    target: str,
    actor: Actor,
) -> None:
    allowed = transitions.get((current, target))
    if allowed is None:
        raise ConflictError(f"Schimbarea stării din „{current}” în „{target}” nu este permisă")
    if actor not in allowed:
        raise AuthorizationError()


def transition_post(post: Post, target: PostStatus, actor: Actor) -> str:
    """Move ``post`` to ``target`` or raise.

    Returns:
        The status the post had before the change.

    Raises:
        ConflictError: The edge does not exist (e.g. hidden -> sold, anything
            out of deleted).
        AuthorizationError: The actor may not take the edge, or a sold toggle
            was attempted outside the marketplace categories.
    """
    current = post.status
    _check(POST_TRANSITIONS, current, target, actor)
    if (current, target) in _SOLD_EDGES and not post.is_marketplace:
        raise AuthorizationError("Doar anunțurile de vânzare pot fi marcate ca vândute")
    post.status = target.value
    return current


def transition_comment(comment: Comment, target: CommentStatus, actor: Actor) -> str:
    """Move ``comment`` to ``target`` or raise, returning the previous status."""
    current = comment.status
    _check(COMMENT_TRANSITIONS, current, target, actor)
    comment.status = target.value
    return current

"""Full-text-ish search over a neighborhood's posts."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from vecinu.api.dependencies import CursorDep, LimitDep, RateLimitByIp, SessionDep
from vecinu.core.errors import ValidationError
from vecinu.core.settings import settings
from vecinu.models import PostCategory
from vecinu.repositories.post_repo import PostRepository
from vecinu.schemas.common import page_meta, success_response
from vecinu.schemas.post import PostResponse
from vecinu.services.user_service import get_neighborhood_by_slug
from vecinu.utils.cursor import next_cursor, split_page

router = APIRouter(prefix="/search", tags=["search"])

MIN_QUERY_LENGTH = 2
MAX_QUERY_LENGTH = 100


@router.get("", dependencies=[Depends(RateLimitByIp("api"))])
def search_posts(
    db: SessionDep,
    q: Annotated[str, Query()],
    neighborhood: Annotated[str, Query(min_length=1, max_length=100)],
    cursor: CursorDep,
    category: PostCategory | None = None,
    limit: LimitDep = settings.pagination_default_limit,
) -> dict[str, Any]:
    """Case-insensitive substring search over active post titles and bodies."""
    term = q.strip()
    if not MIN_QUERY_LENGTH <= len(term) <= MAX_QUERY_LENGTH:
        raise ValidationError(
            details={"q": [f"Căutarea trebuie să aibă între {MIN_QUERY_LENGTH} și {MAX_QUERY_LENGTH} caractere"]}
        )

    target = get_neighborhood_by_slug(db, neighborhood)
    rows = PostRepository(db).search(
        target.id,
        term,
        category=category.value if category else None,
        cursor=cursor,
        limit=limit,
    )
    page, has_more = split_page(rows, limit)
    return success_response(
        [PostResponse.from_post(post) for post in page],
        page_meta(next_cursor(page, has_more), has_more, query=term),
    )

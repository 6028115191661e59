# src/vecinu/utils/cursor.py
"""Opaque keyset cursors for ``(created_at, id)`` ordered lists."""

from __future__ import annotations

import base64
import binascii
import json
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy import and_, or_
from sqlalchemy.sql.elements import ColumnElement

from vecinu.core.errors import ValidationError
from vecinu.db.time import as_utc

T = TypeVar("T")


@dataclass(frozen=True)
class KeysetCursor:
    """Sort key of the last row on a page.

    ``pinned`` is only set for feeds that float pinned posts to the top.
    """

    created_at: datetime
    id: uuid.UUID
    pinned: bool | None = None


def encode_cursor(created_at: datetime, row_id: uuid.UUID, pinned: bool | None = None) -> str:
    payload: dict[str, Any] = {"t": as_utc(created_at).isoformat(), "id": str(row_id)}
    if pinned is not None:
        payload["p"] = bool(pinned)
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def decode_cursor(token: str) -> KeysetCursor:
    """Decode a cursor produced by :func:`encode_cursor`.

    Raises:
        ValidationError: If the token is malformed.
    """
    padding = "=" * (-len(token) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(token + padding))
        created_at = as_utc(datetime.fromisoformat(payload["t"]))
        row_id = uuid.UUID(payload["id"])
        pinned = payload.get("p")
    except (binascii.Error, ValueError, KeyError, TypeError) as err:
        raise ValidationError(details={"cursor": ["Cursor invalid"]}) from err
    return KeysetCursor(created_at=created_at, id=row_id, pinned=pinned)


def keyset_condition(
    keys: Sequence[tuple[Any, Any]],
    *,
    descending: bool,
) -> ColumnElement[bool]:
    """Build the "strictly after" predicate for a composite sort key.

    Args:
        keys: ``(column, last_value)`` pairs in sort priority order.
        descending: Whether every key sorts descending.

    Returns:
        ``(k1 > v1) OR (k1 = v1 AND k2 > v2) OR ...`` with ``<`` when descending.
    """
    clauses = []
    for position, (column, value) in enumerate(keys):
        equal_prefix = [prefix_column == prefix_value for prefix_column, prefix_value in keys[:position]]
        step = column < value if descending else column > value
        clauses.append(and_(*equal_prefix, step))
    return or_(*clauses)


def split_page(rows: Sequence[T], limit: int) -> tuple[list[T], bool]:
    """Trim a ``limit + 1`` fetch down to a page and report whether more exist."""
    has_more = len(rows) > limit
    return list(rows[:limit]), has_more


def next_cursor(page: Sequence[Any], has_more: bool, *, with_pinned: bool = False) -> str | None:
    """Encode the cursor for the page after ``page``, or ``None`` on the last page."""
    if not has_more or not page:
        return None
    last = page[-1]
    return encode_cursor(last.created_at, last.id, last.is_pinned if with_pinned else None)

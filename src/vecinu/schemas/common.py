"""Shared Pydantic schemas and the response envelope."""

from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema exchanging camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PageMeta(CamelModel):
    """Cursor pagination metadata returned under ``meta``."""

    cursor: str | None = None
    has_more: bool = False


def success_response(data: Any, meta: dict[str, Any] | BaseModel | None = None) -> dict[str, Any]:
    """Wrap ``data`` in the ``{data, meta?}`` envelope.

    ``None`` values inside ``meta`` are dropped so an exhausted page carries no
    cursor key at all.
    """
    body: dict[str, Any] = {"data": jsonable_encoder(data)}
    if meta is not None:
        encoded = jsonable_encoder(meta)
        body["meta"] = {key: value for key, value in encoded.items() if value is not None}
    return body


def page_meta(cursor: str | None, has_more: bool, **extra: Any) -> dict[str, Any]:
    return {"cursor": cursor, "hasMore": has_more, **extra}

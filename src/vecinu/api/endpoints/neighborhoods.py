"""Neighborhood directory endpoint."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Query

from vecinu.api.dependencies import SessionDep
from vecinu.schemas.common import success_response
from vecinu.schemas.user import NeighborhoodResponse
from vecinu.services import user_service

router = APIRouter(prefix="/neighborhoods", tags=["neighborhoods"])


@router.get("")
def list_neighborhoods(
    db: SessionDep,
    city: Annotated[str | None, Query(max_length=100)] = None,
) -> dict[str, Any]:
    neighborhoods = user_service.list_neighborhoods(db, city)
    return success_response([NeighborhoodResponse.model_validate(item) for item in neighborhoods])

"""Report submission endpoint for the Vecinu API."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Response, status

from vecinu.api.dependencies import CurrentUserDep, SessionDep, verify_origin
from vecinu.schemas.common import success_response
from vecinu.schemas.moderation import ReportCreate, ReportSubmitResult
from vecinu.services.report_service import submit_report

router = APIRouter(prefix="/reports", tags=["reports"], dependencies=[Depends(verify_origin)])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_report(
    data: ReportCreate,
    db: SessionDep,
    current_user: CurrentUserDep,
    response: Response,
) -> dict[str, Any]:
    """Report a post, comment or user.

    Repeating a report while the first is still open returns the existing one
    with status 200.
    """
    outcome = submit_report(db, current_user, data)
    if not outcome.created:
        response.status_code = status.HTTP_200_OK
    return success_response(
        ReportSubmitResult(message=outcome.message, report_id=outcome.report.id)
    )

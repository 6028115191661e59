"""API error taxonomy and the handlers that render it.

Every failure leaving the API is one of the ``ApiError`` subclasses below,
rendered as ``{"error": message, "code": code, "details"?: {...}}``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

INVALID_DATA_MESSAGE = "Datele introduse nu sunt valide"

# Location prefixes FastAPI adds to request validation errors.
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


class ApiError(Exception):
    """Base class for errors with an HTTP status and a machine-readable code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    default_message: str = "A apărut o eroare internă"

    def __init__(self, message: str | None = None, *, details: dict[str, list[str]] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = INVALID_DATA_MESSAGE


class AuthenticationError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "AUTHENTICATION_ERROR"
    default_message = "Trebuie să fii autentificat"


class AuthorizationError(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "AUTHORIZATION_ERROR"
    default_message = "Nu ai permisiunea să faci această acțiune"


class NotFoundError(ApiError):
    """Raised when a resource is missing or excluded from reads (e.g. deleted)."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resursa nu a fost găsită"

    def __init__(self, resource: str = "Resursa"):
        super().__init__(f"{resource} nu a fost găsită")


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    default_message = "Operațiunea intră în conflict cu starea curentă"


class RateLimitError(ApiError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMIT"
    default_message = "Prea multe cereri. Încearcă din nou mai târziu."

    def __init__(self, message: str | None = None, *, retry_after: int | None = None):
        super().__init__(message)
        self.retry_after = retry_after


class InternalServerError(ApiError):
    pass


_HTTP_STATUS_CODES = {
    status.HTTP_400_BAD_REQUEST: ValidationError,
    status.HTTP_401_UNAUTHORIZED: AuthenticationError,
    status.HTTP_403_FORBIDDEN: AuthorizationError,
    status.HTTP_404_NOT_FOUND: NotFoundError,
    status.HTTP_409_CONFLICT: ConflictError,
    status.HTTP_429_TOO_MANY_REQUESTS: RateLimitError,
}


def format_validation_details(errors: list[dict[str, Any]]) -> dict[str, list[str]]:
    """Group pydantic error entries by dotted field path.

    Args:
        errors: Entries as returned by ``ValidationError.errors()``.

    Returns:
        Mapping of field path to the messages reported for it.
    """
    details: dict[str, list[str]] = {}
    for error in errors:
        location = [str(part) for part in error.get("loc", ())]
        if location and location[0] in _LOCATION_PREFIXES:
            location = location[1:]
        field = ".".join(location) or "_"
        details.setdefault(field, []).append(str(error.get("msg", "invalid")))
    return details


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    headers = None
    if isinstance(exc, RateLimitError) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Server error on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError | PydanticValidationError,
) -> JSONResponse:
    error = ValidationError(details=format_validation_details(list(exc.errors())))
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error_cls = _HTTP_STATUS_CODES.get(exc.status_code)
    if error_cls is None:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail), "code": "HTTP_ERROR"},
            headers=getattr(exc, "headers", None),
        )
    if error_cls is NotFoundError:
        error: ApiError = NotFoundError()
    else:
        error = error_cls(str(exc.detail) if exc.detail else None)
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InternalServerError()
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error handlers to ``app``."""
    app.add_exception_handler(ApiError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PydanticValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = [
    "ApiError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "InternalServerError",
    "format_validation_details",
    "register_exception_handlers",
]

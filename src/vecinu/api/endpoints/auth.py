# src/vecinu/api/endpoints/auth.py
"""Authentication endpoints backed by the identity provider."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Response, status

from vecinu.api.dependencies import (
    CurrentUserDep,
    IdentityDep,
    RateLimitByIp,
    SessionDep,
    SessionTokenDep,
    verify_origin,
)
from vecinu.core.errors import (
    ApiError,
    AuthenticationError,
    ConflictError,
    InternalServerError,
    ValidationError,
)
from vecinu.core.settings import settings
from vecinu.schemas.common import success_response
from vecinu.schemas.user import (
    LoginRequest,
    RegisterRequest,
    ResendVerificationRequest,
    UserResponse,
)
from vecinu.services import user_service
from vecinu.services.identity import IdentityError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"], dependencies=[Depends(verify_origin)])

INVALID_CREDENTIALS_MESSAGE = "Email sau parolă incorectă"
VERIFICATION_SENT_MESSAGE = "Dacă adresa există, vei primi un email de confirmare"


def _provider_failure(exc: IdentityError) -> ApiError:
    """Map a provider failure onto the API error taxonomy."""
    if exc.is_client_error:
        return ValidationError(str(exc))
    logger.error("Identity provider failure: %s", exc)
    return InternalServerError("Serviciul de autentificare nu este disponibil")


def _set_session_cookie(response: Response, token: str, max_age: int) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
        path="/",
    )


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimitByIp("auth"))],
)
async def register(data: RegisterRequest, db: SessionDep, identity: IdentityDep) -> dict[str, Any]:
    """Create the account at the provider, then the local profile.

    The provider sends the verification email.
    """
    email = data.email.lower()
    if user_service.get_user_by_email(db, email) is not None:
        raise ConflictError("Această adresă de email este deja folosită")

    try:
        await identity.sign_up(email, data.password, full_name=data.full_name)
    except IdentityError as exc:
        raise _provider_failure(exc) from exc

    user = user_service.create_user(db, email=email, full_name=data.full_name)
    logger.info("Registered user %s", user.id)
    return success_response(
        {
            "user": UserResponse.from_user(user),
            "message": "Cont creat. Verifică-ți emailul pentru a-l activa",
        }
    )


@router.post("/login", dependencies=[Depends(RateLimitByIp("auth"))])
async def login(
    data: LoginRequest,
    db: SessionDep,
    identity: IdentityDep,
    response: Response,
) -> dict[str, Any]:
    """Sign in with email and password and set the session cookie."""
    email = data.email.lower()
    user = user_service.get_user_by_email(db, email)
    if user is not None and user.is_banned:
        raise AuthenticationError(
            f"Contul tău a fost suspendat. Motiv: {user.banned_reason or 'nespecificat'}"
        )

    try:
        session = await identity.sign_in_with_password(email, data.password)
    except IdentityError as exc:
        if exc.is_client_error:
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE) from exc
        raise _provider_failure(exc) from exc

    if user is None:
        raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

    user_service.touch_last_active(db, user, email_confirmed=session.email_confirmed)
    _set_session_cookie(
        response,
        session.access_token,
        min(session.expires_in, settings.session_cookie_max_age_seconds),
    )
    return success_response(
        {
            "user": UserResponse.from_user(user),
            "session": {"accessToken": session.access_token, "expiresIn": session.expires_in},
        }
    )


@router.post("/logout")
async def logout(token: SessionTokenDep, identity: IdentityDep, response: Response) -> dict[str, Any]:
    """Revoke the session at the provider and clear the cookie."""
    if token and identity.enabled:
        try:
            await identity.sign_out(token)
        except IdentityError as exc:
            logger.warning("Provider sign-out failed: %s", exc)
    response.delete_cookie(settings.session_cookie_name, path="/")
    return success_response({"loggedOut": True})


@router.get("/me")
def read_me(current_user: CurrentUserDep) -> dict[str, Any]:
    return success_response(UserResponse.from_user(current_user))


@router.post("/resend-verification", dependencies=[Depends(RateLimitByIp("auth"))])
async def resend_verification(data: ResendVerificationRequest, identity: IdentityDep) -> dict[str, Any]:
    """Ask the provider to resend the sign-up confirmation email.

    The reply is the same whether or not the address is known.
    """
    try:
        await identity.resend_verification(data.email.lower())
    except IdentityError as exc:
        if not exc.is_client_error:
            raise _provider_failure(exc) from exc
        logger.info("Verification resend rejected: %s", exc)
    return success_response({"message": VERIFICATION_SENT_MESSAGE})

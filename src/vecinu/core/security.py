"""Verification of provider-issued session tokens."""
from __future__ import annotations

from typing import Any

from jose import JWTError, jwt

from vecinu.core.errors import AuthenticationError
from vecinu.core.settings import settings

INVALID_SESSION_MESSAGE = "Sesiunea a expirat. Autentifică-te din nou"


def decode_session_token(token: str) -> dict[str, Any]:
    """Verify an HS256 access token and return its claims.

    Args:
        token: Raw JWT from the ``Authorization`` header or the session cookie.

    Returns:
        The decoded claims; ``email`` is always present and lower-cased.

    Raises:
        AuthenticationError: If the signature, audience or expiry is invalid,
            or the token carries no email claim.
    """
    try:
        payload = jwt.decode(
            token,
            settings.identity_jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except JWTError as err:
        raise AuthenticationError(INVALID_SESSION_MESSAGE) from err

    email = payload.get("email")
    if not email:
        raise AuthenticationError(INVALID_SESSION_MESSAGE)
    payload["email"] = str(email).lower()
    return payload

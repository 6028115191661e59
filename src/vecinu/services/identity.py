"""HTTP client for the external identity/session provider.

The provider speaks the GoTrue REST dialect: it owns credentials, sends
verification emails and issues the JWT access tokens the API accepts as
sessions.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from vecinu.core.settings import settings

logger = logging.getLogger(__name__)

HTTP_BAD_REQUEST = 400
HTTP_UNPROCESSABLE = 422


class IdentityError(RuntimeError):
    """Raised when the identity provider rejects or fails a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and HTTP_BAD_REQUEST <= self.status_code < 500


class IdentityDisabledError(IdentityError):
    """Raised when no identity provider URL is configured."""


@dataclass
class IdentitySession:
    """Session issued by the provider after a successful sign-in."""

    access_token: str
    refresh_token: str | None
    expires_in: int
    email: str
    email_confirmed: bool


@dataclass
class IdentityConfig:
    base_url: str | None
    anon_key: str | None
    timeout_seconds: float


def load_identity_config() -> IdentityConfig:
    return IdentityConfig(
        base_url=settings.identity_url,
        anon_key=settings.identity_anon_key,
        timeout_seconds=settings.identity_timeout_seconds,
    )


class IdentityClient:
    """Async wrapper around the provider's auth endpoints."""

    def __init__(
        self,
        config: IdentityConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_identity_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return bool(self.config.base_url)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise IdentityDisabledError("Identity provider is not configured")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url or "",
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.anon_key:
            headers["apikey"] = self.config.anon_key
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_data: Any | None = None,
        params: dict[str, str] | None = None,
        access_token: str | None = None,
    ) -> httpx.Response:
        client = await self._ensure_client()
        try:
            response = await client.request(
                method,
                path,
                json=json_data,
                params=params,
                headers=self._headers(access_token),
            )
        except httpx.HTTPError as exc:
            raise IdentityError(f"Identity provider request failed: {exc}") from exc

        if response.is_error:
            raise IdentityError(_error_message(response), status_code=response.status_code)
        return response

    async def sign_up(self, email: str, password: str, *, full_name: str) -> dict[str, Any]:
        """Create an account; the provider sends the verification email."""
        response = await self._request(
            "POST",
            "/auth/v1/signup",
            json_data={"email": email, "password": password, "data": {"full_name": full_name}},
        )
        return dict(response.json())

    async def sign_in_with_password(self, email: str, password: str) -> IdentitySession:
        response = await self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json_data={"email": email, "password": password},
        )
        payload = response.json()
        user = payload.get("user") or {}
        return IdentitySession(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_in=int(payload.get("expires_in", 3600)),
            email=str(user.get("email", email)).lower(),
            email_confirmed=bool(user.get("email_confirmed_at")),
        )

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/auth/v1/logout", access_token=access_token)

    async def resend_verification(self, email: str) -> None:
        await self._request("POST", "/auth/v1/resend", json_data={"type": "signup", "email": email})

    async def get_user(self, access_token: str) -> dict[str, Any]:
        response = await self._request("GET", "/auth/v1/user", access_token=access_token)
        return dict(response.json())

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"Identity provider responded with {response.status_code}"
    if isinstance(payload, dict):
        for key in ("msg", "error_description", "message", "error"):
            if payload.get(key):
                return str(payload[key])
    return f"Identity provider responded with {response.status_code}"

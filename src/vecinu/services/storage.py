"""Object storage client for post images."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass

import httpx

from vecinu.core.errors import ValidationError
from vecinu.core.settings import settings

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


class StorageError(RuntimeError):
    """Raised when the storage service rejects or fails a request."""


@dataclass
class StoredImage:
    url: str
    thumbnail_url: str
    path: str
    size_bytes: int


@dataclass
class StorageConfig:
    base_url: str | None
    service_key: str | None
    bucket: str
    timeout_seconds: float
    max_bytes: int
    allowed_types: tuple[str, ...]


def load_storage_config() -> StorageConfig:
    return StorageConfig(
        base_url=settings.storage_url,
        service_key=settings.storage_service_key,
        bucket=settings.storage_bucket,
        timeout_seconds=settings.storage_timeout_seconds,
        max_bytes=settings.image_max_bytes,
        allowed_types=tuple(settings.image_allowed_types),
    )


class StorageClient:
    """Uploads to and deletes from a storage bucket with public read URLs."""

    def __init__(
        self,
        config: StorageConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_storage_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return bool(self.config.base_url)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise StorageError("Object storage is not configured")
        async with self._client_lock:
            if self._client is None:
                headers = {}
                if self.config.service_key:
                    headers["Authorization"] = f"Bearer {self.config.service_key}"
                    headers["apikey"] = self.config.service_key
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url or "",
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    headers=headers,
                    transport=self._transport,
                )
        return self._client

    def validate_image(self, content_type: str | None, size_bytes: int) -> None:
        """Reject files over the size limit or of an unsupported type.

        Raises:
            ValidationError: With a ``file`` detail describing the problem.
        """
        if size_bytes > self.config.max_bytes:
            limit_mb = self.config.max_bytes // (1024 * 1024)
            raise ValidationError(
                f"Imaginea este prea mare. Mărimea maximă este {limit_mb}MB",
                details={"file": ["FILE_TOO_LARGE"]},
            )
        if content_type not in self.config.allowed_types:
            raise ValidationError(
                "Format invalid. Folosește JPG, PNG, WebP sau GIF",
                details={"file": ["INVALID_FILE_TYPE"]},
            )

    def public_url(self, path: str) -> str:
        base = (self.config.base_url or "").rstrip("/")
        return f"{base}/storage/v1/object/public/{self.config.bucket}/{path}"

    @staticmethod
    def thumbnail_url(public_url: str) -> str:
        return f"{public_url}?width=400&height=300"

    def path_from_url(self, url: str) -> str | None:
        marker = f"/{self.config.bucket}/"
        if marker not in url:
            return None
        return url.split(marker, 1)[1].split("?", 1)[0]

    async def upload_post_image(self, owner_id: uuid.UUID, content: bytes, content_type: str) -> StoredImage:
        """Validate and upload an image under ``{owner_id}/``."""
        self.validate_image(content_type, len(content))
        client = await self._ensure_client()
        path = f"{owner_id}/{uuid.uuid4()}.{_EXTENSIONS[content_type]}"
        try:
            response = await client.post(
                f"/storage/v1/object/{self.config.bucket}/{path}",
                content=content,
                headers={
                    "Content-Type": content_type,
                    "cache-control": "3600",
                    "x-upsert": "false",
                },
            )
        except httpx.HTTPError as exc:
            raise StorageError(f"Upload failed: {exc}") from exc
        if response.is_error:
            raise StorageError(f"Upload rejected with status {response.status_code}")

        url = self.public_url(path)
        return StoredImage(
            url=url,
            thumbnail_url=self.thumbnail_url(url),
            path=path,
            size_bytes=len(content),
        )

    async def delete_images(self, urls: list[str]) -> None:
        """Remove stored images; failures are logged, never raised."""
        paths = [path for path in (self.path_from_url(url) for url in urls) if path]
        if not paths or not self.enabled:
            return
        try:
            client = await self._ensure_client()
            response = await client.request(
                "DELETE",
                f"/storage/v1/object/{self.config.bucket}",
                json={"prefixes": paths},
            )
            if response.is_error:
                logger.error("Image delete rejected with status %s", response.status_code)
        except (httpx.HTTPError, StorageError) as exc:
            logger.error("Image delete failed: %s", exc)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

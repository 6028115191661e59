# mypy: ignore-errors
"""Tests for the object storage client."""

import json
import uuid

import httpx
import pytest

from vecinu.core.errors import ValidationError
from vecinu.services.storage import StorageClient, StorageConfig, StorageError

OWNER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")


def _config(**overrides) -> StorageConfig:
    values = {
        "base_url": "https://storage.test",
        "service_key": "service-key",
        "bucket": "post-images",
        "timeout_seconds": 5,
        "max_bytes": 1024,
        "allowed_types": ("image/jpeg", "image/png"),
    }
    values.update(overrides)
    return StorageConfig(**values)


def _client(handler, **overrides) -> StorageClient:
    return StorageClient(_config(**overrides), transport=httpx.MockTransport(handler))


def test_validate_image_rejects_large_files() -> None:
    client = StorageClient(_config())
    with pytest.raises(ValidationError) as excinfo:
        client.validate_image("image/jpeg", 2048)
    assert excinfo.value.details == {"file": ["FILE_TOO_LARGE"]}


def test_validate_image_rejects_unknown_types() -> None:
    client = StorageClient(_config())
    with pytest.raises(ValidationError) as excinfo:
        client.validate_image("application/pdf", 10)
    assert excinfo.value.details == {"file": ["INVALID_FILE_TYPE"]}


def test_path_from_url() -> None:
    client = StorageClient(_config())
    url = client.public_url("owner/photo.jpg")
    assert url == "https://storage.test/storage/v1/object/public/post-images/owner/photo.jpg"
    assert client.path_from_url(client.thumbnail_url(url)) == "owner/photo.jpg"
    assert client.path_from_url("https://elsewhere.test/photo.jpg") is None


@pytest.mark.asyncio
async def test_upload_post_image() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["content_type"] = request.headers["content-type"]
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(200, json={"Key": "ok"})

    client = _client(handler)
    stored = await client.upload_post_image(OWNER_ID, b"\xff\xd8\xff", "image/jpeg")
    await client.close()

    assert seen["path"].startswith(f"/storage/v1/object/post-images/{OWNER_ID}/")
    assert seen["path"].endswith(".jpg")
    assert seen["content_type"] == "image/jpeg"
    assert seen["auth"] == "Bearer service-key"
    assert stored.path.startswith(f"{OWNER_ID}/")
    assert stored.thumbnail_url == f"{stored.url}?width=400&height=300"
    assert stored.size_bytes == 3


@pytest.mark.asyncio
async def test_upload_validates_before_sending() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(ValidationError):
        await _client(handler).upload_post_image(OWNER_ID, b"x" * 2048, "image/jpeg")


@pytest.mark.asyncio
async def test_upload_rejected_by_storage() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(413)

    with pytest.raises(StorageError):
        await _client(handler).upload_post_image(OWNER_ID, b"\x89PNG", "image/png")


@pytest.mark.asyncio
async def test_upload_without_storage_configured() -> None:
    client = StorageClient(_config(base_url=None))
    with pytest.raises(StorageError):
        await client.upload_post_image(OWNER_ID, b"\xff\xd8", "image/jpeg")


@pytest.mark.asyncio
async def test_delete_images_sends_prefixes() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[])

    client = _client(handler)
    await client.delete_images(
        [
            client.public_url("owner/a.jpg"),
            "https://elsewhere.test/ignored.jpg",
        ]
    )
    assert seen == {"method": "DELETE", "body": {"prefixes": ["owner/a.jpg"]}}


@pytest.mark.asyncio
async def test_delete_images_swallows_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    await client.delete_images([client.public_url("owner/a.jpg")])

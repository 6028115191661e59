# mypy: ignore-errors
# tests/v1/test_posts.py
"""Tests for post-related endpoints."""

import json
from datetime import timedelta

import pytest
import redis
from fastapi import status
from sqlalchemy import select

from vecinu.db.time import utcnow
from vecinu.models import AuditLog, Notification, NotificationType, Post, PostCategory, PostImage, SavedPost
from vecinu.services.storage import StorageError, StoredImage


def _create_payload(**overrides):
    payload = {
        "title": "Bicicletă de vânzare",
        "body": "Vând bicicletă de oraș, stare foarte bună.",
        "category": "SELL",
        "priceCents": 15000,
    }
    payload.update(overrides)
    return payload


def test_create_post_success(client, test_user, auth_token) -> None:
    """Creating a marketplace post stores it active with an expiry date."""
    response = client.post("/api/posts", json=_create_payload(), headers=auth_token)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()["data"]
    assert data["status"] == "active"
    assert data["category"] == "SELL"
    assert data["priceCents"] == 15000
    assert data["currency"] == "RON"
    assert data["expiresAt"] is not None
    assert data["author"]["id"] == str(test_user.id)
    assert data["commentCount"] == 0


def test_create_post_non_marketplace_has_no_expiry(client, auth_token) -> None:
    response = client.post(
        "/api/posts",
        json=_create_payload(category="QUESTION", priceCents=None),
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["data"]["expiresAt"] is None


def test_create_post_free_clears_price(client, auth_token) -> None:
    response = client.post("/api/posts", json=_create_payload(isFree=True), headers=auth_token)
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()["data"]
    assert data["isFree"] is True
    assert data["priceCents"] is None


def test_create_post_strips_html(client, auth_token) -> None:
    """Markup is removed from titles and bodies; script contents are dropped."""
    response = client.post(
        "/api/posts",
        json=_create_payload(
            title="<b>Ofertă</b>",
            body="<script>alert('x')</script><p>Vând canapea extensibilă, puțin folosită.</p>",
        ),
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()["data"]
    assert data["title"] == "Ofertă"
    assert data["body"] == "Vând canapea extensibilă, puțin folosită."


def test_create_post_body_too_short(client, auth_token) -> None:
    """Validation failures come back as VALIDATION_ERROR with field details."""
    response = client.post("/api/posts", json=_create_payload(body="scurt"), headers=auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    payload = response.json()
    assert payload["code"] == "VALIDATION_ERROR"
    assert "body" in payload["details"]


def test_create_post_requires_authentication(client) -> None:
    response = client.post("/api/posts", json=_create_payload())
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["code"] == "AUTHENTICATION_ERROR"


def test_create_post_without_neighborhood(client, user_factory, auth_headers) -> None:
    """Users must pick a neighborhood before posting."""
    drifter = user_factory(neighborhood=None)
    response = client.post("/api/posts", json=_create_payload(), headers=auth_headers(drifter))
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["code"] == "AUTHORIZATION_ERROR"


def test_create_post_banned_user(client, db_session, test_user, auth_token) -> None:
    """Banned users are stopped before any write."""
    test_user.is_banned = True
    test_user.banned_reason = "Spam repetat"
    db_session.flush()

    response = client.post("/api/posts", json=_create_payload(), headers=auth_token)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"] == "Contul tău a fost suspendat"
    assert db_session.scalar(select(Post)) is None


def test_create_post_invalidates_feed_cache(client, auth_token, mock_redis) -> None:
    mock_redis.keys.return_value = ["feed:nbh:fabric", "feed:cat:SELL:nbh:fabric"]

    response = client.post("/api/posts", json=_create_payload(), headers=auth_token)
    assert response.status_code == status.HTTP_201_CREATED
    mock_redis.keys.assert_called_with("feed:*")
    mock_redis.delete.assert_called_with("feed:nbh:fabric", "feed:cat:SELL:nbh:fabric")


def test_feed_lists_active_posts_pinned_first(client, test_user, post_factory) -> None:
    older = post_factory(test_user, created_at=utcnow() - timedelta(hours=2))
    newer = post_factory(test_user, created_at=utcnow() - timedelta(hours=1))
    pinned = post_factory(test_user, created_at=utcnow() - timedelta(days=3), is_pinned=True)
    post_factory(test_user, status="hidden")
    post_factory(test_user, status="deleted")

    response = client.get("/api/posts", params={"neighborhood": "fabric"})
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert [item["id"] for item in body["data"]] == [str(pinned.id), str(newer.id), str(older.id)]
    assert body["meta"] == {"hasMore": False}


def test_feed_filters_by_category(client, test_user, post_factory) -> None:
    post_factory(test_user, category=PostCategory.ALERT, title="Apă oprită")
    post_factory(test_user, category=PostCategory.EVENT, title="Concert în parc")

    response = client.get("/api/posts", params={"neighborhood": "fabric", "category": "ALERT"})
    assert response.status_code == status.HTTP_200_OK
    assert [item["title"] for item in response.json()["data"]] == ["Apă oprită"]


def test_feed_scoped_to_neighborhood(
    client, db_session, test_user, other_neighborhood, user_factory, post_factory
) -> None:
    outsider = user_factory(neighborhood=other_neighborhood)
    post_factory(outsider)
    post_factory(test_user)

    response = client.get("/api/posts", params={"neighborhood": "iosefin"})
    assert len(response.json()["data"]) == 1
    assert response.json()["data"][0]["author"]["id"] == str(outsider.id)


def test_feed_requires_neighborhood(client) -> None:
    response = client.get("/api/posts")
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "neighborhood" in response.json()["details"]


def test_feed_unknown_neighborhood(client) -> None:
    response = client.get("/api/posts", params={"neighborhood": "nicaieri"})
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["code"] == "NOT_FOUND"


def test_feed_pagination_with_equal_timestamps(client, test_user, post_factory) -> None:
    """Rows sharing created_at are neither skipped nor repeated across pages."""
    shared = utcnow() - timedelta(minutes=5)
    created = {str(post_factory(test_user, created_at=shared).id) for _ in range(5)}

    seen: list[str] = []
    cursor = None
    for _ in range(5):
        params = {"neighborhood": "fabric", "limit": 2}
        if cursor:
            params["cursor"] = cursor
        body = client.get("/api/posts", params=params).json()
        seen.extend(item["id"] for item in body["data"])
        cursor = body["meta"].get("cursor")
        if not body["meta"]["hasMore"]:
            break

    assert len(seen) == len(set(seen)) == 5
    assert set(seen) == created


def test_feed_rejects_malformed_cursor(client) -> None:
    response = client.get("/api/posts", params={"neighborhood": "fabric", "cursor": "!!nope"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "cursor" in response.json()["details"]


def test_feed_first_page_is_cached(client, test_user, post_factory, mock_redis) -> None:
    post_factory(test_user)

    response = client.get("/api/posts", params={"neighborhood": "fabric"})
    assert response.status_code == status.HTTP_200_OK
    key, raw = mock_redis.set.call_args.args
    assert key == "feed:nbh:fabric"
    assert mock_redis.set.call_args.kwargs == {"ex": 300}
    assert json.loads(raw) == response.json()


def test_feed_served_from_cache_on_hit(client, mock_redis) -> None:
    cached = {"data": [{"id": "cached"}], "meta": {"hasMore": False}}
    mock_redis.get.return_value = json.dumps(cached)

    response = client.get("/api/posts", params={"neighborhood": "fabric"})
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == cached


def test_feed_falls_back_when_cache_fails(client, test_user, post_factory, mock_redis) -> None:
    """A Redis outage never fails the feed."""
    post_factory(test_user)
    mock_redis.get.side_effect = redis.ConnectionError("down")
    mock_redis.set.side_effect = redis.ConnectionError("down")

    response = client.get("/api/posts", params={"neighborhood": "fabric"})
    assert response.status_code == status.HTTP_200_OK
    assert len(response.json()["data"]) == 1


def test_paginated_feed_pages_are_not_cached(client, test_user, post_factory, mock_redis) -> None:
    post_factory(test_user)
    client.get("/api/posts", params={"neighborhood": "fabric", "limit": 5})
    mock_redis.set.assert_not_called()


def test_get_post_increments_view_count(client, db_session, test_post) -> None:
    response = client.get(f"/api/posts/{test_post.id}")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["id"] == str(test_post.id)
    assert data["neighborhood"]["slug"] == "fabric"

    db_session.refresh(test_post)
    assert test_post.view_count == 1


def test_hidden_post_only_visible_to_author_and_staff(
    client, db_session, test_post, auth_token, other_auth_token, moderator_token
) -> None:
    test_post.status = "hidden"
    db_session.flush()

    assert client.get(f"/api/posts/{test_post.id}").status_code == status.HTTP_404_NOT_FOUND
    assert (
        client.get(f"/api/posts/{test_post.id}", headers=other_auth_token).status_code
        == status.HTTP_404_NOT_FOUND
    )
    assert client.get(f"/api/posts/{test_post.id}", headers=auth_token).status_code == status.HTTP_200_OK
    assert (
        client.get(f"/api/posts/{test_post.id}", headers=moderator_token).status_code
        == status.HTTP_200_OK
    )


def test_update_post_by_author(client, test_post, auth_token) -> None:
    response = client.patch(
        f"/api/posts/{test_post.id}",
        json={"title": "Titlu nou", "body": "Conținut actualizat al postării."},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"]["title"] == "Titlu nou"


def test_update_post_by_other_user_forbidden(client, test_post, other_auth_token) -> None:
    response = client.patch(
        f"/api/posts/{test_post.id}",
        json={"title": "Deturnat"},
        headers=other_auth_token,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_update_post_rejects_hidden_status(client, test_post, auth_token) -> None:
    """Authors may only request active or sold."""
    response = client.patch(
        f"/api/posts/{test_post.id}",
        json={"status": "hidden"},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.parametrize("field", ["body", "category", "isFree"])
def test_update_post_rejects_null_for_required_fields(client, db_session, sell_post, auth_token, field) -> None:
    response = client.patch(f"/api/posts/{sell_post.id}", json={field: None}, headers=auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert field in response.json()["details"]

    db_session.refresh(sell_post)
    assert sell_post.category == "SELL"
    assert sell_post.is_free is False


def test_update_post_out_of_marketplace_clears_listing_fields(client, sell_post, auth_token) -> None:
    response = client.patch(f"/api/posts/{sell_post.id}", json={"category": "QUESTION"}, headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["category"] == "QUESTION"
    assert data["priceCents"] is None
    assert data["expiresAt"] is None


def test_update_post_into_marketplace_sets_expiry(client, test_post, auth_token) -> None:
    response = client.patch(
        f"/api/posts/{test_post.id}",
        json={"category": "SELL", "priceCents": 5000},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["priceCents"] == 5000
    assert data["expiresAt"] is not None


def test_sold_post_cannot_leave_marketplace(client, db_session, sell_post, auth_token) -> None:
    """A sold listing keeps a marketplace category so it can be toggled back."""
    client.patch(f"/api/posts/{sell_post.id}/sold", headers=auth_token)

    response = client.patch(f"/api/posts/{sell_post.id}", json={"category": "QUESTION"}, headers=auth_token)
    assert response.status_code == status.HTTP_409_CONFLICT

    db_session.refresh(sell_post)
    assert sell_post.status == "sold"
    assert sell_post.category == "SELL"

    back = client.patch(f"/api/posts/{sell_post.id}/sold", headers=auth_token)
    assert back.status_code == status.HTTP_200_OK
    assert back.json()["data"]["status"] == "active"


def test_sold_toggle_round_trip(client, sell_post, auth_token) -> None:
    """Toggling twice returns a listing to active."""
    first = client.patch(f"/api/posts/{sell_post.id}/sold", headers=auth_token)
    assert first.status_code == status.HTTP_200_OK
    assert first.json()["data"]["status"] == "sold"

    second = client.patch(f"/api/posts/{sell_post.id}/sold", headers=auth_token)
    assert second.status_code == status.HTTP_200_OK
    assert second.json()["data"]["status"] == "active"


def test_sold_toggle_outside_marketplace_forbidden(client, test_post, auth_token) -> None:
    response = client.patch(f"/api/posts/{test_post.id}/sold", headers=auth_token)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_sold_toggle_on_hidden_post_conflicts(client, db_session, sell_post, auth_token) -> None:
    sell_post.status = "hidden"
    db_session.flush()

    response = client.patch(f"/api/posts/{sell_post.id}/sold", headers=auth_token)
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["code"] == "CONFLICT"


def test_sold_toggle_notifies_savers(
    client, db_session, sell_post, test_user, other_user, auth_token, other_auth_token
) -> None:
    assert client.post(f"/api/posts/{sell_post.id}/save", headers=other_auth_token).status_code == 200
    assert client.post(f"/api/posts/{sell_post.id}/save", headers=auth_token).status_code == 200

    client.patch(f"/api/posts/{sell_post.id}/sold", headers=auth_token)

    notifications = db_session.scalars(select(Notification)).all()
    assert len(notifications) == 1
    assert notifications[0].user_id == other_user.id
    assert notifications[0].type == NotificationType.POST_SOLD


def test_delete_post_by_author(client, db_session, test_post, auth_token) -> None:
    response = client.delete(f"/api/posts/{test_post.id}", headers=auth_token)
    assert response.status_code == status.HTTP_200_OK

    db_session.refresh(test_post)
    assert test_post.status == "deleted"
    assert client.get(f"/api/posts/{test_post.id}").status_code == status.HTTP_404_NOT_FOUND
    assert db_session.scalar(select(AuditLog)) is None


def test_delete_post_by_other_user_forbidden(client, test_post, other_auth_token) -> None:
    response = client.delete(f"/api/posts/{test_post.id}", headers=other_auth_token)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_delete_post_by_moderator_is_audited(client, db_session, test_post, moderator, moderator_token) -> None:
    response = client.delete(f"/api/posts/{test_post.id}", headers=moderator_token)
    assert response.status_code == status.HTTP_200_OK

    entry = db_session.scalar(select(AuditLog))
    assert entry.action == "delete_post"
    assert entry.admin_id == moderator.id
    assert entry.target_id == test_post.id


def test_deleted_post_cannot_be_restored(client, db_session, sell_post, auth_token) -> None:
    client.delete(f"/api/posts/{sell_post.id}", headers=auth_token)
    response = client.patch(f"/api/posts/{sell_post.id}/sold", headers=auth_token)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_delete_post_removes_stored_images(
    client, db_session, test_post, auth_token, storage_client
) -> None:
    db_session.add(PostImage(post_id=test_post.id, url="https://cdn.test/post-images/a.jpg", position=0))
    db_session.flush()
    db_session.expire(test_post)

    client.delete(f"/api/posts/{test_post.id}", headers=auth_token)
    storage_client.delete_images.assert_awaited_once_with(["https://cdn.test/post-images/a.jpg"])


def test_save_and_unsave_post(client, db_session, test_post, other_auth_token) -> None:
    url = f"/api/posts/{test_post.id}/save"
    assert client.get(url, headers=other_auth_token).json()["data"] == {"saved": False}

    assert client.post(url, headers=other_auth_token).json()["data"] == {"saved": True}
    assert client.post(url, headers=other_auth_token).json()["data"] == {"saved": True}
    assert len(db_session.scalars(select(SavedPost)).all()) == 1
    assert client.get(url, headers=other_auth_token).json()["data"] == {"saved": True}

    assert client.delete(url, headers=other_auth_token).json()["data"] == {"saved": False}
    assert db_session.scalar(select(SavedPost)) is None


def test_save_requires_active_post(client, db_session, sell_post, other_auth_token) -> None:
    sell_post.status = "sold"
    db_session.flush()
    response = client.post(f"/api/posts/{sell_post.id}/save", headers=other_auth_token)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_list_saved_posts(client, test_post, sell_post, other_auth_token) -> None:
    client.post(f"/api/posts/{test_post.id}/save", headers=other_auth_token)
    client.post(f"/api/posts/{sell_post.id}/save", headers=other_auth_token)

    response = client.get("/api/posts/saved", headers=other_auth_token)
    assert response.status_code == status.HTTP_200_OK
    ids = {item["id"] for item in response.json()["data"]}
    assert ids == {str(test_post.id), str(sell_post.id)}


def test_upload_image(client, test_post, test_user, auth_token, storage_client) -> None:
    storage_client.upload_post_image.return_value = StoredImage(
        url="https://cdn.test/storage/v1/object/public/post-images/u/1.jpg",
        thumbnail_url="https://cdn.test/storage/v1/object/public/post-images/u/1.jpg?width=400&height=300",
        path="u/1.jpg",
        size_bytes=4,
    )

    response = client.post(
        f"/api/posts/{test_post.id}/images",
        files={"file": ("photo.jpg", b"\xff\xd8\xff\xe0", "image/jpeg")},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()["data"]
    assert data["thumbnailUrl"].endswith("?width=400&height=300")
    assert data["position"] == 0
    storage_client.upload_post_image.assert_awaited_once_with(test_user.id, b"\xff\xd8\xff\xe0", "image/jpeg")


def test_upload_image_limit(client, db_session, test_post, auth_token) -> None:
    for position in range(4):
        db_session.add(PostImage(post_id=test_post.id, url=f"https://cdn.test/{position}.jpg", position=position))
    db_session.flush()
    db_session.expire(test_post)

    response = client.post(
        f"/api/posts/{test_post.id}/images",
        files={"file": ("photo.jpg", b"\xff\xd8", "image/jpeg")},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["details"] == {"file": ["TOO_MANY_IMAGES"]}


def test_upload_image_storage_failure(client, test_post, auth_token, storage_client) -> None:
    storage_client.upload_post_image.side_effect = StorageError("boom")

    response = client.post(
        f"/api/posts/{test_post.id}/images",
        files={"file": ("photo.jpg", b"\xff\xd8", "image/jpeg")},
        headers=auth_token,
    )
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["code"] == "INTERNAL_ERROR"


def test_upload_image_other_user_forbidden(client, test_post, other_auth_token) -> None:
    response = client.post(
        f"/api/posts/{test_post.id}/images",
        files={"file": ("photo.jpg", b"\xff\xd8", "image/jpeg")},
        headers=other_auth_token,
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

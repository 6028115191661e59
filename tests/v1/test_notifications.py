# mypy: ignore-errors
# tests/v1/test_notifications.py
"""Tests for the notification inbox."""

from datetime import timedelta

import pytest
from fastapi import status
from sqlalchemy import select

from vecinu.db.time import utcnow
from vecinu.models import Notification


@pytest.fixture()
def inbox(db_session, test_user, other_user):
    """Three notifications for ``test_user`` (one already read) and one for ``other_user``."""
    base = utcnow() - timedelta(hours=1)
    rows = [
        Notification(user_id=test_user.id, type="NEW_COMMENT", title="Primul", created_at=base),
        Notification(
            user_id=test_user.id,
            type="COMMENT_REPLY",
            title="Al doilea",
            created_at=base + timedelta(minutes=1),
        ),
        Notification(
            user_id=test_user.id,
            type="POST_SOLD",
            title="Citit deja",
            is_read=True,
            read_at=base,
            created_at=base + timedelta(minutes=2),
        ),
        Notification(user_id=other_user.id, type="NEW_COMMENT", title="Altcuiva", created_at=base),
    ]
    db_session.add_all(rows)
    db_session.flush()
    return rows


def test_list_notifications_newest_first(client, inbox, auth_token) -> None:
    response = client.get("/api/notifications", headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert [item["title"] for item in body["data"]] == ["Citit deja", "Al doilea", "Primul"]
    assert body["meta"]["unreadCount"] == 2
    assert body["meta"]["hasMore"] is False


def test_list_unread_only(client, inbox, auth_token) -> None:
    response = client.get("/api/notifications", params={"unreadOnly": "true"}, headers=auth_token)
    assert [item["title"] for item in response.json()["data"]] == ["Al doilea", "Primul"]


def test_list_notifications_paginated(client, inbox, auth_token) -> None:
    first = client.get("/api/notifications", params={"limit": 2}, headers=auth_token).json()
    assert first["meta"]["hasMore"] is True

    second = client.get(
        "/api/notifications",
        params={"limit": 2, "cursor": first["meta"]["cursor"]},
        headers=auth_token,
    ).json()
    assert [item["title"] for item in second["data"]] == ["Primul"]


def test_mark_read(client, db_session, inbox, auth_token) -> None:
    target = inbox[0]
    response = client.patch(f"/api/notifications/{target.id}/read", headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()["data"]
    assert data["isRead"] is True
    assert data["readAt"] is not None

    # Marking again keeps the notification read.
    again = client.patch(f"/api/notifications/{target.id}/read", headers=auth_token)
    assert again.json()["data"]["isRead"] is True


def test_mark_read_of_other_users_notification(client, inbox, auth_token) -> None:
    response = client.patch(f"/api/notifications/{inbox[3].id}/read", headers=auth_token)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_mark_all_read(client, db_session, inbox, test_user, auth_token) -> None:
    response = client.post("/api/notifications/read-all", headers=auth_token)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["data"] == {"count": 2}

    unread = db_session.scalars(
        select(Notification).where(Notification.is_read.is_(False))
    ).all()
    assert [row.title for row in unread] == ["Altcuiva"]


def test_notifications_require_authentication(client) -> None:
    assert client.get("/api/notifications").status_code == status.HTTP_401_UNAUTHORIZED

"""Notification Pydantic schemas."""

import uuid
from datetime import datetime
from typing import Any

from vecinu.schemas.common import CamelModel


class NotificationResponse(CamelModel):
    id: uuid.UUID
    type: str
    title: str
    body: str | None = None
    data: dict[str, Any] | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime

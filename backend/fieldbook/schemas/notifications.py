# backend/fieldbook/schemas/notifications.py
"""Schemas for notification inbox endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from ._strict_base import OrmResponseModel, StrictModel, StrictRequestModel


class NotificationResponse(OrmResponseModel):
    """Notification inbox entry."""

    id: str
    title: str
    description: str | None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="data")
    is_read: bool
    created_at: datetime


class NotificationListResponse(StrictModel):
    """Paginated notification response."""

    notifications: list[NotificationResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class NotificationUnreadCountResponse(StrictModel):
    """Unread notification count response."""

    unread_count: int = Field(..., ge=0)


class NotificationCreate(StrictRequestModel):
    recipient_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    metadata: dict[str, Any] | None = None


class MarkAsReadRequest(StrictRequestModel):
    ids: list[str] = Field(..., min_length=1)


class NotificationStatusResponse(StrictModel):
    """Simple status response for notification actions."""

    success: bool
    updated: int = 0

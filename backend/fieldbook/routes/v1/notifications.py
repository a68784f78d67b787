# backend/fieldbook/routes/v1/notifications.py
"""Notification inbox and live stream routes - API v1."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sse_starlette.sse import EventSourceResponse

from ...api.dependencies.auth import get_current_principal
from ...api.dependencies.services import get_hub, get_notification_service
from ...notifications.hub import NotificationHub
from ...notifications.stream import create_notification_stream
from ...principal import UserPrincipal
from ...schemas.notifications import (
    MarkAsReadRequest,
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
    NotificationStatusResponse,
    NotificationUnreadCountResponse,
)
from ...services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications-v1"])


@router.get("/notifications/me", response_model=NotificationListResponse)
def list_notifications(
    is_read: Optional[bool] = Query(None),
    page: int = Query(1),
    principal: UserPrincipal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    """List notifications for the current user, newest first."""
    result = service.get_notifications(principal.user_id, is_read=is_read, page=page)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(item) for item in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )


@router.get("/notifications/me/unread-count", response_model=NotificationUnreadCountResponse)
def get_unread_count(
    principal: UserPrincipal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationUnreadCountResponse:
    """Get unread notification count for the current user."""
    return NotificationUnreadCountResponse(unread_count=service.get_unread_count(principal.user_id))


@router.patch("/notifications/me/read", response_model=NotificationStatusResponse)
def mark_notifications_read(
    payload: MarkAsReadRequest,
    principal: UserPrincipal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationStatusResponse:
    """Mark the given notifications as read; ids owned by others are ignored."""
    count = service.mark_as_read(principal.user_id, payload.ids)
    return NotificationStatusResponse(success=True, updated=count)


@router.patch("/notifications/me/read-all", response_model=NotificationStatusResponse)
def mark_all_notifications_read(
    principal: UserPrincipal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationStatusResponse:
    count = service.mark_all_as_read(principal.user_id)
    return NotificationStatusResponse(success=True, updated=count)


@router.post(
    "/notifications",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_notification(
    payload: NotificationCreate,
    principal: UserPrincipal = Depends(get_current_principal),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationResponse:
    """Store a notification for a recipient and push it to their live streams."""
    notification = await service.create_notification(
        payload.recipient_id,
        payload.title,
        description=payload.description,
        metadata=payload.metadata,
    )
    logger.info(
        "Notification created via API",
        extra={"sender_id": principal.user_id, "recipient_id": payload.recipient_id},
    )
    return NotificationResponse.model_validate(notification)


@router.get("/notifications/stream")
async def stream_notifications(
    principal: UserPrincipal = Depends(get_current_principal),
    hub: NotificationHub = Depends(get_hub),
) -> EventSourceResponse:
    """
    Server-Sent Events stream of the caller's notifications.

    The first event is ``connected``; heartbeats follow while idle. Each
    open stream holds one hub subscription until the client disconnects.
    """
    logger.info("[SSE] Connection opened", extra={"user_id": principal.user_id})
    return EventSourceResponse(
        create_notification_stream(hub, principal.user_id),
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "X-Accel-Buffering": "no",
        },
    )

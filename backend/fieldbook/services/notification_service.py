# backend/fieldbook/services/notification_service.py
"""
Notification inbox service.

Persists notifications and then hands them to the live fan-out hub. The
commit happens first so that every pushed event is also reachable through
the paginated inbox, which is the only recovery path for missed pushes.
"""

import asyncio
from dataclasses import dataclass
import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.notification import Notification
from ..notifications.hub import NotificationHub
from ..repositories import RepositoryFactory
from ..repositories.notification_repository import NotificationRepository
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass
class NotificationPage:
    items: List[Notification]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


class NotificationService(BaseService):
    """Inbox persistence plus live publish."""

    def __init__(
        self,
        db: Session,
        hub: NotificationHub,
        repository: Optional[NotificationRepository] = None,
    ) -> None:
        super().__init__(db)
        self.hub = hub
        self.repository = repository or RepositoryFactory.create_notification_repository(db)

    @BaseService.measure_operation("create_notification")
    async def create_notification(
        self,
        recipient_id: str,
        title: str,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        """
        Persist a notification, then publish it to the recipient's live connections.

        The insert runs in a worker thread. Publishing never raises for a
        recipient without live connections.
        """
        notification = await asyncio.to_thread(
            self.store_notification, recipient_id, title, description, metadata
        )

        delivered = await self.hub.publish(recipient_id, notification.to_payload())
        self.logger.info(
            "Notification created",
            extra={
                "notification_id": notification.id,
                "recipient_id": recipient_id,
                "delivered_to": delivered,
            },
        )
        return notification

    @BaseService.measure_operation("store_notification")
    def store_notification(
        self,
        recipient_id: str,
        title: str,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        """Commit the inbox row without publishing it."""
        with self.transaction():
            return self.repository.create_notification(
                recipient_id=recipient_id,
                title=title,
                description=description,
                data=metadata,
            )

    @BaseService.measure_operation("get_notifications")
    def get_notifications(
        self,
        recipient_id: str,
        is_read: Optional[bool] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> NotificationPage:
        size = page_size or settings.notification_page_size
        items, total = self.repository.paginated_query(
            recipient_id, read_filter=is_read, page=page, page_size=size
        )
        return NotificationPage(items=items, total=total, page=page, page_size=size)

    @BaseService.measure_operation("get_unread_count")
    def get_unread_count(self, recipient_id: str) -> int:
        return self.repository.count_unread(recipient_id)

    @BaseService.measure_operation("mark_as_read")
    def mark_as_read(self, recipient_id: str, notification_ids: Sequence[str]) -> int:
        with self.transaction():
            updated = self.repository.mark_read(notification_ids, recipient_id)
        self.log_operation("mark_as_read", recipient_id=recipient_id, updated=updated)
        return updated

    @BaseService.measure_operation("mark_all_as_read")
    def mark_all_as_read(self, recipient_id: str) -> int:
        with self.transaction():
            updated = self.repository.mark_all_read(recipient_id)
        self.log_operation("mark_all_as_read", recipient_id=recipient_id, updated=updated)
        return updated

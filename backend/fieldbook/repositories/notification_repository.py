"""
Repository for in-app notification inbox rows.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models.notification import Notification
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class NotificationRepository(BaseRepository[Notification]):
    def __init__(self, db: Session) -> None:
        super().__init__(db, Notification)

    def create_notification(
        self,
        *,
        recipient_id: str,
        title: str,
        description: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> Notification:
        return self.create(
            recipient_id=recipient_id,
            title=title,
            description=description,
            data=data or {},
            is_read=False,
        )

    def paginated_query(
        self,
        recipient_id: str,
        read_filter: Optional[bool] = None,
        page: int = 1,
        page_size: int = 15,
    ) -> Tuple[List[Notification], int]:
        query = self.db.query(Notification).filter(Notification.recipient_id == recipient_id)
        if read_filter is not None:
            query = query.filter(Notification.is_read.is_(read_filter))
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
        return self._paginate(query, page, page_size)

    def count_unread(self, recipient_id: str) -> int:
        query = self.db.query(func.count(Notification.id)).filter(
            Notification.recipient_id == recipient_id,
            Notification.is_read.is_(False),
        )
        return int(self._execute_scalar(query) or 0)

    def mark_read(self, ids: Sequence[str], recipient_id: str) -> int:
        """Flag ``ids`` as read, touching only rows owned by ``recipient_id``."""
        if not ids:
            return 0
        updated = (
            self.db.query(Notification)
            .filter(
                Notification.recipient_id == recipient_id,
                Notification.id.in_(list(ids)),
                Notification.is_read.is_(False),
            )
            .update({"is_read": True}, synchronize_session="fetch")
        )
        return int(updated or 0)

    def mark_all_read(self, recipient_id: str) -> int:
        updated = (
            self.db.query(Notification)
            .filter(Notification.recipient_id == recipient_id, Notification.is_read.is_(False))
            .update({"is_read": True}, synchronize_session="fetch")
        )
        return int(updated or 0)

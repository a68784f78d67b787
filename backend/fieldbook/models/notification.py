"""
Notification models for Fieldbook.

In-app inbox entries created when an operator decides on a booking.
"""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import Boolean, Column, DateTime, Index, String, Text
from sqlalchemy.types import JSON
import ulid

from ..core.timezone_utils import as_utc, utc_now
from ..database import Base


class Notification(Base):
    """In-app notification inbox entries."""

    __tablename__ = "notifications"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    recipient_id = Column(String(26), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    data = Column("metadata", JSON, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("ix_notifications_recipient_read", "recipient_id", "is_read"),
        Index(
            "ix_notifications_recipient_created_at",
            "recipient_id",
            created_at.desc(),
        ),
    )

    def to_payload(self) -> Dict[str, Any]:
        """Shape pushed to live connections."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "metadata": self.data or {},
            "is_read": bool(self.is_read),
            "created_at": as_utc(self.created_at).isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Notification {self.id} recipient={self.recipient_id} read={self.is_read}>"


__all__ = ["Notification"]

# backend/fieldbook/models/booking.py
"""
Booking model for the Fieldbook platform.

A booking reserves one resource for an absolute [start, end) window. The
requester's display name and phone are snapshotted on the row so operator
views stay stable if the profile changes later.

Status changes are driven by a single transition table; see
``ALLOWED_TRANSITIONS`` and ``can_transition``.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet

from sqlalchemy import (
    DDL,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    event,
)
from sqlalchemy.orm import relationship
import ulid

from ..core.timezone_utils import as_utc, utc_now
from ..database import Base

NO_OVERLAP_CONSTRAINT = "bookings_no_overlap_per_resource"


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "PENDING"  # Awaiting the operator's decision
    ACCEPTED = "ACCEPTED"  # Holds the resource
    REJECTED = "REJECTED"  # Terminal
    DISABLED = "DISABLED"  # Terminal, only reachable from ACCEPTED


ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.ACCEPTED, BookingStatus.REJECTED}),
    BookingStatus.ACCEPTED: frozenset({BookingStatus.DISABLED}),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.DISABLED: frozenset(),
}

NOTIFYING_TRANSITIONS: FrozenSet[BookingStatus] = frozenset(
    {BookingStatus.ACCEPTED, BookingStatus.REJECTED}
)


def can_transition(current: BookingStatus, new: BookingStatus) -> bool:
    return BookingStatus(new) in ALLOWED_TRANSITIONS[BookingStatus(current)]


class Booking(Base):
    """Reservation of a resource for a time window, owned by its requester."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    resource_id = Column(String(26), ForeignKey("resources.id"), nullable=False)

    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)

    # Requester snapshot
    full_name = Column(String(255), nullable=False)
    phone_number = Column(String(32), nullable=True)

    created_by = Column(String(26), nullable=False, index=True)
    updated_by = Column(String(26), nullable=True)

    # Soft delete marker
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(String(26), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    resource = relationship("Resource")

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'ACCEPTED', 'REJECTED', 'DISABLED')",
            name="ck_bookings_status",
        ),
        CheckConstraint("start_time < end_time", name="check_time_order"),
        Index("ix_bookings_resource_window", "resource_id", "start_time", "end_time"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id} resource={self.resource_id} "
            f"{self.start_time}-{self.end_time} {self.status}>"
        )

    @property
    def status_enum(self) -> BookingStatus:
        return BookingStatus(self.status)

    def has_ended(self, now: datetime) -> bool:
        return as_utc(self.end_time) < as_utc(now)


# Storage-level guarantee that ACCEPTED windows never overlap per resource.
event.listen(
    Booking.__table__,
    "after_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    Booking.__table__,
    "after_create",
    DDL(
        f"""
        ALTER TABLE bookings
          ADD CONSTRAINT {NO_OVERLAP_CONSTRAINT}
          EXCLUDE USING gist (
            resource_id WITH =,
            tstzrange(start_time, end_time, '[)') WITH &&
          )
          WHERE (status = 'ACCEPTED' AND deleted_at IS NULL)
        """
    ).execute_if(dialect="postgresql"),
)

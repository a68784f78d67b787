# backend/fieldbook/models/facility.py
"""
Facility and resource models.

A facility is a venue (the resource group) with one daily operating window
expressed in its own fixed UTC offset. Resources are the individually
bookable units inside it, each with an owning operator.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, Time
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.config import settings
from ..database import Base


class Facility(Base):
    __tablename__ = "facilities"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    name = Column(String(255), nullable=False)
    owner_id = Column(String(26), nullable=False, index=True)

    daily_start = Column(Time, nullable=False)
    daily_end = Column(Time, nullable=False)
    utc_offset_minutes = Column(
        Integer, nullable=False, default=lambda: settings.default_utc_offset_minutes
    )

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    resources = relationship("Resource", back_populates="facility", order_by="Resource.name")

    __table_args__ = (
        CheckConstraint("daily_start < daily_end", name="check_facility_hours_order"),
    )

    def __repr__(self) -> str:
        return (
            f"<Facility {self.id} {self.name!r} "
            f"{self.daily_start}-{self.daily_end} offset={self.utc_offset_minutes}>"
        )


class Resource(Base):
    __tablename__ = "resources"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    facility_id = Column(String(26), ForeignKey("facilities.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    owner_id = Column(String(26), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    facility = relationship("Facility", back_populates="resources")

    def is_owned_by(self, user_id: str) -> bool:
        return self.owner_id == user_id

    def __repr__(self) -> str:
        return f"<Resource {self.id} {self.name!r} facility={self.facility_id}>"

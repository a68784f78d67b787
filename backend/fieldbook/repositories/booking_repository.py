# backend/fieldbook/repositories/booking_repository.py
"""
Booking Repository for the Fieldbook platform

Data access for bookings: overlap detection, soft deletion, filtered
paginated listings and calendar range reads. Every query ignores rows that
carry the soft-delete marker.
"""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Collection, List, Optional, Sequence, Tuple

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.exceptions import RepositoryException
from ..core.timezone_utils import as_utc
from ..models.booking import Booking, BookingStatus
from ..models.facility import Facility, Resource
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingFilters:
    """Filters shared by every booking listing."""

    statuses: Optional[Collection[BookingStatus]] = None
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    name: Optional[str] = None

    # Scope
    created_by: Optional[str] = None
    facility_owner_id: Optional[str] = None
    facility_id: Optional[str] = None
    resource_id: Optional[str] = None

    order_by_updated: bool = False


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _escape_like_pattern(value: str) -> str:
        """Escape special LIKE pattern characters to prevent pattern injection."""
        return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

    def _live(self) -> Query:
        return self.db.query(Booking).filter(Booking.deleted_at.is_(None))

    def get_live_booking(self, booking_id: str, lock: bool = False) -> Optional[Booking]:
        """
        Fetch a non-deleted booking with its resource and facility.

        With ``lock`` the row is selected ``FOR UPDATE`` and reloaded from the
        database even when the session already holds it.
        """
        try:
            query = self._live().filter(Booking.id == booking_id)
            if lock:
                query = query.with_for_update().populate_existing()
            else:
                query = query.options(
                    joinedload(Booking.resource).joinedload(Resource.facility)
                )
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve booking: {str(e)}")

    def find_overlapping(
        self,
        resource_id: str,
        start: datetime,
        end: datetime,
        status: BookingStatus = BookingStatus.ACCEPTED,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        """
        Check whether any booking in ``status`` overlaps [start, end).

        Two windows overlap when ``existing.start < end AND existing.end > start``;
        touching boundaries do not overlap.
        """
        try:
            query = self._live().filter(
                Booking.resource_id == resource_id,
                Booking.status == BookingStatus(status).value,
                Booking.start_time < as_utc(end),
                Booking.end_time > as_utc(start),
            )
            if exclude_booking_id:
                query = query.filter(Booking.id != exclude_booking_id)
            return query.first() is not None
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking overlap on resource {resource_id}: {str(e)}")
            raise RepositoryException(f"Failed to check booking overlap: {str(e)}")

    def soft_delete(self, booking: Booking, actor_id: str, now: datetime) -> Booking:
        """Tag a booking as deleted. Does not commit."""
        return self.apply_update(booking, deleted_by=actor_id, deleted_at=as_utc(now))

    def bulk_soft_delete_by_resource_ids(
        self, resource_ids: Sequence[str], actor_id: str, now: datetime
    ) -> int:
        """Tag every live booking on ``resource_ids`` as deleted; returns the row count."""
        if not resource_ids:
            return 0
        try:
            stamp = as_utc(now)
            result = self.db.execute(
                update(Booking)
                .where(
                    Booking.resource_id.in_(list(resource_ids)),
                    Booking.deleted_at.is_(None),
                )
                .values(deleted_at=stamp, deleted_by=actor_id, updated_at=stamp)
                .execution_options(synchronize_session="fetch")
            )
            return int(result.rowcount or 0)
        except SQLAlchemyError as e:
            self.logger.error(f"Error bulk deleting bookings: {str(e)}")
            raise RepositoryException(f"Failed to bulk delete bookings: {str(e)}")

    def paginated_query(
        self, filters: BookingFilters, page: int, page_size: int = 15
    ) -> Tuple[List[Booking], int]:
        """
        Filtered booking listing.

        Returns:
            (items for ``page``, total matching rows)
        """
        query = self._live().options(joinedload(Booking.resource))

        if filters.facility_owner_id or filters.facility_id:
            query = query.join(Resource, Booking.resource_id == Resource.id).join(
                Facility, Resource.facility_id == Facility.id
            )
            if filters.facility_owner_id:
                query = query.filter(Facility.owner_id == filters.facility_owner_id)
            if filters.facility_id:
                query = query.filter(Facility.id == filters.facility_id)

        if filters.created_by:
            query = query.filter(Booking.created_by == filters.created_by)
        if filters.resource_id:
            query = query.filter(Booking.resource_id == filters.resource_id)
        if filters.statuses:
            query = query.filter(
                Booking.status.in_([BookingStatus(s).value for s in filters.statuses])
            )
        if filters.window_start is not None:
            query = query.filter(Booking.start_time >= as_utc(filters.window_start))
        if filters.window_end is not None:
            query = query.filter(Booking.end_time <= as_utc(filters.window_end))
        if filters.name:
            needle = self._escape_like_pattern(filters.name.strip())
            query = query.filter(Booking.full_name.ilike(f"%{needle}%", escape="\\"))

        if filters.order_by_updated:
            query = query.order_by(Booking.updated_at.desc(), Booking.id.desc())
        else:
            query = query.order_by(Booking.start_time.desc(), Booking.id.desc())

        return self._paginate(query, page, page_size)

    def list_accepted_in_range(
        self, resource_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[Booking]:
        """ACCEPTED bookings on ``resource_ids`` overlapping [start, end)."""
        if not resource_ids:
            return []
        query = (
            self._live()
            .filter(
                Booking.resource_id.in_(list(resource_ids)),
                Booking.status == BookingStatus.ACCEPTED.value,
                Booking.start_time < as_utc(end),
                Booking.end_time > as_utc(start),
            )
            .order_by(Booking.start_time)
        )
        return self._execute_query(query)

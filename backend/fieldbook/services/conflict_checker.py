# backend/fieldbook/services/conflict_checker.py
"""
Conflict Checker Service for the Fieldbook platform

Handles booking window validation:
- Operating hours, compared in the facility's fixed UTC offset
- Overlap with ACCEPTED bookings on the same resource
- Bookings that would start in the past

Checks run in exactly that order and stop at the first failure.
"""

from datetime import datetime
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import (
    BookingConflictException,
    InThePastException,
    OutOfOperatingHoursException,
)
from ..core.timezone_utils import as_utc, facility_time_of_day, utc_now
from ..models.booking import BookingStatus
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..repositories.facility_repository import OperatingHours
from .base import BaseService

logger = logging.getLogger(__name__)


def is_within_operating_hours(hours: OperatingHours, start: datetime, end: datetime) -> bool:
    """
    Compare the wall-clock time of ``start`` and ``end`` with the facility window.

    Both ends are inclusive, so a booking may start exactly at opening time
    and finish exactly at closing time.
    """
    start_of_day = facility_time_of_day(start, hours.utc_offset_minutes)
    end_of_day = facility_time_of_day(end, hours.utc_offset_minutes)
    return start_of_day >= hours.daily_start and end_of_day <= hours.daily_end


def ensure_within_operating_hours(hours: OperatingHours, start: datetime, end: datetime) -> None:
    """
    Raises:
        OutOfOperatingHoursException: If the window leaves the facility's hours
    """
    if not is_within_operating_hours(hours, start, end):
        raise OutOfOperatingHoursException(hours.daily_start, hours.daily_end)


class ConflictChecker(BaseService):
    """
    Service for checking booking conflicts and time validation.

    Centralizes window checks so booking creation, owner-created bookings and
    pre-validation all reject the same windows with the same errors.
    """

    def __init__(self, db: Session, repository: Optional[BookingRepository] = None):
        """
        Initialize conflict checker service.

        Args:
            db: Database session
            repository: Optional BookingRepository instance
        """
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)

    @BaseService.measure_operation("has_conflict")
    def has_conflict(
        self,
        resource_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> bool:
        """
        Check if [start, end) overlaps an ACCEPTED booking on the resource.

        Args:
            resource_id: The resource to check
            start: Window start
            end: Window end
            exclude_booking_id: Booking to ignore (the one being accepted)

        Returns:
            True if an accepted booking overlaps the window
        """
        conflict = self.repository.find_overlapping(
            resource_id,
            start,
            end,
            status=BookingStatus.ACCEPTED,
            exclude_booking_id=exclude_booking_id,
        )
        if conflict:
            self.logger.warning(
                f"Booking conflict on resource {resource_id} between {start} and {end}"
            )
        return conflict

    def ensure_no_conflict(
        self,
        resource_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        if self.has_conflict(resource_id, start, end, exclude_booking_id=exclude_booking_id):
            raise BookingConflictException(
                details={
                    "resource_id": resource_id,
                    "start_time": as_utc(start).isoformat(),
                    "end_time": as_utc(end).isoformat(),
                }
            )

    @staticmethod
    def ensure_not_in_past(start: datetime, now: Optional[datetime] = None) -> None:
        if as_utc(start) < as_utc(now or utc_now()):
            raise InThePastException()

    @BaseService.measure_operation("validate_booking_window")
    def validate_booking_window(
        self,
        hours: OperatingHours,
        resource_id: str,
        start: datetime,
        end: datetime,
        now: Optional[datetime] = None,
    ) -> None:
        """
        Run operating hours, conflict and past-time checks in order.

        Raises:
            OutOfOperatingHoursException: Window outside facility hours
            BookingConflictException: Window overlaps an accepted booking
            InThePastException: Window starts before now
        """
        ensure_within_operating_hours(hours, start, end)
        self.ensure_no_conflict(resource_id, start, end)
        self.ensure_not_in_past(start, now)

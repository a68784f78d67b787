# backend/fieldbook/services/calendar_service.py
"""
Weekly availability grid for a facility.

Days run from ``start_of_week`` to ``end_of_week`` inclusive; each day is cut
into fixed slots from opening to closing time in the facility's own offset.
A slot is empty while fewer ACCEPTED bookings overlap it than the facility
has resources.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import as_utc, combine_facility_datetime
from ..models.booking import Booking
from ..models.facility import Facility
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..repositories.facility_repository import FacilityRepository
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarSlot:
    start: datetime
    end: datetime
    booked_count: int
    is_empty: bool


class CalendarService(BaseService):
    def __init__(
        self,
        db: Session,
        facility_repository: Optional[FacilityRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
    ):
        super().__init__(db)
        self.facility_repository = (
            facility_repository or RepositoryFactory.create_facility_repository(db)
        )
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )

    @BaseService.measure_operation("get_week_calendar")
    def get_week_calendar(
        self, facility_id: str, start_of_week: date, end_of_week: date
    ) -> List[List[CalendarSlot]]:
        """
        Build the availability grid.

        Returns:
            One list of slots per day, in day order then slot order

        Raises:
            NotFoundException: Unknown facility
            ValidationException: end_of_week is before start_of_week
        """
        if end_of_week < start_of_week:
            raise ValidationException(
                "end_of_week must not be before start_of_week", code="INVALID_DATE_RANGE"
            )

        facility = self.facility_repository.get_facility(facility_id)
        if facility is None:
            raise NotFoundException("Facility not found", details={"facility_id": facility_id})

        resource_ids = [r.id for r in self.facility_repository.list_resources(facility_id)]
        slot_length = timedelta(minutes=settings.calendar_slot_minutes)

        days: List[List[tuple[datetime, datetime]]] = []
        current = start_of_week
        while current <= end_of_week:
            days.append(self._day_slots(facility, current, slot_length))
            current += timedelta(days=1)

        bookings: List[Booking] = []
        all_slots = [slot for day in days for slot in day]
        if all_slots and resource_ids:
            bookings = self.booking_repository.list_accepted_in_range(
                resource_ids, all_slots[0][0], all_slots[-1][1]
            )
        windows = [(as_utc(b.start_time), as_utc(b.end_time)) for b in bookings]

        grid: List[List[CalendarSlot]] = []
        for day in days:
            row = []
            for slot_start, slot_end in day:
                start_utc, end_utc = as_utc(slot_start), as_utc(slot_end)
                count = sum(
                    1 for b_start, b_end in windows if b_start < end_utc and b_end > start_utc
                )
                row.append(
                    CalendarSlot(
                        start=slot_start,
                        end=slot_end,
                        booked_count=count,
                        is_empty=count < len(resource_ids),
                    )
                )
            grid.append(row)
        return grid

    @staticmethod
    def _day_slots(
        facility: Facility, day: date, slot_length: timedelta
    ) -> List[tuple[datetime, datetime]]:
        opening = combine_facility_datetime(day, facility.daily_start, facility.utc_offset_minutes)
        closing = combine_facility_datetime(day, facility.daily_end, facility.utc_offset_minutes)
        slots = []
        slot_start = opening
        while slot_start < closing:
            slots.append((slot_start, slot_start + slot_length))
            slot_start += slot_length
        return slots

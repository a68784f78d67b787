# backend/fieldbook/schemas/booking.py
"""
Booking schemas for the Fieldbook platform.

Windows are absolute timestamps. Clients should send an explicit offset;
values without one are read as UTC.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from ..models.booking import BookingStatus
from ._strict_base import OrmResponseModel, StrictModel, StrictRequestModel


class BookingWindow(StrictRequestModel):
    """Shared [start_time, end_time) window with ordering check."""

    start_time: datetime = Field(..., description="Booking start (inclusive)")
    end_time: datetime = Field(..., description="Booking end (exclusive)")

    @model_validator(mode="after")
    def _check_order(self) -> "BookingWindow":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class BookingCreate(BookingWindow):
    resource_id: str = Field(..., min_length=1, description="Resource to book")


class BookingValidate(BookingWindow):
    resource_id: str = Field(..., min_length=1)


class OwnerBookingCreate(BookingWindow):
    """Booking recorded by the resource operator on a requester's behalf."""

    resource_id: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1, max_length=255)
    phone_number: Optional[str] = Field(None, max_length=32)
    status: BookingStatus = Field(BookingStatus.PENDING)

    @field_validator("status")
    @classmethod
    def _initial_status(cls, value: BookingStatus) -> BookingStatus:
        if value not in (BookingStatus.PENDING, BookingStatus.ACCEPTED):
            raise ValueError("status must be PENDING or ACCEPTED")
        return value

    @field_validator("full_name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("full_name must not be blank")
        return stripped


class BookingStatusUpdate(StrictRequestModel):
    status: BookingStatus


class BookingResponse(OrmResponseModel):
    id: str
    resource_id: str
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    full_name: str
    phone_number: Optional[str] = None
    created_by: str
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BookingListResponse(StrictModel):
    items: List[BookingResponse]
    total: int = Field(..., ge=0)
    page: int
    page_size: int
    total_pages: int


class BulkDeleteResponse(StrictModel):
    facility_id: str
    deleted: int = Field(..., ge=0)


class BookingValidationResponse(StrictModel):
    valid: bool = True


class CalendarSlotResponse(StrictModel):
    start: datetime
    end: datetime
    booked_count: int = Field(..., ge=0)
    is_empty: bool


class CalendarDayResponse(StrictModel):
    day: date
    slots: List[CalendarSlotResponse]


class CalendarResponse(StrictModel):
    facility_id: str
    start_of_week: date
    end_of_week: date
    days: List[CalendarDayResponse]

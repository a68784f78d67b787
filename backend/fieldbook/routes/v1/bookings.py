# backend/fieldbook/routes/v1/bookings.py
"""
Booking routes - API v1

Requester endpoints live under /bookings and /bookings/me; operator endpoints
cover /bookings/owner, per-resource listings, facility-wide deletion and the
weekly calendar.

Route order matters: static /bookings/* paths are declared before
/bookings/{booking_id} so they are not captured as ids.
"""

from datetime import date, datetime, timedelta
import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ...api.dependencies.auth import get_current_principal
from ...api.dependencies.services import get_booking_service, get_calendar_service
from ...core.exceptions import DomainException
from ...models.booking import BookingStatus
from ...principal import UserPrincipal
from ...schemas.booking import (
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingStatusUpdate,
    BookingValidate,
    BookingValidationResponse,
    BulkDeleteResponse,
    CalendarDayResponse,
    CalendarResponse,
    CalendarSlotResponse,
    OwnerBookingCreate,
)
from ...services.booking_service import BookingPage, BookingService
from ...services.calendar_service import CalendarService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _to_list_response(result: BookingPage) -> BookingListResponse:
    return BookingListResponse(
        items=[BookingResponse.model_validate(item) for item in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )


# ============================================================================
# Static /bookings routes
# ============================================================================


@router.post(
    "/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_booking(
    payload: BookingCreate,
    principal: UserPrincipal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Request a booking; it starts out PENDING until the operator decides."""
    try:
        booking = booking_service.create_booking(
            principal, payload.resource_id, payload.start_time, payload.end_time
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/bookings/validate", response_model=BookingValidationResponse)
def validate_booking_time(
    payload: BookingValidate,
    principal: UserPrincipal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingValidationResponse:
    """Dry-run the create checks without writing anything."""
    try:
        booking_service.validate_booking_time(
            payload.resource_id, payload.start_time, payload.end_time
        )
        return BookingValidationResponse(valid=True)
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/bookings/owner",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_booking_by_owner(
    payload: OwnerBookingCreate,
    principal: UserPrincipal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Record a booking on behalf of a walk-in or phone requester."""
    try:
        booking = booking_service.create_booking_by_owner(
            principal,
            payload.resource_id,
            payload.start_time,
            payload.end_time,
            full_name=payload.full_name,
            phone_number=payload.phone_number,
            status=payload.status,
        )
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/bookings/me", response_model=BookingListResponse)
def list_my_bookings(
    status_filter: Optional[List[BookingStatus]] = Query(None, alias="status"),
    start_time: Optional[datetime] = Query(None),
    end_time: Optional[datetime] = Query(None),
    name: Optional[str] = Query(None, max_length=255),
    page: int = Query(1),
    principal: UserPrincipal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    """The caller's own bookings, most recently updated first."""
    try:
        result = booking_service.list_by_creator(
            principal,
            statuses=status_filter,
            window_start=start_time,
            window_end=end_time,
            name=name,
            page=page,
        )
        return _to_list_response(result)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/bookings/owner", response_model=BookingListResponse)
def list_owner_bookings(
    facility_id: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    status_filter: Optional[List[BookingStatus]] = Query(None, alias="status"),
    start_time: Optional[datetime] = Query(None),
    end_time: Optional[datetime] = Query(None),
    name: Optional[str] = Query(None, max_length=255),
    page: int = Query(1),
    principal: UserPrincipal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    """Bookings across every facility the caller owns."""
    try:
        result = booking_service.list_by_owner_facility(
            principal,
            facility_id=facility_id,
            resource_id=resource_id,
            statuses=status_filter,
            window_start=start_time,
            window_end=end_time,
            name=name,
            page=page,
        )
        return _to_list_response(result)
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# Dynamic /bookings/{booking_id} routes
# ============================================================================


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    principal: UserPrincipal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.model_validate(booking_service.get_booking(booking_id, principal))
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/bookings/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: str,
    payload: BookingStatusUpdate,
    principal: UserPrincipal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """
    Accept, reject or disable a booking.

    Accepting or rejecting a PENDING booking notifies the requester.
    """
    try:
        booking = await booking_service.update_status(booking_id, payload.status, principal)
        return BookingResponse.model_validate(booking)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking(
    booking_id: str,
    principal: UserPrincipal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> Response:
    try:
        booking_service.delete_booking(booking_id, principal)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# Resource and facility routes
# ============================================================================


@router.get("/resources/{resource_id}/bookings", response_model=BookingListResponse)
def list_resource_bookings(
    resource_id: str,
    status_filter: Optional[List[BookingStatus]] = Query(None, alias="status"),
    start_time: Optional[datetime] = Query(None),
    end_time: Optional[datetime] = Query(None),
    name: Optional[str] = Query(None, max_length=255),
    page: int = Query(1),
    principal: UserPrincipal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    try:
        result = booking_service.list_by_resource(
            principal,
            resource_id,
            statuses=status_filter,
            window_start=start_time,
            window_end=end_time,
            name=name,
            page=page,
        )
        return _to_list_response(result)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/facilities/{facility_id}/bookings", response_model=BulkDeleteResponse)
def delete_facility_bookings(
    facility_id: str,
    principal: UserPrincipal = Depends(get_current_principal),
    booking_service: BookingService = Depends(get_booking_service),
) -> BulkDeleteResponse:
    """Soft-delete every live booking across the facility's resources."""
    try:
        deleted = booking_service.bulk_delete_by_facility(facility_id, principal)
        return BulkDeleteResponse(facility_id=facility_id, deleted=deleted)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/facilities/{facility_id}/calendar", response_model=CalendarResponse)
def get_facility_calendar(
    facility_id: str,
    start_of_week: date = Query(...),
    end_of_week: date = Query(...),
    calendar_service: CalendarService = Depends(get_calendar_service),
) -> CalendarResponse:
    """Public availability grid; no booking details are exposed."""
    try:
        grid = calendar_service.get_week_calendar(facility_id, start_of_week, end_of_week)
    except DomainException as e:
        handle_domain_exception(e)

    days = [
        CalendarDayResponse(
            day=start_of_week + timedelta(days=offset),
            slots=[
                CalendarSlotResponse(
                    start=slot.start,
                    end=slot.end,
                    booked_count=slot.booked_count,
                    is_empty=slot.is_empty,
                )
                for slot in row
            ],
        )
        for offset, row in enumerate(grid)
    ]
    return CalendarResponse(
        facility_id=facility_id,
        start_of_week=start_of_week,
        end_of_week=end_of_week,
        days=days,
    )

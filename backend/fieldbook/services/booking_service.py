# backend/fieldbook/services/booking_service.py
"""
Booking Service for the Fieldbook platform

Owns the booking lifecycle:
- Creation by requesters and by resource operators
- Status transitions (PENDING -> ACCEPTED/REJECTED, ACCEPTED -> DISABLED)
- Soft deletion, single and per facility
- Filtered, paginated listings

Status transitions commit before the requester is notified; a failed
notification is logged and never undoes the transition.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
import logging
import math
from typing import Any, Collection, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    BookingConflictException,
    BookingExpiredException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    RepositoryException,
    ValidationException,
)
from ..core.timezone_utils import as_utc, format_time_range, utc_now
from ..models.booking import (
    NO_OVERLAP_CONSTRAINT,
    NOTIFYING_TRANSITIONS,
    Booking,
    BookingStatus,
    can_transition,
)
from ..models.facility import Resource
from ..principal import UserPrincipal
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingFilters, BookingRepository
from ..repositories.facility_repository import FacilityRepository, OperatingHours
from .base import BaseService
from .conflict_checker import ConflictChecker
from .notification_service import NotificationService
from .notification_templates import BOOKING_DECISION_TEMPLATES, render_notification

logger = logging.getLogger(__name__)

GENERIC_CONFLICT_MESSAGE = "This time slot conflicts with an existing booking"
RESOURCE_CONFLICT_MESSAGE = "Resource already has an accepted booking that overlaps this time"

OWNER_CREATABLE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.ACCEPTED})


@dataclass
class BookingPage:
    items: List[Booking]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


@dataclass(frozen=True)
class StatusChange:
    booking: Booking
    resource: Resource
    previous: BookingStatus
    current: BookingStatus

    @property
    def notifies_requester(self) -> bool:
        return self.previous == BookingStatus.PENDING and self.current in NOTIFYING_TRANSITIONS


class BookingService(BaseService):
    """
    Service layer for booking operations.

    Args:
        db: Database session
        notification_service: Used to tell requesters about accept/reject
            decisions; when omitted, decisions are not notified
    """

    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        repository: Optional[BookingRepository] = None,
        facility_repository: Optional[FacilityRepository] = None,
        conflict_checker: Optional[ConflictChecker] = None,
    ):
        super().__init__(db)
        self.repository = repository or RepositoryFactory.create_booking_repository(db)
        self.facility_repository = (
            facility_repository or RepositoryFactory.create_facility_repository(db)
        )
        self.conflict_checker = conflict_checker or ConflictChecker(db, self.repository)
        self.notification_service = notification_service

    # Creation

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        actor: UserPrincipal,
        resource_id: str,
        start: datetime,
        end: datetime,
    ) -> Booking:
        """
        Create a PENDING booking for the acting requester.

        Raises:
            ValidationException: start is not before end
            NotFoundException: Unknown resource
            OutOfOperatingHoursException: Window outside facility hours
            BookingConflictException: Window overlaps an accepted booking
            InThePastException: Window starts before now
        """
        booking = self._create(
            actor,
            resource_id,
            start,
            end,
            full_name=actor.display_name,
            phone_number=actor.phone,
            status=BookingStatus.PENDING,
            require_owner=False,
        )
        self.log_operation(
            "create_booking",
            booking_id=booking.id,
            resource_id=resource_id,
            actor_id=actor.user_id,
        )
        return booking

    @BaseService.measure_operation("create_booking_by_owner")
    def create_booking_by_owner(
        self,
        actor: UserPrincipal,
        resource_id: str,
        start: datetime,
        end: datetime,
        full_name: str,
        phone_number: Optional[str] = None,
        status: BookingStatus = BookingStatus.PENDING,
    ) -> Booking:
        """
        Record a booking taken on a requester's behalf, e.g. over the phone.

        Only the resource's operator may do this, and only as PENDING or ACCEPTED.
        """
        status = BookingStatus(status)
        if status not in OWNER_CREATABLE_STATUSES:
            raise ValidationException(
                f"Bookings cannot be created with status {status.value}",
                code="INVALID_INITIAL_STATUS",
                details={"status": status.value},
            )
        if not full_name or not full_name.strip():
            raise ValidationException("full_name is required", code="FULL_NAME_REQUIRED")

        booking = self._create(
            actor,
            resource_id,
            start,
            end,
            full_name=full_name.strip(),
            phone_number=phone_number,
            status=status,
            require_owner=True,
        )
        self.log_operation(
            "create_booking_by_owner",
            booking_id=booking.id,
            resource_id=resource_id,
            actor_id=actor.user_id,
            status=status.value,
        )
        return booking

    @BaseService.measure_operation("validate_booking_time")
    def validate_booking_time(self, resource_id: str, start: datetime, end: datetime) -> None:
        """Run every creation check without persisting anything."""
        start, end = self._normalize_window(start, end)
        hours = self.facility_repository.get_operating_hours(resource_id)
        if hours is None:
            raise NotFoundException("Resource not found", details={"resource_id": resource_id})
        self.conflict_checker.validate_booking_window(hours, resource_id, start, end)

    def _create(
        self,
        actor: UserPrincipal,
        resource_id: str,
        start: datetime,
        end: datetime,
        *,
        full_name: str,
        phone_number: Optional[str],
        status: BookingStatus,
        require_owner: bool,
    ) -> Booking:
        start, end = self._normalize_window(start, end)
        try:
            with self.transaction():
                # The resource row lock serializes check-then-insert per resource.
                resource = self._get_resource_or_404(resource_id, lock=True)
                if require_owner:
                    self._ensure_resource_owner(resource, actor)
                self.conflict_checker.validate_booking_window(
                    self._hours_for(resource), resource.id, start, end
                )
                return self.repository.create(
                    resource_id=resource.id,
                    start_time=start,
                    end_time=end,
                    status=status.value,
                    full_name=full_name,
                    phone_number=phone_number,
                    created_by=actor.user_id,
                    updated_by=actor.user_id,
                )
        except RepositoryException as exc:
            self._raise_conflict_from_repo_error(exc, resource_id, start, end)
            raise

    # Status transitions

    @BaseService.measure_operation("update_status")
    async def update_status(
        self,
        booking_id: str,
        new_status: BookingStatus,
        actor: UserPrincipal,
    ) -> Booking:
        """
        Move a booking to ``new_status`` and notify the requester of decisions.

        The database work runs in a worker thread; only the notification
        publish stays on the event loop.

        Raises:
            NotFoundException: Unknown or deleted booking
            ForbiddenException: Actor does not operate the booking's resource
            InvalidTransitionException: Transition not in the table (including repeats)
            BookingExpiredException: Disabling a booking that already ended
            BookingConflictException: Accepting would overlap another accepted booking
        """
        change = await asyncio.to_thread(self.change_status, booking_id, new_status, actor)
        if change.notifies_requester:
            await self._notify_decision(change)
        return change.booking

    @BaseService.measure_operation("change_status")
    def change_status(
        self,
        booking_id: str,
        new_status: BookingStatus,
        actor: UserPrincipal,
    ) -> StatusChange:
        """Apply and commit a status transition without notifying anyone."""
        new_status = BookingStatus(new_status)
        try:
            with self.transaction():
                booking, resource = self._lock_booking(booking_id)
                self._ensure_resource_owner(resource, actor)

                previous = booking.status_enum
                if not can_transition(previous, new_status):
                    raise InvalidTransitionException(previous.value, new_status.value)
                if new_status == BookingStatus.DISABLED and booking.has_ended(utc_now()):
                    raise BookingExpiredException(booking.id)
                if new_status == BookingStatus.ACCEPTED:
                    self.conflict_checker.ensure_no_conflict(
                        resource.id,
                        booking.start_time,
                        booking.end_time,
                        exclude_booking_id=booking.id,
                    )

                self.repository.apply_update(
                    booking, status=new_status.value, updated_by=actor.user_id
                )
        except RepositoryException as exc:
            self._raise_conflict_from_repo_error(exc, booking_id=booking_id)
            raise

        self.log_operation(
            "update_status",
            booking_id=booking.id,
            previous_status=previous.value,
            new_status=new_status.value,
            actor_id=actor.user_id,
        )
        return StatusChange(
            booking=booking, resource=resource, previous=previous, current=new_status
        )

    async def _notify_decision(self, change: StatusChange) -> None:
        if self.notification_service is None:
            self.logger.debug(f"No notification service; skipping notice for {change.booking.id}")
            return

        booking = change.booking
        try:
            rendered = await asyncio.to_thread(self._render_decision, change)
            await self.notification_service.create_notification(
                booking.created_by,
                title=rendered["title"],
                description=rendered["description"],
                metadata=rendered["metadata"],
            )
        except Exception:
            self.logger.exception(
                "Failed to notify requester of booking decision",
                extra={"booking_id": booking.id, "status": change.current.value},
            )

    @staticmethod
    def _render_decision(change: StatusChange) -> Dict[str, Any]:
        booking, resource = change.booking, change.resource
        facility = resource.facility
        rendered = render_notification(
            BOOKING_DECISION_TEMPLATES[change.current],
            facility_id=facility.id,
            facility_name=facility.name,
            resource_name=resource.name,
            time_range=format_time_range(
                booking.start_time, booking.end_time, facility.utc_offset_minutes
            ),
        )
        rendered["metadata"].update(booking_id=booking.id, status=change.current.value)
        return rendered

    # Deletion

    @BaseService.measure_operation("delete_booking")
    def delete_booking(self, booking_id: str, actor: UserPrincipal) -> Booking:
        """Soft-delete a booking; only the resource's operator may do this."""
        with self.transaction():
            booking, resource = self._lock_booking(booking_id)
            self._ensure_resource_owner(resource, actor)
            self.repository.soft_delete(booking, actor.user_id, utc_now())

        self.log_operation("delete_booking", booking_id=booking_id, actor_id=actor.user_id)
        return booking

    @BaseService.measure_operation("bulk_delete_by_facility")
    def bulk_delete_by_facility(self, facility_id: str, actor: UserPrincipal) -> int:
        """
        Soft-delete every live booking on the facility's resources.

        Returns:
            Number of bookings deleted

        Raises:
            NotFoundException: The facility has no resources
            ForbiddenException: Actor does not own every resource in the facility
        """
        with self.transaction():
            resources = self.facility_repository.list_resources(facility_id)
            if not resources:
                raise NotFoundException(
                    "Facility has no resources", details={"facility_id": facility_id}
                )
            foreign = [r.id for r in resources if not r.is_owned_by(actor.user_id)]
            if foreign:
                raise ForbiddenException(
                    "You do not own every resource in this facility",
                    details={"facility_id": facility_id},
                )
            deleted = self.repository.bulk_soft_delete_by_resource_ids(
                [r.id for r in resources], actor.user_id, utc_now()
            )

        self.log_operation(
            "bulk_delete_by_facility",
            facility_id=facility_id,
            actor_id=actor.user_id,
            deleted=deleted,
        )
        return deleted

    # Queries

    @BaseService.measure_operation("get_booking")
    def get_booking(self, booking_id: str, actor: UserPrincipal) -> Booking:
        booking = self._get_booking_or_404(booking_id)
        if booking.created_by != actor.user_id and not booking.resource.is_owned_by(
            actor.user_id
        ):
            raise ForbiddenException("You do not have access to this booking")
        return booking

    @BaseService.measure_operation("list_by_creator")
    def list_by_creator(
        self,
        actor: UserPrincipal,
        statuses: Optional[Collection[BookingStatus]] = None,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
        name: Optional[str] = None,
        page: int = 1,
    ) -> BookingPage:
        """The actor's own bookings, most recently updated first."""
        filters = BookingFilters(
            statuses=statuses,
            window_start=window_start,
            window_end=window_end,
            name=name,
            created_by=actor.user_id,
            order_by_updated=True,
        )
        return self._page(filters, page)

    @BaseService.measure_operation("list_by_owner_facility")
    def list_by_owner_facility(
        self,
        actor: UserPrincipal,
        facility_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        statuses: Optional[Collection[BookingStatus]] = None,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
        name: Optional[str] = None,
        page: int = 1,
    ) -> BookingPage:
        """Bookings across facilities the actor owns, latest start first."""
        filters = BookingFilters(
            statuses=statuses,
            window_start=window_start,
            window_end=window_end,
            name=name,
            facility_owner_id=actor.user_id,
            facility_id=facility_id,
            resource_id=resource_id,
        )
        return self._page(filters, page)

    @BaseService.measure_operation("list_by_resource")
    def list_by_resource(
        self,
        actor: UserPrincipal,
        resource_id: str,
        statuses: Optional[Collection[BookingStatus]] = None,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
        name: Optional[str] = None,
        page: int = 1,
    ) -> BookingPage:
        resource = self._get_resource_or_404(resource_id)
        self._ensure_resource_owner(resource, actor)
        filters = BookingFilters(
            statuses=statuses,
            window_start=window_start,
            window_end=window_end,
            name=name,
            resource_id=resource_id,
        )
        return self._page(filters, page)

    # Helpers

    def _page(self, filters: BookingFilters, page: int) -> BookingPage:
        page_size = settings.booking_page_size
        items, total = self.repository.paginated_query(filters, page=page, page_size=page_size)
        return BookingPage(items=items, total=total, page=page, page_size=page_size)

    @staticmethod
    def _normalize_window(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
        start, end = as_utc(start), as_utc(end)
        if start >= end:
            raise ValidationException(
                "Booking start must be before its end",
                code="INVALID_TIME_RANGE",
                details={"start_time": start.isoformat(), "end_time": end.isoformat()},
            )
        return start, end

    @staticmethod
    def _hours_for(resource: Resource) -> OperatingHours:
        facility = resource.facility
        return OperatingHours(
            daily_start=facility.daily_start,
            daily_end=facility.daily_end,
            utc_offset_minutes=facility.utc_offset_minutes,
        )

    def _get_booking_or_404(self, booking_id: str, lock: bool = False) -> Booking:
        booking = self.repository.get_live_booking(booking_id, lock=lock)
        if booking is None:
            raise NotFoundException("Booking not found", details={"booking_id": booking_id})
        return booking

    def _lock_booking(self, booking_id: str) -> Tuple[Booking, Resource]:
        """
        Lock the booking's resource, then re-read the booking under that lock.

        Every writer takes the resource lock first, so the re-read sees any
        transition that committed while this request was waiting.
        """
        resource_id = self._get_booking_or_404(booking_id).resource_id
        resource = self._get_resource_or_404(resource_id, lock=True)
        return self._get_booking_or_404(booking_id, lock=True), resource

    def _get_resource_or_404(self, resource_id: str, lock: bool = False) -> Resource:
        resource = self.facility_repository.get_resource(resource_id, lock=lock)
        if resource is None:
            raise NotFoundException("Resource not found", details={"resource_id": resource_id})
        return resource

    @staticmethod
    def _ensure_resource_owner(resource: Resource, actor: UserPrincipal) -> None:
        if not resource.is_owned_by(actor.user_id):
            raise ForbiddenException(
                "Only the resource operator can manage its bookings",
                details={"resource_id": resource.id},
            )

    def _resolve_integrity_conflict_message(self, integrity_error: IntegrityError) -> Optional[str]:
        """
        Return a conflict message when ``integrity_error`` is the no-overlap constraint.
        """
        orig = getattr(integrity_error, "orig", None)
        diag = getattr(orig, "diag", None)
        constraint_name = ""
        if diag is not None:
            constraint_name = getattr(diag, "constraint_name", "") or ""

        if not constraint_name and orig is not None and NO_OVERLAP_CONSTRAINT in str(orig):
            constraint_name = NO_OVERLAP_CONSTRAINT

        if constraint_name == NO_OVERLAP_CONSTRAINT:
            return RESOURCE_CONFLICT_MESSAGE
        return None

    def _raise_conflict_from_repo_error(
        self,
        exc: RepositoryException,
        resource_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        booking_id: Optional[str] = None,
    ) -> None:
        """
        Translate an exclusion-constraint violation into a booking conflict.

        Returns without raising for any other repository error; the caller re-raises.
        """
        cause = exc.__cause__
        message: Optional[str] = None
        if isinstance(cause, IntegrityError):
            message = self._resolve_integrity_conflict_message(cause)
        elif "exclusion constraint" in str(exc).lower():
            message = GENERIC_CONFLICT_MESSAGE
        if message is None:
            return

        details = {
            key: value
            for key, value in {
                "resource_id": resource_id,
                "booking_id": booking_id,
                "start_time": start.isoformat() if start else None,
                "end_time": end.isoformat() if end else None,
            }.items()
            if value is not None
        }
        raise BookingConflictException(message=message, details=details) from exc

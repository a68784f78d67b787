# backend/fieldbook/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

Services are built per request around the request's session; the
notification hub is the process-wide instance created at startup.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...notifications.hub import NotificationHub, get_notification_hub
from ...services.booking_service import BookingService
from ...services.calendar_service import CalendarService
from ...services.notification_service import NotificationService


def get_hub() -> NotificationHub:
    """Get the notification hub for dependency injection."""
    return get_notification_hub()


def get_notification_service(
    db: Session = Depends(get_db),
    hub: NotificationHub = Depends(get_hub),
) -> NotificationService:
    return NotificationService(db, hub)


def get_booking_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> BookingService:
    """Booking service wired to publish decision notifications."""
    return BookingService(db, notification_service=notification_service)


def get_calendar_service(db: Session = Depends(get_db)) -> CalendarService:
    return CalendarService(db)

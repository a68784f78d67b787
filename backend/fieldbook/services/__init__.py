"""
Service layer for the Fieldbook platform.

- BookingService: booking lifecycle, transitions and listings
- ConflictChecker: operating hours, overlap and past-time checks
- CalendarService: weekly availability grid
- NotificationService: notification inbox and live publish
"""

from .base import BaseService
from .booking_service import BookingPage, BookingService, StatusChange
from .calendar_service import CalendarService, CalendarSlot
from .conflict_checker import ConflictChecker
from .notification_service import NotificationPage, NotificationService

__all__ = [
    "BaseService",
    "BookingPage",
    "BookingService",
    "CalendarService",
    "CalendarSlot",
    "ConflictChecker",
    "NotificationPage",
    "NotificationService",
    "StatusChange",
]

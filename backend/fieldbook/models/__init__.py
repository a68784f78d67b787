"""
Database models for the Fieldbook platform.

Importing this package registers every table on ``Base.metadata``.
"""

from .booking import ALLOWED_TRANSITIONS, Booking, BookingStatus, can_transition
from .facility import Facility, Resource
from .notification import Notification

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Booking",
    "BookingStatus",
    "Facility",
    "Notification",
    "Resource",
    "can_transition",
]

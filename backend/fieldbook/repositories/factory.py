# backend/fieldbook/repositories/factory.py
"""
Repository Factory for the Fieldbook platform

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .facility_repository import FacilityRepository
    from .notification_repository import NotificationRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.
    """

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_facility_repository(db: Session) -> "FacilityRepository":
        from .facility_repository import FacilityRepository

        return FacilityRepository(db)

    @staticmethod
    def create_notification_repository(db: Session) -> "NotificationRepository":
        from .notification_repository import NotificationRepository

        return NotificationRepository(db)

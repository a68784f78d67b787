# backend/fieldbook/repositories/__init__.py
"""
Repository Pattern Implementation for the Fieldbook platform

Key Components:
- BaseRepository: Foundation for all repositories with generic operations
- IRepository: Interface defining required methods for all repositories
- RepositoryFactory: Factory for creating repository instances
- BookingRepository: Overlap checks, soft deletion, filtered listings
- FacilityRepository: Facilities, resources and operating hours
- NotificationRepository: Notification inbox rows

Usage:
    from fieldbook.repositories import RepositoryFactory

    repository = RepositoryFactory.create_booking_repository(db)
    clash = repository.find_overlapping(resource_id, start, end)
"""

from .base_repository import BaseRepository, IRepository
from .booking_repository import BookingFilters, BookingRepository
from .facility_repository import FacilityRepository, OperatingHours
from .factory import RepositoryFactory
from .notification_repository import NotificationRepository

__all__ = [
    "BaseRepository",
    "BookingFilters",
    "BookingRepository",
    "FacilityRepository",
    "IRepository",
    "NotificationRepository",
    "OperatingHours",
    "RepositoryFactory",
]

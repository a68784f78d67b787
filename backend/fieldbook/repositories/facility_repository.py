# backend/fieldbook/repositories/facility_repository.py
"""
Facility Repository for the Fieldbook platform

Lookups for facilities, their resources and operating hours.
"""

from dataclasses import dataclass
from datetime import time
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.facility import Facility, Resource
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperatingHours:
    daily_start: time
    daily_end: time
    utc_offset_minutes: int


class FacilityRepository(BaseRepository[Facility]):
    def __init__(self, db: Session):
        super().__init__(db, Facility)
        self.logger = logging.getLogger(__name__)

    def get_facility(self, facility_id: str) -> Optional[Facility]:
        return self.get_by_id(facility_id)

    def get_resource(self, resource_id: str, lock: bool = False) -> Optional[Resource]:
        """
        Fetch a resource with its facility.

        Args:
            resource_id: Resource to load
            lock: Take a row lock (``SELECT ... FOR UPDATE``) so concurrent
                writers on the same resource serialize until commit
        """
        try:
            query = self.db.query(Resource).filter(Resource.id == resource_id)
            if lock:
                query = query.with_for_update()
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting resource {resource_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve resource: {str(e)}")

    def get_operating_hours(self, resource_id: str) -> Optional[OperatingHours]:
        resource = self.get_resource(resource_id)
        if resource is None:
            return None
        facility = resource.facility
        return OperatingHours(
            daily_start=facility.daily_start,
            daily_end=facility.daily_end,
            utc_offset_minutes=facility.utc_offset_minutes,
        )

    def list_resources(self, facility_id: str) -> List[Resource]:
        query = (
            self.db.query(Resource)
            .options(joinedload(Resource.facility))
            .filter(Resource.facility_id == facility_id)
            .order_by(Resource.name, Resource.id)
        )
        return self._execute_query(query)

"""
Unit fixtures: a fresh in-memory SQLite database per test plus small
factories for facilities, resources and bookings.
"""

from datetime import datetime, time, timedelta
from typing import Optional

import pytest
import pytz
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from fieldbook.database import Base
from fieldbook.models.booking import Booking, BookingStatus
from fieldbook.models.facility import Facility, Resource
from fieldbook.notifications.hub import NotificationHub
from fieldbook.principal import UserPrincipal

# Import models so Base.metadata is populated for create_all.
import fieldbook.models  # noqa: F401

OWNER_ID = "01HOWNER0000000000000000AA"
REQUESTER_ID = "01HREQUESTER00000000000000"
STRANGER_ID = "01HSTRANGER000000000000000"


@pytest.fixture(scope="function")
def _unit_engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def unit_db(_unit_engine) -> Session:
    """Session on a throwaway database; services may commit freely."""
    SessionLocal = sessionmaker(bind=_unit_engine, expire_on_commit=False, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def owner() -> UserPrincipal:
    return UserPrincipal(user_id=OWNER_ID, name="Field Owner", phone="0900000001")


@pytest.fixture
def requester() -> UserPrincipal:
    return UserPrincipal(user_id=REQUESTER_ID, name="Nguyen Van A", phone="0900000002")


@pytest.fixture
def stranger() -> UserPrincipal:
    return UserPrincipal(user_id=STRANGER_ID, name="Someone Else")


@pytest.fixture
def hub() -> NotificationHub:
    return NotificationHub(max_queue_size=10)


def _make_facility(
    db: Session,
    *,
    owner_id: str = OWNER_ID,
    name: str = "Riverside Pitches",
    daily_start: time = time(0, 0),
    daily_end: time = time(23, 59, 59),
    utc_offset_minutes: int = 0,
) -> Facility:
    facility = Facility(
        name=name,
        owner_id=owner_id,
        daily_start=daily_start,
        daily_end=daily_end,
        utc_offset_minutes=utc_offset_minutes,
    )
    db.add(facility)
    db.commit()
    return facility


def _make_resource(
    db: Session,
    facility: Facility,
    *,
    name: str = "Pitch 1",
    owner_id: Optional[str] = None,
) -> Resource:
    resource = Resource(
        facility_id=facility.id,
        name=name,
        owner_id=owner_id or facility.owner_id,
    )
    db.add(resource)
    db.commit()
    return resource


def _make_booking(
    db: Session,
    resource: Resource,
    start: datetime,
    end: Optional[datetime] = None,
    *,
    status: BookingStatus = BookingStatus.ACCEPTED,
    created_by: str = REQUESTER_ID,
    full_name: str = "Nguyen Van A",
) -> Booking:
    booking = Booking(
        resource_id=resource.id,
        start_time=start,
        end_time=end or start + timedelta(hours=1),
        status=status.value,
        full_name=full_name,
        created_by=created_by,
        updated_by=created_by,
    )
    db.add(booking)
    db.commit()
    return booking


def _future_at(hour: int, minute: int = 0, days: int = 2) -> datetime:
    """A UTC datetime ``days`` from today at ``hour:minute``."""
    day = (datetime.now(pytz.UTC) + timedelta(days=days)).date()
    return pytz.UTC.localize(datetime.combine(day, time(hour, minute)))


@pytest.fixture
def make_facility(unit_db):
    def factory(**kwargs) -> Facility:
        return _make_facility(unit_db, **kwargs)

    return factory


@pytest.fixture
def make_resource(unit_db):
    def factory(facility: Facility, **kwargs) -> Resource:
        return _make_resource(unit_db, facility, **kwargs)

    return factory


@pytest.fixture
def make_booking(unit_db):
    def factory(resource: Resource, start: datetime, end: Optional[datetime] = None, **kwargs):
        return _make_booking(unit_db, resource, start, end, **kwargs)

    return factory


@pytest.fixture
def future_at():
    return _future_at


@pytest.fixture
def facility(make_facility) -> Facility:
    return make_facility()


@pytest.fixture
def resource(make_resource, facility) -> Resource:
    return make_resource(facility)

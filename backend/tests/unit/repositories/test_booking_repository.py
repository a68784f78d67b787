from datetime import datetime, time

import pytest
import pytz
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from fieldbook.core.exceptions import RepositoryException
from fieldbook.models.booking import Booking, BookingStatus
from fieldbook.repositories import RepositoryFactory
from fieldbook.repositories.booking_repository import BookingFilters


def utc(hour: int, minute: int = 0) -> datetime:
    return pytz.UTC.localize(datetime(2026, 10, 21, hour, minute))


def as_hour(booking: Booking) -> int:
    return booking.start_time.hour


@pytest.fixture
def repo(unit_db):
    return RepositoryFactory.create_booking_repository(unit_db)


class TestBookingRepository:
    def test_find_overlapping_filters_by_status(self, repo, resource, make_booking):
        make_booking(resource, utc(10), utc(11), status=BookingStatus.PENDING)

        assert repo.find_overlapping(resource.id, utc(10), utc(11), status=BookingStatus.PENDING)
        assert not repo.find_overlapping(resource.id, utc(10), utc(11))

    def test_create_wraps_integrity_errors(self, unit_db, repo, resource):
        with pytest.raises(RepositoryException) as exc_info:
            repo.create(
                resource_id=resource.id,
                start_time=utc(11),
                end_time=utc(10),
                status=BookingStatus.PENDING.value,
                full_name="Backwards",
                created_by="someone",
            )
        unit_db.rollback()

        assert isinstance(exc_info.value.__cause__, IntegrityError)

    def test_bulk_soft_delete_skips_already_deleted(
        self, unit_db, repo, resource, make_booking
    ):
        live = make_booking(resource, utc(10), utc(11))
        gone = make_booking(resource, utc(12), utc(13))
        repo.soft_delete(gone, "earlier", utc(9))
        unit_db.commit()

        deleted = repo.bulk_soft_delete_by_resource_ids([resource.id], "operator", utc(14))
        unit_db.commit()

        assert deleted == 1
        unit_db.expire_all()
        assert unit_db.get(Booking, live.id).deleted_by == "operator"
        assert unit_db.get(Booking, gone.id).deleted_by == "earlier"

    def test_bulk_soft_delete_with_no_resources(self, repo):
        assert repo.bulk_soft_delete_by_resource_ids([], "operator", utc(14)) == 0

    def test_paginated_query_returns_all_rows_for_page_zero(self, repo, resource, make_booking):
        for hour in range(8, 14):
            make_booking(resource, utc(hour), utc(hour, 30))

        items, total = repo.paginated_query(BookingFilters(resource_id=resource.id), 0, 4)
        assert total == 6
        assert len(items) == 6

        items, total = repo.paginated_query(BookingFilters(resource_id=resource.id), 2, 4)
        assert total == 6
        assert [as_hour(b) for b in items] == [9, 8]

    @pytest.mark.parametrize(
        ("needle", "expected"),
        [
            ("%", ["100% Club"]),
            ("_", ["Team_B"]),
            ("team", ["TeamAB", "Team_B"]),
            ("m_b", ["Team_B"]),
        ],
    )
    def test_name_filter_treats_wildcards_literally(
        self, repo, resource, make_booking, needle, expected
    ):
        make_booking(resource, utc(8), full_name="100% Club")
        make_booking(resource, utc(9), full_name="Team_B")
        make_booking(resource, utc(10), full_name="TeamAB")

        items, _ = repo.paginated_query(
            BookingFilters(resource_id=resource.id, name=needle), 0, 15
        )

        assert sorted(b.full_name for b in items) == expected

    def test_locked_read_reloads_committed_state(
        self, unit_db, _unit_engine, repo, resource, make_booking
    ):
        booking = make_booking(resource, utc(10), utc(11), status=BookingStatus.PENDING)
        assert repo.get_live_booking(booking.id).status == BookingStatus.PENDING.value

        other = sessionmaker(bind=_unit_engine, expire_on_commit=False, future=True)()
        try:
            other.get(Booking, booking.id).status = BookingStatus.ACCEPTED.value
            other.commit()
        finally:
            other.close()

        assert repo.get_live_booking(booking.id).status == BookingStatus.PENDING.value
        locked = repo.get_live_booking(booking.id, lock=True)
        assert locked is booking
        assert locked.status == BookingStatus.ACCEPTED.value

    def test_list_accepted_in_range(self, repo, facility, make_resource, make_booking):
        first = make_resource(facility, name="Pitch 1")
        second = make_resource(facility, name="Pitch 2")
        make_booking(first, utc(8), utc(9))
        make_booking(second, utc(8, 30), utc(9, 30))
        make_booking(second, utc(8), utc(9), status=BookingStatus.PENDING)
        make_booking(first, utc(12), utc(13))

        found = repo.list_accepted_in_range([first.id, second.id], utc(8), utc(10))

        assert len(found) == 2
        assert all(b.status == BookingStatus.ACCEPTED.value for b in found)


class TestFacilityRepository:
    def test_operating_hours_for_resource(self, unit_db, make_facility, make_resource):
        facility = make_facility(
            daily_start=time(6, 0), daily_end=time(23, 0), utc_offset_minutes=420
        )
        resource = make_resource(facility)
        repo = RepositoryFactory.create_facility_repository(unit_db)

        hours = repo.get_operating_hours(resource.id)

        assert (hours.daily_start, hours.daily_end, hours.utc_offset_minutes) == (
            time(6, 0),
            time(23, 0),
            420,
        )
        assert repo.get_operating_hours("01HMISSING0000000000000000") is None

    def test_list_resources_sorted_by_name(self, unit_db, facility, make_resource):
        make_resource(facility, name="Pitch B")
        make_resource(facility, name="Pitch A")
        repo = RepositoryFactory.create_facility_repository(unit_db)

        assert [r.name for r in repo.list_resources(facility.id)] == ["Pitch A", "Pitch B"]

    def test_get_resource_with_lock(self, unit_db, resource):
        repo = RepositoryFactory.create_facility_repository(unit_db)
        assert repo.get_resource(resource.id, lock=True).id == resource.id

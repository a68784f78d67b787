from datetime import datetime, timedelta

import pytest
import pytz

from fieldbook.models.notification import Notification
from fieldbook.services.notification_service import NotificationService

RECIPIENT = "01HRECIPIENT00000000000000"
OTHER = "01HOTHERRECIPIENT000000000"


@pytest.fixture
def service(unit_db, hub) -> NotificationService:
    return NotificationService(unit_db, hub)


class TestCreateNotification:
    @pytest.mark.asyncio
    async def test_persists_without_live_connection(self, unit_db, service):
        notification = await service.create_notification(
            RECIPIENT, "Hello", description="World", metadata={"type": "info"}
        )

        stored = unit_db.query(Notification).one()
        assert stored.id == notification.id
        assert stored.is_read is False
        assert stored.data == {"type": "info"}

    @pytest.mark.asyncio
    async def test_publishes_committed_payload(self, service, hub):
        channel = await hub.subscribe(RECIPIENT)
        listener = channel.attach()

        notification = await service.create_notification(RECIPIENT, "Hello")

        payload = await listener.get()
        assert payload["id"] == notification.id
        assert payload["title"] == "Hello"
        assert payload["metadata"] == {}
        assert payload["is_read"] is False

    @pytest.mark.asyncio
    async def test_other_recipients_do_not_receive(self, service, hub):
        channel = await hub.subscribe(OTHER)
        listener = channel.attach()

        await service.create_notification(RECIPIENT, "Hello")

        assert listener.pending() == 0


class TestInbox:
    @pytest.mark.asyncio
    async def test_pagination_and_read_filter(self, service):
        for index in range(20):
            await service.create_notification(RECIPIENT, f"Notice {index}")
        await service.create_notification(OTHER, "Not yours")

        page_two = service.get_notifications(RECIPIENT, page=2)
        assert page_two.total == 20
        assert len(page_two.items) == 5
        assert page_two.total_pages == 2

        first_ids = [n.id for n in service.get_notifications(RECIPIENT, page=1).items[:3]]
        assert service.mark_as_read(RECIPIENT, first_ids) == 3

        assert service.get_notifications(RECIPIENT, is_read=True).total == 3
        assert service.get_notifications(RECIPIENT, is_read=False).total == 17
        assert service.get_unread_count(RECIPIENT) == 17

    @pytest.mark.asyncio
    async def test_mark_as_read_ignores_foreign_ids(self, service):
        foreign = await service.create_notification(OTHER, "Not yours")

        assert service.mark_as_read(RECIPIENT, [foreign.id]) == 0
        assert service.get_unread_count(OTHER) == 1

    @pytest.mark.asyncio
    async def test_mark_all_as_read(self, service):
        await service.create_notification(RECIPIENT, "One")
        await service.create_notification(RECIPIENT, "Two")

        assert service.mark_all_as_read(RECIPIENT) == 2
        assert service.mark_all_as_read(RECIPIENT) == 0
        assert service.get_unread_count(RECIPIENT) == 0

    def test_newest_first(self, unit_db, service):
        base = pytz.UTC.localize(datetime(2026, 10, 21, 9, 0))
        for minutes, title in [(0, "oldest"), (10, "middle"), (20, "newest")]:
            unit_db.add(
                Notification(
                    recipient_id=RECIPIENT,
                    title=title,
                    created_at=base + timedelta(minutes=minutes),
                )
            )
        unit_db.commit()

        titles = [n.title for n in service.get_notifications(RECIPIENT).items]
        assert titles == ["newest", "middle", "oldest"]

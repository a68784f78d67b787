import asyncio
import json

import pytest

from fieldbook.notifications.stream import create_notification_stream, format_notification_event

RECIPIENT = "01HRECIPIENT00000000000000"


def test_format_notification_event():
    event = format_notification_event({"id": "n1", "title": "Hi"})

    assert event["event"] == "notification"
    assert event["id"] == "n1"
    assert json.loads(event["data"]) == {"id": "n1", "title": "Hi"}


class TestNotificationStream:
    @pytest.mark.asyncio
    async def test_connected_then_notifications(self, hub):
        stream = create_notification_stream(hub, RECIPIENT, heartbeat_interval=5)

        connected = await stream.__anext__()
        assert connected["event"] == "connected"
        assert hub.connection_count(RECIPIENT) == 1

        await hub.publish(RECIPIENT, {"id": "n1", "title": "Hi"})
        event = await stream.__anext__()
        assert event["event"] == "notification"
        assert json.loads(event["data"])["title"] == "Hi"

        await stream.aclose()
        assert not hub.is_subscribed(RECIPIENT)

    @pytest.mark.asyncio
    async def test_heartbeat_while_idle(self, hub):
        stream = create_notification_stream(hub, RECIPIENT, heartbeat_interval=0.01)
        await stream.__anext__()

        event = await stream.__anext__()

        assert event["event"] == "heartbeat"
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_closing_one_stream_leaves_the_other(self, hub):
        first = create_notification_stream(hub, RECIPIENT, heartbeat_interval=5)
        second = create_notification_stream(hub, RECIPIENT, heartbeat_interval=5)
        await first.__anext__()
        await second.__anext__()

        await first.aclose()

        assert hub.connection_count(RECIPIENT) == 1
        await hub.publish(RECIPIENT, {"id": "n2"})
        event = await second.__anext__()
        assert event["id"] == "n2"

        await second.aclose()
        assert hub.connection_count(RECIPIENT) == 0

    @pytest.mark.asyncio
    async def test_cancelled_reader_unsubscribes_once(self, hub):
        stream = create_notification_stream(hub, RECIPIENT, heartbeat_interval=5)
        await stream.__anext__()

        reader = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0)
        reader.cancel()
        with pytest.raises(asyncio.CancelledError):
            await reader

        assert not hub.is_subscribed(RECIPIENT)

    @pytest.mark.asyncio
    async def test_stream_ends_when_hub_closes(self, hub):
        stream = create_notification_stream(hub, RECIPIENT, heartbeat_interval=5)
        await stream.__anext__()

        await hub.close()

        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

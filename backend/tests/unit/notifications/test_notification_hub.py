import asyncio

import pytest

from fieldbook.notifications import hub as hub_module
from fieldbook.notifications.hub import KeyedLock, NotificationHub

RECIPIENT = "01HRECIPIENT00000000000000"


class TestSubscriptionCounting:
    @pytest.mark.asyncio
    async def test_two_tabs_share_one_channel(self, hub):
        first = await hub.subscribe(RECIPIENT)
        second = await hub.subscribe(RECIPIENT)

        assert first is second
        assert hub.connection_count(RECIPIENT) == 2

    @pytest.mark.asyncio
    async def test_unsubscribing_one_tab_keeps_delivery(self, hub):
        channel = await hub.subscribe(RECIPIENT)
        await hub.subscribe(RECIPIENT)
        listener = channel.attach()

        await hub.unsubscribe(RECIPIENT)

        assert hub.is_subscribed(RECIPIENT)
        assert await hub.publish(RECIPIENT, {"id": "n1"}) == 1
        assert await listener.get() == {"id": "n1"}

    @pytest.mark.asyncio
    async def test_last_unsubscribe_removes_entry_and_closes(self, hub):
        channel = await hub.subscribe(RECIPIENT)
        listener = channel.attach()

        await hub.unsubscribe(RECIPIENT)

        assert not hub.is_subscribed(RECIPIENT)
        assert channel.closed
        assert await listener.get() is None
        assert await hub.publish(RECIPIENT, {"id": "late"}) == 0

    @pytest.mark.asyncio
    async def test_unsubscribe_unknown_recipient_is_harmless(self, hub):
        await hub.unsubscribe(RECIPIENT)
        assert hub.total_connections() == 0

    @pytest.mark.asyncio
    async def test_concurrent_subscribes_are_all_counted(self, hub):
        await asyncio.gather(*(hub.subscribe(RECIPIENT) for _ in range(25)))
        assert hub.connection_count(RECIPIENT) == 25

        await asyncio.gather(*(hub.unsubscribe(RECIPIENT) for _ in range(25)))
        assert not hub.is_subscribed(RECIPIENT)


class TestPublish:
    @pytest.mark.asyncio
    async def test_publish_without_subscriber_returns_zero(self, hub):
        assert await hub.publish(RECIPIENT, {"id": "n1"}) == 0

    @pytest.mark.asyncio
    async def test_multicast_to_every_listener(self, hub):
        channel = await hub.subscribe(RECIPIENT)
        await hub.subscribe(RECIPIENT)
        tab_one = channel.attach()
        tab_two = channel.attach()

        assert await hub.publish(RECIPIENT, {"id": "n1"}) == 2
        assert await tab_one.get() == {"id": "n1"}
        assert await tab_two.get() == {"id": "n1"}

    @pytest.mark.asyncio
    async def test_full_listener_drops_events(self):
        hub = NotificationHub(max_queue_size=2)
        channel = await hub.subscribe(RECIPIENT)
        listener = channel.attach()

        results = [await hub.publish(RECIPIENT, {"id": f"n{i}"}) for i in range(3)]

        assert results == [1, 1, 0]
        assert listener.pending() == 2

    @pytest.mark.asyncio
    async def test_detached_listener_stops_receiving(self, hub):
        channel = await hub.subscribe(RECIPIENT)
        listener = channel.attach()
        listener.detach()

        assert await hub.publish(RECIPIENT, {"id": "n1"}) == 0
        assert channel.listener_count == 0

    @pytest.mark.asyncio
    async def test_close_ends_every_listener(self, hub):
        channel = await hub.subscribe(RECIPIENT)
        listener = channel.attach()

        await hub.close()

        assert hub.total_connections() == 0
        assert [item async for item in listener] == []


class TestKeyedLock:
    @pytest.mark.asyncio
    async def test_entries_are_discarded_after_use(self):
        locks = KeyedLock()

        async with locks.hold("a"):
            assert len(locks) == 1

        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self):
        locks = KeyedLock()
        order = []

        async def worker(name: str) -> None:
            async with locks.hold("key"):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert order == ["a-in", "a-out", "b-in", "b-out"]


class TestModuleSingleton:
    @pytest.mark.asyncio
    async def test_lifecycle(self, monkeypatch):
        monkeypatch.setattr(hub_module, "_hub", None)

        with pytest.raises(RuntimeError):
            hub_module.get_notification_hub()

        created = hub_module.init_notification_hub()
        assert hub_module.get_notification_hub() is created
        assert hub_module.init_notification_hub() is created

        await hub_module.shutdown_notification_hub()
        assert not hub_module.is_notification_hub_initialized()

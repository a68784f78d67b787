# backend/fieldbook/notifications/hub.py
"""
In-process fan-out hub for live notification streams.

Architecture:
- One NotificationHub per worker process
- recipient id -> (connection count, NotificationChannel)
- Each live SSE connection attaches its own ChannelListener queue to the
  recipient's shared channel, so one publish reaches every open tab
- Every read-modify-write on a recipient's entry runs under that
  recipient's asyncio.Lock

Delivery is best-effort: a publish for a recipient with no entry is dropped
and the notification stays reachable through the paginated inbox query.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from ..core.config import settings
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

Payload = Dict[str, Any]

_CLOSED = object()


class ChannelListener:
    """One live connection's view of a recipient channel."""

    def __init__(self, channel: "NotificationChannel", max_size: int) -> None:
        self._channel = channel
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=max_size)
        self._detached = False

    def _offer(self, payload: Payload) -> bool:
        try:
            self._queue.put_nowait(payload)
            return True
        except asyncio.QueueFull:
            return False

    def _close(self) -> None:
        # The end marker must get through even when the queue is full.
        while True:
            try:
                self._queue.put_nowait(_CLOSED)
                return
            except asyncio.QueueFull:
                self._queue.get_nowait()

    async def get(self) -> Optional[Payload]:
        """Wait for the next payload; ``None`` once the channel is closed."""
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for any other waiter on this listener.
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def pending(self) -> int:
        return self._queue.qsize()

    def detach(self) -> None:
        if not self._detached:
            self._detached = True
            self._channel._remove(self)

    def __aiter__(self) -> "ChannelListener":
        return self

    async def __anext__(self) -> Payload:
        item = await self.get()
        if item is None:
            raise StopAsyncIteration
        return item


class NotificationChannel:
    """Multicast channel shared by every live connection of one recipient."""

    def __init__(self, recipient_id: str, max_queue_size: int) -> None:
        self.recipient_id = recipient_id
        self._max_queue_size = max_queue_size
        self._listeners: List[ChannelListener] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def attach(self) -> ChannelListener:
        listener = ChannelListener(self, self._max_queue_size)
        if self._closed:
            listener._close()
        else:
            self._listeners.append(listener)
        return listener

    def send(self, payload: Payload) -> int:
        """Push ``payload`` to every listener; returns how many accepted it."""
        if self._closed:
            return 0
        delivered = 0
        for listener in list(self._listeners):
            if listener._offer(payload):
                delivered += 1
            else:
                prometheus_metrics.record_notification_publish("dropped")
                logger.warning(
                    "[HUB] Listener queue full, dropping event",
                    extra={"recipient_id": self.recipient_id, "event_id": payload.get("id")},
                )
        return delivered

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for listener in self._listeners:
            listener._close()
        self._listeners.clear()

    def _remove(self, listener: ChannelListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)


@dataclass
class _Subscription:
    channel: NotificationChannel
    connection_count: int = 0


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class KeyedLock:
    """
    One asyncio.Lock per key, discarded when nobody holds or waits on it.

    Lookup and bookkeeping never await, so they cannot interleave on a
    single event loop.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _LockEntry()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


class NotificationHub:
    """Ref-counted per-recipient channels with keyed locking."""

    def __init__(self, max_queue_size: Optional[int] = None) -> None:
        self._max_queue_size = max_queue_size or settings.notification_queue_size
        self._subscriptions: Dict[str, _Subscription] = {}
        self._locks = KeyedLock()

    async def subscribe(self, recipient_id: str) -> NotificationChannel:
        """
        Register one live connection for ``recipient_id``.

        Returns:
            The recipient's shared channel; call ``attach()`` on it to listen.
        """
        async with self._locks.hold(recipient_id):
            subscription = self._subscriptions.get(recipient_id)
            if subscription is None:
                subscription = _Subscription(
                    channel=NotificationChannel(recipient_id, self._max_queue_size)
                )
                self._subscriptions[recipient_id] = subscription
            subscription.connection_count += 1
            count = subscription.connection_count
        prometheus_metrics.set_sse_connections(self.total_connections())
        logger.info(
            "[HUB] Subscribed",
            extra={"recipient_id": recipient_id, "connection_count": count},
        )
        return subscription.channel

    async def unsubscribe(self, recipient_id: str) -> None:
        """
        Release one live connection; the last release closes the channel.
        """
        async with self._locks.hold(recipient_id):
            subscription = self._subscriptions.get(recipient_id)
            if subscription is None:
                logger.warning(
                    "[HUB] Unsubscribe for unknown recipient",
                    extra={"recipient_id": recipient_id},
                )
                return
            subscription.connection_count -= 1
            count = subscription.connection_count
            if count <= 0:
                del self._subscriptions[recipient_id]
                subscription.channel.close()
        prometheus_metrics.set_sse_connections(self.total_connections())
        logger.info(
            "[HUB] Unsubscribed",
            extra={"recipient_id": recipient_id, "connection_count": max(count, 0)},
        )

    async def publish(self, recipient_id: str, payload: Payload) -> int:
        """
        Deliver ``payload`` to the recipient's live connections.

        Returns:
            Number of listeners that received it; 0 when nobody is connected.
        """
        async with self._locks.hold(recipient_id):
            subscription = self._subscriptions.get(recipient_id)
            if subscription is None:
                prometheus_metrics.record_notification_publish("no_subscriber")
                logger.debug(
                    "[HUB] No live connection, event dropped",
                    extra={"recipient_id": recipient_id, "event_id": payload.get("id")},
                )
                return 0
            delivered = subscription.channel.send(payload)
        if delivered:
            prometheus_metrics.record_notification_publish("delivered")
        return delivered

    def connection_count(self, recipient_id: str) -> int:
        subscription = self._subscriptions.get(recipient_id)
        return subscription.connection_count if subscription else 0

    def is_subscribed(self, recipient_id: str) -> bool:
        return recipient_id in self._subscriptions

    def total_connections(self) -> int:
        return sum(s.connection_count for s in self._subscriptions.values())

    async def close(self) -> None:
        """Close every channel; used on application shutdown."""
        for recipient_id in list(self._subscriptions):
            async with self._locks.hold(recipient_id):
                subscription = self._subscriptions.pop(recipient_id, None)
                if subscription is not None:
                    subscription.channel.close()
        prometheus_metrics.set_sse_connections(0)


# Single hub instance per worker process
_hub: Optional[NotificationHub] = None


def get_notification_hub() -> NotificationHub:
    """
    Get the shared hub instance.

    Raises:
        RuntimeError: If the hub is not initialized (call init_notification_hub first)
    """
    if _hub is None:
        raise RuntimeError(
            "Notification hub not initialized. Call init_notification_hub() during startup."
        )
    return _hub


def is_notification_hub_initialized() -> bool:
    return _hub is not None


def init_notification_hub() -> NotificationHub:
    """Create the shared hub. Call during application startup (lifespan)."""
    global _hub

    if _hub is None:
        _hub = NotificationHub()
        logger.info("[HUB] Notification hub initialized")
    return _hub


async def shutdown_notification_hub() -> None:
    global _hub

    if _hub is not None:
        await _hub.close()
        _hub = None
        logger.info("[HUB] Notification hub closed")

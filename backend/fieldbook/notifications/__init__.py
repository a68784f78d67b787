"""Live notification fan-out: the per-recipient hub and its SSE stream."""

from .hub import (
    ChannelListener,
    NotificationChannel,
    NotificationHub,
    get_notification_hub,
    init_notification_hub,
    shutdown_notification_hub,
)
from .stream import create_notification_stream

__all__ = [
    "ChannelListener",
    "NotificationChannel",
    "NotificationHub",
    "create_notification_stream",
    "get_notification_hub",
    "init_notification_hub",
    "shutdown_notification_hub",
]

# backend/fieldbook/notifications/stream.py
"""
SSE stream for live notifications.

Each stream owns exactly one hub subscription: ``subscribe`` runs when the
generator starts and ``unsubscribe`` runs once in ``finally`` when the client
disconnects (sse-starlette closes or cancels the generator) or the hub shuts
the channel down.

Event types:
- connected: first event after subscribing
- notification: a persisted notification, with the SSE ``id`` set
- heartbeat: sent when nothing arrived within the heartbeat interval
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import json
import logging
from typing import Any, AsyncGenerator, Dict, Optional

from ..core.config import settings
from .hub import NotificationHub

logger = logging.getLogger(__name__)


def format_notification_event(payload: Dict[str, Any]) -> Dict[str, str]:
    event: Dict[str, str] = {
        "event": "notification",
        "data": json.dumps(payload, default=str),
    }
    if payload.get("id"):
        event["id"] = str(payload["id"])
    return event


def _heartbeat_event() -> Dict[str, str]:
    return {
        "event": "heartbeat",
        "data": json.dumps(
            {"type": "heartbeat", "timestamp": datetime.now(timezone.utc).isoformat()}
        ),
    }


async def create_notification_stream(
    hub: NotificationHub,
    recipient_id: str,
    heartbeat_interval: Optional[float] = None,
) -> AsyncGenerator[Dict[str, str], None]:
    """
    Stream a recipient's notifications as SSE event dicts.

    Args:
        hub: The process-wide notification hub
        recipient_id: The recipient's ULID
        heartbeat_interval: Seconds between heartbeats (defaults to settings)

    Yields:
        SSE event dicts with keys: event, data, id (notification events only)
    """
    interval = heartbeat_interval or settings.sse_heartbeat_interval
    channel = await hub.subscribe(recipient_id)
    listener = channel.attach()
    try:
        yield {
            "event": "connected",
            "data": json.dumps(
                {
                    "recipient_id": recipient_id,
                    "status": "connected",
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            ),
        }

        while True:
            try:
                payload = await asyncio.wait_for(listener.get(), timeout=interval)
            except asyncio.TimeoutError:
                logger.debug(f"[SSE-HEARTBEAT] Sending heartbeat for recipient {recipient_id}")
                yield _heartbeat_event()
                continue

            if payload is None:
                logger.info(f"[SSE-STREAM] Channel closed for recipient {recipient_id}")
                break
            yield format_notification_event(payload)
    except asyncio.CancelledError:
        logger.info(f"[SSE-STREAM] Stream cancelled for recipient {recipient_id}")
        raise
    finally:
        listener.detach()
        await hub.unsubscribe(recipient_id)
        logger.info(f"[SSE-STREAM] Recipient {recipient_id} disconnected")

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..models.booking import BookingStatus


@dataclass(frozen=True)
class NotificationTemplate:
    type: str
    title: str
    body_template: str
    url_template: Optional[str] = None


BOOKING_ACCEPTED = NotificationTemplate(
    type="booking_accepted",
    title="Your booking has been accepted",
    body_template="{facility_name} {time_range} {resource_name}",
    url_template="/field-reservation/{facility_id}",
)

BOOKING_REJECTED = NotificationTemplate(
    type="booking_rejected",
    title="Your booking request has been rejected",
    body_template="{facility_name} {time_range} {resource_name}",
    url_template="/field-reservation/{facility_id}",
)

BOOKING_DECISION_TEMPLATES: Dict[BookingStatus, NotificationTemplate] = {
    BookingStatus.ACCEPTED: BOOKING_ACCEPTED,
    BookingStatus.REJECTED: BOOKING_REJECTED,
}


def render_notification(template: NotificationTemplate, **context: Any) -> Dict[str, Any]:
    """Return ``title``, ``description`` and ``metadata`` for a template."""
    url = template.url_template.format(**context) if template.url_template else None
    metadata: Dict[str, Any] = {"type": template.type}
    if url:
        metadata["title_href"] = url
        metadata["desc_href"] = url
    return {
        "title": template.title,
        "description": template.body_template.format(**context),
        "metadata": metadata,
    }

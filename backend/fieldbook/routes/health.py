# backend/fieldbook/routes/health.py
"""
Health check endpoint for monitoring and load balancer probes.
"""

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import API_VERSION, BRAND_NAME
from ..database import get_db
from ..notifications.hub import get_notification_hub, is_notification_hub_initialized

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _database_ok(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        logger.warning(f"Health check database probe failed: {exc}")
        return False


@router.get("/health")
def health_check(db: Session = Depends(get_db)) -> dict:
    """Liveness plus a cheap database probe; always answers 200."""
    database_ok = _database_ok(db)
    hub_ready = is_notification_hub_initialized()
    return {
        "status": "healthy" if database_ok else "degraded",
        "service": f"{BRAND_NAME.lower()}-api",
        "version": API_VERSION,
        "environment": settings.environment,
        "database": "ok" if database_ok else "unavailable",
        "sse_connections": get_notification_hub().total_connections() if hub_ready else 0,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }

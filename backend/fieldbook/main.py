# backend/fieldbook/main.py
"""
Fieldbook API application.

Run with:
    uvicorn fieldbook.main:app --app-dir backend
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator, Awaitable, Callable

from fastapi import APIRouter, FastAPI, Request, Response
import ulid

from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME, REQUEST_ID_HEADER
from .core.request_context import attach_request_id_filter, reset_request_id, set_request_id
from .database import init_db
from .errors import register_error_handlers
from .notifications.hub import init_notification_hub, shutdown_notification_hub
from .routes import health, prometheus
from .routes.v1 import bookings as bookings_v1, notifications as notifications_v1

logging.basicConfig(
    level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
attach_request_id_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    if settings.create_tables_on_startup:
        init_db()
        logger.info("Database tables ensured")

    init_notification_hub()

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")
    await shutdown_notification_hub()


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=app_lifespan,
)
register_error_handlers(app)


@app.middleware("http")
async def attach_request_id(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(ulid.ULID())
    request.state.request_id = request_id
    token = set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        reset_request_id(token)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


# Create API v1 router
api_v1 = APIRouter(prefix="/api/v1")

# Static /bookings/* paths are declared ahead of /bookings/{booking_id} inside the router
api_v1.include_router(bookings_v1.router)
api_v1.include_router(notifications_v1.router)

app.include_router(api_v1)
app.include_router(health.router)
app.include_router(prometheus.router)

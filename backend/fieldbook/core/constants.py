"""Application-wide constants."""

BRAND_NAME = "Fieldbook"

API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = f"Backend API for {BRAND_NAME} - time-slot booking for shared facilities"
API_VERSION = "1.0.0"

# Requests without an X-Request-ID header get a fresh ULID
REQUEST_ID_HEADER = "X-Request-ID"

"""Versioned API routers, mounted under /api/v1."""

from . import bookings, notifications

__all__ = ["bookings", "notifications"]

# backend/tests/conftest.py
"""
Pytest configuration.

Settings are read at import time, so the environment is pinned BEFORE any
fieldbook import: an in-memory database and no table creation on startup.
"""

import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"

import pytest  # noqa: E402

from fieldbook.services.base import BaseService  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_service_metrics():
    """Keep the class-level operation metrics from leaking between tests."""
    BaseService._class_metrics.clear()
    yield
    BaseService._class_metrics.clear()

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from fieldbook.database import get_db
from fieldbook.main import app


@pytest.fixture
def client(_unit_engine):
    """TestClient whose requests run against the per-test in-memory database."""
    TestingSessionLocal = sessionmaker(bind=_unit_engine, expire_on_commit=False, future=True)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_db, None)


def auth_headers(principal) -> dict:
    headers = {"X-User-Id": principal.user_id, "X-User-Name": principal.name}
    if principal.phone:
        headers["X-User-Phone"] = principal.phone
    return headers


@pytest.fixture
def headers_for():
    return auth_headers

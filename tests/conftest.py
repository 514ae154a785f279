"""Shared fixtures: every test gets its own app, database and uploads directory."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.database import Database
from app.main import create_app
from app.services.geocoder import StaticGeocoder
from app.services.storage import PhotoStorage
from tests.utils import NEW_YORK, reading_payload, register_and_login


@pytest.fixture
def settings(tmp_path):
    """Settings for an isolated test run."""
    return Settings(
        ENVIRONMENT="test",
        DATABASE_URL="sqlite://",
        UPLOAD_DIR=tmp_path / "uploads",
        RATE_LIMIT_MAX=0,
        MAX_FILE_UPLOAD=1,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def database(settings):
    """In-memory SQLite database shared by all connections of one test."""
    return Database(settings.DATABASE_URL, retry_delay=0.01, poolclass=StaticPool)


@pytest.fixture
def storage(settings):
    return PhotoStorage(settings.UPLOAD_DIR)


@pytest.fixture
def geocoder():
    """Geocoder that only knows one postal code."""
    return StaticGeocoder({"10001": NEW_YORK}, default=None)


@pytest.fixture
def app(settings, database, geocoder, storage) -> FastAPI:
    return create_app(settings=settings, database=database, geocoder=geocoder, storage=storage)


@pytest.fixture
def client(app):
    """Test client with the lifespan running, so the database is connected."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user(client):
    """A registered reader with a valid token."""
    return register_and_login(client, "Reader", "reader@example.com")


@pytest.fixture
def other_user(client):
    return register_and_login(client, "Other Reader", "other@example.com")


@pytest.fixture
def admin(client):
    return register_and_login(client, "Admin", "admin@example.com", role="admin")


@pytest.fixture
def reading(client, user) -> dict:
    """A pending reading owned by ``user``."""
    response = client.post("/api/meters", json=reading_payload(), headers=user["headers"])
    assert response.status_code == 201, response.text
    return response.json()["data"]

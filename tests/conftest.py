"""
Pytest fixtures for the UTASK API tests.

Every test gets its own SQLite file under ``tmp_path`` and an
application built with explicit settings, so nothing touches the
developer's database or environment.
"""
import itertools

import pytest
from fastapi.testclient import TestClient

from utask_api.app.core.config import Settings
from utask_api.app.core.db import Database
from utask_api.app.main import create_app


TEST_SECRET = "test-secret"
DEFAULT_PASSWORD = "segredo123"


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throw-away database."""
    return Settings(
        database_url=str(tmp_path / "utask-test.db"),
        secret_key=TEST_SECRET,
        log_level="WARNING",
    )


@pytest.fixture
def db(settings):
    """Migrated store handle on the same file the app uses."""
    database = Database.from_settings(settings)
    database.init()
    return database


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app, db):
    """Test client; entering it runs the application lifespan."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(client):
    """Register users through the API and return their id, token and auth headers."""
    counter = itertools.count(1)

    def _make(name=None, email=None, password=DEFAULT_PASSWORD, **extra):
        n = next(counter)
        payload = {
            "name": name or f"User {n}",
            "email": email or f"user{n}@example.com",
            "password": password,
            **extra,
        }
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 201, response.text
        body = response.json()
        token = body["token"]
        return {
            "id": body["user"]["id"],
            "email": body["user"]["email"],
            "password": password,
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    return _make


@pytest.fixture
def owner(make_user):
    return make_user(name="Olivia Owner", city="São Paulo", state="SP")


@pytest.fixture
def provider(make_user):
    return make_user(name="Paulo Provider")


@pytest.fixture
def other_provider(make_user):
    return make_user(name="Priscila Provider")


@pytest.fixture
def make_service(client, owner):
    """Post a service (by default as ``owner``) and return its JSON."""

    def _make(user=None, **overrides):
        user = user or owner
        payload = {
            "title": "Limpeza de apartamento",
            "description": "Apartamento de 2 quartos",
            "price": 200.0,
            "date": "2024-07-15",
            **overrides,
        }
        response = client.post("/api/services", json=payload, headers=user["headers"])
        assert response.status_code == 201, response.text
        return response.json()["service"]

    return _make


@pytest.fixture
def make_proposal(client):
    def _make(service_id, user, price=150.0, message="Posso fazer amanhã"):
        response = client.post(
            f"/api/services/{service_id}/proposals",
            json={"price": price, "message": message},
            headers=user["headers"],
        )
        assert response.status_code == 201, response.text
        return response.json()["proposal"]

    return _make

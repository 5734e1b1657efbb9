"""
Tests for application wiring: health check, error rendering and start-up.
"""
import pytest
from fastapi.testclient import TestClient

from utask_api.app.core.config import Settings
from utask_api.app.core.db import Database
from utask_api.app.main import create_app


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_unknown_route_renders_error_body(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_unexpected_errors_become_500(app, db):
    async def boom():
        raise RuntimeError("kaboom")

    app.add_api_route("/boom", boom)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        response = test_client.get("/boom")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_startup_migrates_database(tmp_path):
    settings = Settings(database_url=f"sqlite:///{tmp_path / 'fresh.db'}", log_level="WARNING")
    with TestClient(create_app(settings)) as test_client:
        assert test_client.get("/api/categories").status_code == 200
    assert (tmp_path / "fresh.db").exists()


def test_migrations_are_idempotent(settings):
    database = Database.from_settings(settings)
    assert database.init() == 4
    assert database.init() == 4
    with database.connection() as conn:
        count = conn.execute("SELECT COUNT(*) AS count FROM categories").fetchone()["count"]
    assert count == 8


def test_cors_enabled_when_origins_configured(settings):
    settings.cors_origins = ["http://localhost:3000"]
    with TestClient(create_app(settings)) as test_client:
        response = test_client.get("/health", headers={"Origin": "http://localhost:3000"})
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


TOO_BIG = 2**63


@pytest.mark.parametrize(
    "method,url,body",
    [
        ("get", f"/api/services/{TOO_BIG}", None),
        ("put", f"/api/services/{TOO_BIG}", {"title": "Novo"}),
        ("delete", f"/api/services/{TOO_BIG}", None),
        ("get", f"/api/services/{TOO_BIG}/proposals", None),
        ("post", f"/api/services/{TOO_BIG}/proposals", {"price": 100}),
        ("post", f"/api/proposals/{TOO_BIG}/accept", None),
        ("post", f"/api/proposals/{TOO_BIG}/reject", None),
        ("post", f"/api/proposals/{TOO_BIG}/counter", {"price": 100}),
        ("post", f"/api/notifications/{TOO_BIG}/read", None),
        ("get", f"/api/services?category={TOO_BIG}", None),
        ("get", f"/api/services?offset={TOO_BIG}", None),
        ("get", f"/api/notifications?offset={TOO_BIG}", None),
        ("get", f"/api/wallet/transactions?offset={TOO_BIG}", None),
        ("post", "/api/services/favorites", {"serviceId": TOO_BIG}),
        (
            "post",
            "/api/services",
            {"title": "T", "description": "D", "price": 10, "date": "2024-01-01", "category_id": TOO_BIG},
        ),
    ],
)
def test_ids_beyond_sqlite_range_are_400(client, owner, method, url, body):
    kwargs = {"headers": owner["headers"]}
    if body is not None:
        kwargs["json"] = body
    response = client.request(method.upper(), url, **kwargs)
    assert response.status_code == 400
    assert "error" in response.json()


def test_non_positive_ids_are_400(client, owner):
    assert client.get("/api/services/0", headers=owner["headers"]).status_code == 400

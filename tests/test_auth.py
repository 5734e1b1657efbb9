"""
Tests for registration, login and request authentication.
"""
import hashlib
import os

import pytest

from utask_api.app.core.security import create_access_token, decode_access_token

from .conftest import DEFAULT_PASSWORD, TEST_SECRET


REGISTER_URL = "/api/auth/register"


def _register_payload(**overrides):
    payload = {"name": "Maria Silva", "email": "maria@example.com", "password": "segredo123"}
    payload.update(overrides)
    return payload


class TestRegister:
    def test_returns_user_and_token(self, client):
        response = client.post(REGISTER_URL, json=_register_payload(city="Recife", state="PE"))
        assert response.status_code == 201
        body = response.json()
        assert body["user"]["email"] == "maria@example.com"
        assert body["user"]["city"] == "Recife"
        assert body["user"]["balance"] == 0
        assert "password" not in body["user"]
        assert "password_hash" not in body["user"]

        claims = decode_access_token(body["token"], TEST_SECRET)
        assert claims["userId"] == body["user"]["id"]
        assert claims["email"] == "maria@example.com"
        # Seven days by default.
        assert claims["exp"] - claims["iat"] == 7 * 24 * 60 * 60

    def test_duplicate_email_is_409(self, client):
        client.post(REGISTER_URL, json=_register_payload())
        response = client.post(REGISTER_URL, json=_register_payload(name="Outra Maria"))
        assert response.status_code == 409
        assert response.json() == {"error": "Email is already registered"}

    @pytest.mark.parametrize("email", ["maria", "maria@example", "ma ria@example.com", "@example.com"])
    def test_invalid_email_is_400(self, client, email):
        response = client.post(REGISTER_URL, json=_register_payload(email=email))
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid email address"}

    @pytest.mark.parametrize("password", ["curta1", "somenteletras", "12345678"])
    def test_weak_password_is_400(self, client, password):
        response = client.post(REGISTER_URL, json=_register_payload(password=password))
        assert response.status_code == 400

    def test_missing_fields_are_400(self, client):
        response = client.post(REGISTER_URL, json={"email": "maria@example.com"})
        assert response.status_code == 400
        assert "error" in response.json()


class TestLogin:
    def test_login_returns_token_and_sets_cookie(self, client, make_user):
        user = make_user(email="joao@example.com")
        response = client.post("/api/auth/login", json={"email": "joao@example.com", "password": DEFAULT_PASSWORD})
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["id"] == user["id"]
        assert body["token"]

        cookie = response.headers["set-cookie"]
        assert cookie.startswith("token=")
        assert "HttpOnly" in cookie
        assert "samesite=strict" in cookie.lower()
        assert "Max-Age=604800" in cookie

    def test_wrong_password_is_401(self, client, make_user):
        make_user(email="joao@example.com")
        response = client.post("/api/auth/login", json={"email": "joao@example.com", "password": "errada123"})
        assert response.status_code == 401
        assert "token" not in client.cookies

    def test_unknown_email_is_401(self, client):
        response = client.post("/api/auth/login", json={"email": "ninguem@example.com", "password": "x1234567"})
        assert response.status_code == 401

    def test_missing_fields_are_400(self, client):
        response = client.post("/api/auth/login", json={"email": "joao@example.com"})
        assert response.status_code == 400

    def test_empty_fields_are_400(self, client, make_user):
        make_user(email="joao@example.com")
        response = client.post("/api/auth/login", json={"email": "", "password": ""})
        assert response.status_code == 400
        assert "error" in response.json()
        assert "token" not in client.cookies

    def test_legacy_hash_is_upgraded_on_login(self, client, db, make_user):
        user = make_user(email="antigo@example.com", password="antiga123")
        salt = os.urandom(16)
        digest = hashlib.pbkdf2_hmac("sha256", b"antiga123", salt, 100_000)
        with db.transaction() as cursor:
            cursor.execute(
                "UPDATE users SET password_hash = ? WHERE id = ?",
                (f"{salt.hex()}${digest.hex()}", user["id"]),
            )

        response = client.post("/api/auth/login", json={"email": "antigo@example.com", "password": "antiga123"})
        assert response.status_code == 200
        with db.connection() as conn:
            stored = conn.execute("SELECT password_hash FROM users WHERE id = ?", (user["id"],)).fetchone()
        assert stored["password_hash"].startswith("$pbkdf2-sha256$")


class TestMe:
    def test_bearer_token(self, client, make_user):
        user = make_user(name="Ana")
        response = client.get("/api/auth/me", headers=user["headers"])
        assert response.status_code == 200
        assert response.json()["user"]["name"] == "Ana"

    def test_cookie_token(self, client, make_user):
        user = make_user()
        client.post("/api/auth/login", json={"email": user["email"], "password": DEFAULT_PASSWORD})
        response = client.get("/api/auth/me")
        assert response.status_code == 200
        assert response.json()["user"]["id"] == user["id"]

    def test_missing_token_is_401(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
        assert response.json() == {"error": "Not authenticated"}

    def test_tampered_token_is_401(self, client, make_user):
        user = make_user()
        header, _, signature = user["token"].split(".")
        forged_payload = create_access_token({"userId": user["id"] + 1, "email": user["email"]}, secret_key="x").split(".")[1]
        tampered = f"{header}.{forged_payload}.{signature}"
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {tampered}"})
        assert response.status_code == 401

    def test_expired_token_is_401(self, client, make_user):
        user = make_user()
        token = create_access_token(
            {"userId": user["id"], "email": user["email"]},
            expires_delta=-60,
            secret_key=TEST_SECRET,
        )
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_token_signed_with_other_secret_is_401(self, client, make_user):
        user = make_user()
        token = create_access_token({"userId": user["id"], "email": user["email"]}, secret_key="another-secret")
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_token_of_deleted_user_is_401(self, client, db, make_user):
        user = make_user()
        with db.transaction() as cursor:
            cursor.execute("DELETE FROM users WHERE id = ?", (user["id"],))
        response = client.get("/api/auth/me", headers=user["headers"])
        assert response.status_code == 401

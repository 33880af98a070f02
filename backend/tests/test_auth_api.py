"""Tests for registration, login and email verification over HTTP."""
from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from findash.core.config import Settings, get_settings
from findash.main import app

PASSWORD = "s3cret-pass"


def _register(client: TestClient, email: str = "ada@example.com", name: str = "Ada") -> dict:
    resp = client.post("/api/auth/register", json={"email": email, "password": PASSWORD, "name": name})
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_register_creates_unverified_user(client: TestClient) -> None:
    body = _register(client, email="  Ada@Example.com ")

    user = body["user"]
    assert user["email"] == "ada@example.com"
    assert user["role"] == "user"
    assert user["is_email_verified"] is False
    assert user["preferences"]["theme"] == "dark"
    assert user["preferences"]["notifications"]["transaction_alerts"] is True
    assert "password_hash" not in user


def test_register_rejects_duplicates_and_short_passwords(client: TestClient) -> None:
    _register(client)

    dup = client.post("/api/auth/register", json={"email": "ADA@example.com", "password": PASSWORD, "name": "A"})
    assert dup.status_code == 409

    short = client.post("/api/auth/register", json={"email": "bob@example.com", "password": "short", "name": "Bob"})
    assert short.status_code == 400

    bad_email = client.post("/api/auth/register", json={"email": "not-an-email", "password": PASSWORD, "name": "B"})
    assert bad_email.status_code == 422


def test_login_issues_bearer_token(client: TestClient) -> None:
    _register(client)

    resp = client.post("/api/auth/login", json={"email": "ada@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    body = resp.json()
    assert body["token_type"] == "Bearer"
    assert body["expires_in"] == 24 * 3600
    assert body["user"]["email"] == "ada@example.com"
    assert resp.headers["X-RateLimit-Limit"] == "50"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.json() == {
        "subject_id": body["user"]["id"],
        "email": "ada@example.com",
        "display_name": "Ada",
        "role": "user",
    }


def test_login_with_wrong_password_is_unauthorized(client: TestClient) -> None:
    _register(client)

    resp = client.post("/api/auth/login", json={"email": "ada@example.com", "password": "nope-nope"})
    assert resp.status_code == 401
    assert resp.json() == {"detail": "Invalid credentials"}
    assert "X-RateLimit-Remaining" in resp.headers

    unknown = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
    assert unknown.status_code == 401


def test_verify_email_consumes_token(client: TestClient, db: sqlite3.Connection) -> None:
    _register(client)
    (token,) = db.execute(
        "SELECT email_verification_token FROM users WHERE email = ?", ("ada@example.com",)
    ).fetchone()
    assert token

    assert client.get("/api/auth/verify-email").status_code == 400
    ok = client.get("/api/auth/verify-email", params={"token": token})
    assert ok.status_code == 200
    assert ok.json() == {"message": "Email verified successfully"}
    assert ok.headers["X-RateLimit-Limit"] == "50"

    again = client.get("/api/auth/verify-email", params={"token": token})
    assert again.status_code == 400

    (verified,) = db.execute("SELECT is_email_verified FROM users").fetchone()
    assert verified == 1


def test_credential_endpoints_share_a_tight_budget(tmp_path: Path) -> None:
    app.dependency_overrides[get_settings] = lambda: Settings(
        jwt_secret="test-signing-secret",
        database_url="sqlite+aiosqlite:///" + str(tmp_path / "auth.db"),
        database_create_all=True,
    )
    try:
        with TestClient(app) as client:
            _register(client)
            statuses = [
                client.post("/api/auth/login", json={"email": "ada@example.com", "password": PASSWORD}).status_code
                for _ in range(5)
            ]
            # registration spent one of the five attempts
            assert statuses == [200, 200, 200, 200, 429]

            blocked = client.post("/api/auth/login", json={"email": "ada@example.com", "password": PASSWORD})
            assert blocked.status_code == 429
            assert blocked.json()["error"] == "Too many requests"
            assert int(blocked.headers["Retry-After"]) > 0
            assert blocked.headers["X-RateLimit-Limit"] == "5"

            # other route classes keep their own budget
            assert client.get("/api/auth/me").status_code == 401
    finally:
        app.dependency_overrides.pop(get_settings, None)


def test_startup_requires_signing_secret(tmp_path: Path) -> None:
    app.dependency_overrides[get_settings] = lambda: Settings(
        jwt_secret=None,
        database_url="sqlite+aiosqlite:///" + str(tmp_path / "nosecret.db"),
    )
    try:
        with pytest.raises(RuntimeError, match="JWT_SECRET"):
            with TestClient(app):
                pass
    finally:
        app.dependency_overrides.pop(get_settings, None)

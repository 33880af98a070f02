"""Tests for the notification tray endpoints."""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi.testclient import TestClient

PASSWORD = "s3cret-pass"


def _login(client: TestClient, email: str = "ada@example.com", name: str = "Ada") -> dict[str, str]:
    reg = client.post("/api/auth/register", json={"email": email, "password": PASSWORD, "name": name})
    assert reg.status_code == 201, reg.text
    resp = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


def _large_tx(client: TestClient, auth: dict[str, str], name: str, amount: float = 5000) -> None:
    resp = client.post(
        "/api/transactions",
        headers=auth,
        json={
            "name": name,
            "amount": amount,
            "date": datetime.now(timezone.utc).isoformat(),
            "category": "salary",
            "type": "income" if amount > 0 else "expense",
        },
    )
    assert resp.status_code == 201, resp.text


def test_large_transactions_land_in_the_tray(client: TestClient) -> None:
    auth = _login(client)
    _large_tx(client, auth, "Bonus")
    _large_tx(client, auth, "Car", amount=-12000)
    _large_tx(client, auth, "Coffee", amount=-4)

    resp = client.get("/api/notifications", headers=auth)
    assert resp.status_code == 200
    assert resp.headers["X-RateLimit-Limit"] == "500"
    body = resp.json()
    assert body["total"] == 2
    first = body["notifications"][0]
    assert first["type"] == "transaction"
    assert first["priority"] == "high"
    assert first["read"] is False
    assert {n["message"].split(":")[0] for n in body["notifications"]} == {"Bonus", "Car"}

    paged = client.get("/api/notifications", headers=auth, params={"limit": 1, "page": 2})
    assert paged.json()["total"] == 2
    assert len(paged.json()["notifications"]) == 1


def test_mark_selected_and_all_read(client: TestClient) -> None:
    auth = _login(client)
    for name in ("One", "Two", "Three"):
        _large_tx(client, auth, name)
    ids = [n["id"] for n in client.get("/api/notifications", headers=auth).json()["notifications"]]

    marked = client.put("/api/notifications", headers=auth, json={"notification_ids": ids[:1]})
    assert marked.status_code == 200
    assert marked.json() == {"message": "Marked 1 notifications as read"}

    unread = client.get("/api/notifications", headers=auth, params={"unread_only": True}).json()
    assert unread["total"] == 2
    assert ids[0] not in {n["id"] for n in unread["notifications"]}

    everything = client.put("/api/notifications", headers=auth, json={"mark_all": True})
    assert everything.json() == {"message": "Marked 2 notifications as read"}
    assert client.get("/api/notifications", headers=auth, params={"unread_only": True}).json()["total"] == 0


def test_mark_read_only_touches_callers_notifications(client: TestClient) -> None:
    ada = _login(client)
    bob = _login(client, email="bob@example.com", name="Bob")
    _large_tx(client, ada, "Bonus")
    ada_ids = [n["id"] for n in client.get("/api/notifications", headers=ada).json()["notifications"]]

    resp = client.put("/api/notifications", headers=bob, json={"notification_ids": ada_ids})
    assert resp.json() == {"message": "Marked 0 notifications as read"}
    assert client.get("/api/notifications", headers=bob).json()["total"] == 0
    assert client.get("/api/notifications", headers=ada, params={"unread_only": True}).json()["total"] == 1


def test_mark_read_requires_ids_or_mark_all(client: TestClient) -> None:
    auth = _login(client)

    resp = client.put("/api/notifications", headers=auth, json={})
    assert resp.status_code == 400
    assert "X-RateLimit-Remaining" in resp.headers


def test_notifications_require_a_token(client: TestClient) -> None:
    resp = client.get("/api/notifications")
    assert resp.status_code == 401
    assert resp.json()["detail"]["code"] == "token_missing"

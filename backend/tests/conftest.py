from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import make_url

from findash.core.config import Settings, get_settings
from findash.main import app


@pytest.fixture
def anyio_backend() -> str:
    """Force anyio-based tests to run with asyncio backend only."""

    return "asyncio"


@pytest.fixture(name="settings")
def settings_fixture(tmp_path: Path) -> Settings:
    # Generous quotas so functional tests never trip the limiter by accident
    return Settings(
        jwt_secret="test-signing-secret",
        database_url="sqlite+aiosqlite:///" + str(tmp_path / "findash.db"),
        database_create_all=True,
        auth_rate_max_requests=50,
        api_rate_max_requests=500,
        strict_rate_max_requests=50,
    )


@pytest.fixture(name="client")
def client_fixture(settings: Settings) -> Iterator[TestClient]:
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.pop(get_settings, None)


@pytest.fixture(name="db")
def db_fixture(settings: Settings) -> Iterator[sqlite3.Connection]:
    """Plain sqlite3 handle on the test database for poking at rows directly."""

    conn = sqlite3.connect(make_url(settings.database_url).database)
    try:
        yield conn
    finally:
        conn.close()

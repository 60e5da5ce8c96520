"""
Shared fixtures.

Settings are read when ``calbook`` is first imported, so the environment is
pointed at a throwaway SQLite database before anything else happens.
"""

import asyncio
import os
import tempfile
from pathlib import Path

import pytest

_TMP_DIR = Path(tempfile.mkdtemp(prefix="calbook-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR / 'test.db'}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["PASSWORD_HASH_ROUNDS"] = "4"
os.environ["AUTO_CREATE_TABLES"] = "true"
os.environ["AUTO_COMPLETE_PAST_APPOINTMENTS"] = "false"
os.environ["SMTP_HOST"] = ""
os.environ["PUBLIC_BASE_URL"] = "https://cal.example.org"

from fastapi.testclient import TestClient  # noqa: E402

from calbook.core.db import drop_db  # noqa: E402
from calbook.domain.availability import AvailabilityModel  # noqa: E402
from calbook.main import app  # noqa: E402


@pytest.fixture
def availability() -> AvailabilityModel:
    return AvailabilityModel.default()


@pytest.fixture
def client():
    asyncio.run(drop_db())
    with TestClient(app) as c:
        yield c


def _signup(client: TestClient, email: str = "owner@mail.com", full_name: str = "John Smith") -> dict:
    resp = client.post(
        "/api/v1/auth/signup",
        json={"email": email, "password": "correct-horse", "full_name": full_name},
    )
    assert resp.status_code == 201, resp.text
    tokens = resp.json()
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    me = client.get("/api/v1/auth/me", headers=headers)
    assert me.status_code == 200, me.text
    return {"headers": headers, "owner_id": me.json()["id"], "tokens": tokens}


@pytest.fixture
def signup(client):
    """Factory: register an owner and return its auth headers and id."""

    def _make(email: str = "owner@mail.com", full_name: str = "John Smith") -> dict:
        return _signup(client, email, full_name)

    return _make


@pytest.fixture
def owner(signup):
    return signup()

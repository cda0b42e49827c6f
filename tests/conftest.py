"""
Shared fixtures: an app wired to a throwaway SQLite database.
"""

from __future__ import annotations

from typing import Dict

import pytest
from fastapi.testclient import TestClient

from config.settings import Settings
from main import create_app

TEST_SECRET = "test-signing-secret-with-enough-length"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        jwt_secret=TEST_SECRET,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'todo.db'}",
        bcrypt_rounds=4,
        blob_backend="database",
        max_attachment_bytes=1024,
        public_base_url="https://todo.example.com",
        _env_file=None,
    )


@pytest.fixture
def client(settings: Settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


def register(client: TestClient, username: str, password: str = "secret1") -> Dict[str, str]:
    """Register ``username`` and return Authorization headers for it."""
    response = client.post(
        "/api/auth/register",
        json={"username": username, "password": password},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def alice(client: TestClient) -> Dict[str, str]:
    return register(client, "alice")


@pytest.fixture
def bob(client: TestClient) -> Dict[str, str]:
    return register(client, "bob")

"""Fixtures for Web API tests (F6)."""

import pytest
from fastapi.testclient import TestClient

from skillforge.config.app_config import clear_config_cache
from skillforge.web.api import create_app
from skillforge.web.chat_hub import reset_chat_hub
from skillforge.web.deps import get_llm_client


@pytest.fixture
def client(tmp_path, monkeypatch, mock_llm_client):
    """Test client with an isolated database, storage and mocked LLM."""
    monkeypatch.chdir(tmp_path)
    clear_config_cache()
    reset_chat_hub()

    app = create_app()
    app.dependency_overrides[get_llm_client] = lambda: mock_llm_client

    # Entering the client runs the lifespan hook, which creates the database
    with TestClient(app) as test_client:
        yield test_client

    reset_chat_hub()
    clear_config_cache()


def identity(uid: str, name: str | None = None) -> dict[str, str]:
    headers = {"X-User-Id": uid, "X-User-Email": f"{uid}@example.com"}
    if name:
        headers["X-User-Name"] = name
    return headers


@pytest.fixture
def auth():
    """Builds gateway identity headers for a user."""
    return identity


@pytest.fixture
def ana(client):
    headers = identity("ana", "Ana Torres")
    client.get("/api/users/me", headers=headers)
    return headers


@pytest.fixture
def bruno(client):
    headers = identity("bruno", "Bruno Diaz")
    client.get("/api/users/me", headers=headers)
    return headers

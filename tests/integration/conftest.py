from __future__ import annotations

import os
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from gestor_tareas.app.settings import Settings
from gestor_tareas.app.storage import build_storage
from gestor_tareas.main import create_app


@pytest.fixture
def database_url() -> str:
    if os.getenv("RUN_POSTGRES_INTEGRATION_TESTS") != "1":
        pytest.skip(
            "Set RUN_POSTGRES_INTEGRATION_TESTS=1 and DATABASE_URL "
            "to run integration tests against PostgreSQL."
        )
    url = os.getenv("DATABASE_URL", "").strip()
    if not url:
        pytest.skip("DATABASE_URL is required for integration tests.")
    return url


@pytest.fixture
def pg_client(database_url: str) -> Iterator[TestClient]:
    """App wired exactly as at startup: backend chosen by build_storage(DATABASE_URL)."""
    settings = Settings(
        database_url=database_url,
        auth_enabled=True,
        session_secret="integration-secret",
    )
    app = create_app(storage=build_storage(database_url), settings_override=settings)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def pg_user(pg_client: TestClient, request: pytest.FixtureRequest) -> TestClient:
    """Register a username unique to this test so reruns on one database do not collide."""
    username = f"it-{request.node.name}-{os.getpid()}"
    response = pg_client.post(
        "/register",
        data={"username": username, "password": "clave"},
        follow_redirects=False,
    )
    if response.status_code == 400:
        response = pg_client.post(
            "/login",
            data={"username": username, "password": "clave"},
            follow_redirects=False,
        )
    assert response.status_code == 303
    return pg_client

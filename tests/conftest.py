from __future__ import annotations

import os
from collections.abc import Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from gestor_tareas.app.settings import Settings
from gestor_tareas.app.storage import Storage
from gestor_tareas.app.storage_memory import InMemoryTaskStorage
from gestor_tareas.main import create_app


def _postgres_storage() -> Storage:
    if os.getenv("RUN_POSTGRES_INTEGRATION_TESTS") != "1":
        pytest.skip(
            "Set RUN_POSTGRES_INTEGRATION_TESTS=1 and DATABASE_URL "
            "to run storage tests against PostgreSQL."
        )
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL is required for PostgreSQL storage tests.")

    from gestor_tareas.app.storage_postgres import PostgresTaskStorage

    storage = PostgresTaskStorage(database_url)
    storage.migrate()
    with storage._session() as conn:
        conn.execute("TRUNCATE tareas, users RESTART IDENTITY CASCADE")
        conn.commit()
    return storage


@pytest.fixture(params=["memory", "postgres"])
def storage(request: pytest.FixtureRequest) -> Storage:
    """Every backend, so one contract suite covers both store modes."""
    if request.param == "postgres":
        return _postgres_storage()
    return InMemoryTaskStorage()


@pytest.fixture
def memory_storage() -> InMemoryTaskStorage:
    return InMemoryTaskStorage()


@pytest.fixture
def make_client() -> Iterator[Callable[..., TestClient]]:
    clients: list[TestClient] = []

    def _make(
        *,
        storage: Storage | None = None,
        auth_enabled: bool = False,
    ) -> TestClient:
        app = create_app(
            storage=storage or InMemoryTaskStorage(),
            settings_override=Settings(
                auth_enabled=auth_enabled,
                session_secret="test-secret",
                database_url="",
            ),
        )
        test_client = TestClient(app)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        test_client.__exit__(None, None, None)


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()


@pytest.fixture
def auth_storage() -> InMemoryTaskStorage:
    return InMemoryTaskStorage()


@pytest.fixture
def register_user(
    make_client: Callable[..., TestClient],
    auth_storage: InMemoryTaskStorage,
) -> Callable[[str, str], TestClient]:
    """Return a logged-in client (own cookie jar) sharing one store per test."""

    def _register(username: str, password: str = "secreto") -> TestClient:
        test_client = make_client(storage=auth_storage, auth_enabled=True)
        response = test_client.post(
            "/register",
            data={"username": username, "password": password},
            follow_redirects=False,
        )
        assert response.status_code == 303
        return test_client

    return _register

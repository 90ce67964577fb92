from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from gestor_tareas.app.storage import StorageError
from gestor_tareas.app.storage_memory import InMemoryTaskStorage


class FlakyStorage(InMemoryTaskStorage):
    """Fails the next list call, then behaves normally."""

    def __init__(self) -> None:
        super().__init__()
        self.failures = 0

    def list_tasks(self, owner_id: int | None = None):
        if self.failures > 0:
            self.failures -= 1
            raise StorageError("database unavailable")
        return super().list_tasks(owner_id)


def test_health_with_no_tasks(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "totalTareas": 0, "useDb": False}


def test_health_counts_tasks(client: TestClient) -> None:
    client.post("/api/tareas", json={"texto": "uno"})
    client.post("/api/tareas", json={"texto": "dos"})
    assert client.get("/health").json()["totalTareas"] == 2


def test_storage_failure_returns_500_and_app_keeps_serving(make_client) -> None:
    storage = FlakyStorage()
    client: TestClient = make_client(storage=storage)

    storage.failures = 2
    page = client.get("/")
    assert page.status_code == 500
    assert page.text == "Error interno del servidor"

    api = client.get("/api/tareas")
    assert api.status_code == 500
    assert api.json() == {"error": "Error interno del servidor"}

    assert client.get("/").status_code == 200
    assert client.get("/health").json()["status"] == "ok"


def test_storage_failure_is_logged_once_with_traceback(
    make_client, caplog: pytest.LogCaptureFixture
) -> None:
    storage = FlakyStorage()
    client: TestClient = make_client(storage=storage)
    storage.failures = 1

    with caplog.at_level(logging.WARNING, logger="gestor_tareas"):
        assert client.get("/api/tareas").status_code == 500

    failures = [record for record in caplog.records if "storage_error" in record.getMessage()]
    assert len(failures) == 1
    assert failures[0].levelno == logging.ERROR
    assert failures[0].exc_info is not None
    assert failures[0].exc_info[0] is StorageError

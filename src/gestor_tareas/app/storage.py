"""Storage interfaces and backend selection for the task list.

Beginner terms:
- Protocol: a structural interface; any class with matching methods satisfies it.
- Store mode: in-memory list or PostgreSQL table, chosen once at startup.
- Owner scoping: passing `owner_id` restricts an operation to that user's tasks.
"""

from __future__ import annotations

import logging
from typing import Protocol

from .models import Task, User

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when the backing store fails (connection or query error)."""


class TaskStorage(Protocol):
    use_db: bool

    def migrate(self) -> None: ...

    def list_tasks(self, owner_id: int | None = None) -> list[Task]: ...

    def create_task(self, texto: str, owner_id: int | None = None) -> Task | None: ...

    def toggle_task(self, task_id: int, owner_id: int | None = None) -> None: ...

    def delete_task(self, task_id: int, owner_id: int | None = None) -> None: ...

    def count_tasks(self) -> int: ...


class UserStorage(Protocol):
    def create_user(self, username: str, password_hash: str) -> User | None: ...

    def get_user_by_username(self, username: str) -> User | None: ...


class Storage(TaskStorage, UserStorage, Protocol):
    """Both protocols together; every backend in this package implements it."""


def build_storage(database_url: str) -> Storage:
    """Pick the backend once: PostgreSQL when a URL is given, memory otherwise."""
    # Imported here so tests can monkeypatch the backend classes on their modules.
    from . import storage_memory, storage_postgres

    database_url = database_url.strip()
    if database_url:
        storage: Storage = storage_postgres.PostgresTaskStorage(database_url)
    else:
        storage = storage_memory.InMemoryTaskStorage()
    storage.migrate()
    logger.info("storage event=selected use_db=%s", storage.use_db)
    return storage

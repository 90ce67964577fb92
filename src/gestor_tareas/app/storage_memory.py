"""In-memory storage backend used when no DATABASE_URL is configured."""

from __future__ import annotations

import threading
from datetime import UTC, datetime

from .models import Task, User


class InMemoryTaskStorage:
    """Tasks and users kept in process memory; lost on restart.

    One lock guards every operation because FastAPI runs sync endpoints in a
    thread pool. This does not make the store safe across multiple processes.
    """

    use_db = False

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # Insertion order is creation order; ids only grow.
        self._tasks: list[Task] = []
        self._next_task_id = 1
        self._users: dict[str, User] = {}
        self._next_user_id = 1

    def migrate(self) -> None:
        return None

    def list_tasks(self, owner_id: int | None = None) -> list[Task]:
        with self._lock:
            visible = [task for task in self._tasks if _owned_by(task, owner_id)]
        return [task.model_copy() for task in reversed(visible)]

    def create_task(self, texto: str, owner_id: int | None = None) -> Task | None:
        texto = texto.strip()
        if not texto:
            return None
        with self._lock:
            task = Task(
                id=self._next_task_id,
                texto=texto,
                completada=False,
                creada_en=datetime.now(tz=UTC),
                user_id=owner_id,
            )
            self._next_task_id += 1
            self._tasks.append(task)
        return task.model_copy()

    def toggle_task(self, task_id: int, owner_id: int | None = None) -> None:
        with self._lock:
            for index, task in enumerate(self._tasks):
                if task.id == task_id and _owned_by(task, owner_id):
                    self._tasks[index] = task.model_copy(
                        update={"completada": not task.completada}
                    )
                    return

    def delete_task(self, task_id: int, owner_id: int | None = None) -> None:
        with self._lock:
            self._tasks = [
                task
                for task in self._tasks
                if not (task.id == task_id and _owned_by(task, owner_id))
            ]

    def count_tasks(self) -> int:
        with self._lock:
            return len(self._tasks)

    def create_user(self, username: str, password_hash: str) -> User | None:
        with self._lock:
            if username in self._users:
                return None
            user = User(id=self._next_user_id, username=username, password_hash=password_hash)
            self._next_user_id += 1
            self._users[username] = user
        return user

    def get_user_by_username(self, username: str) -> User | None:
        with self._lock:
            return self._users.get(username)


def _owned_by(task: Task, owner_id: int | None) -> bool:
    return owner_id is None or task.user_id == owner_id

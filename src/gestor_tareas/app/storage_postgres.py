"""PostgreSQL storage backend for tasks and users.

Beginner terms:
- Migration: creating tables before normal reads/writes.
- Parameterized query: values passed separately (%s) so they are never spliced into SQL.
- Row factory: returns query rows as dict-like objects instead of tuples.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from .models import Task, User
from .storage import StorageError


class PostgresTaskStorage:
    """PostgreSQL-backed storage; every operation is a single SQL statement."""

    use_db = True

    def __init__(self, database_url: str) -> None:
        if not database_url:
            raise ValueError("database_url is required")
        self.database_url = database_url
        # Lock guards DB operations done through this storage instance.
        self._lock = threading.Lock()
        # Lazy import helper keeps error message clear if psycopg is missing.
        self._psycopg, self._dict_row = self._load_psycopg()

    def migrate(self) -> None:
        """Create required tables and indexes if they do not already exist."""
        with self._session() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id SERIAL PRIMARY KEY,
                    username TEXT UNIQUE NOT NULL,
                    password TEXT NOT NULL
                )
                """)
            # user_id stays nullable so single-user mode shares the schema.
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tareas (
                    id SERIAL PRIMARY KEY,
                    user_id INTEGER REFERENCES users(id) ON DELETE CASCADE,
                    texto TEXT NOT NULL,
                    completada BOOLEAN NOT NULL DEFAULT FALSE,
                    creada_en TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tareas_user_id
                ON tareas(user_id)
                """)
            conn.commit()

    def list_tasks(self, owner_id: int | None = None) -> list[Task]:
        with self._session() as conn:
            if owner_id is None:
                rows = conn.execute("""
                    SELECT id, user_id, texto, completada, creada_en
                    FROM tareas
                    ORDER BY creada_en DESC, id DESC
                    """).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT id, user_id, texto, completada, creada_en
                    FROM tareas
                    WHERE user_id = %s
                    ORDER BY creada_en DESC, id DESC
                    """,
                    (owner_id,),
                ).fetchall()
        return [self._row_to_task(row) for row in rows]

    def create_task(self, texto: str, owner_id: int | None = None) -> Task | None:
        texto = texto.strip()
        if not texto:
            return None
        with self._session() as conn:
            row = conn.execute(
                """
                INSERT INTO tareas (texto, user_id)
                VALUES (%s, %s)
                RETURNING id, user_id, texto, completada, creada_en
                """,
                (texto, owner_id),
            ).fetchone()
            conn.commit()
        if row is None:
            raise StorageError("Failed to persist task")
        return self._row_to_task(row)

    def toggle_task(self, task_id: int, owner_id: int | None = None) -> None:
        with self._session() as conn:
            if owner_id is None:
                conn.execute(
                    "UPDATE tareas SET completada = NOT completada WHERE id = %s",
                    (task_id,),
                )
            else:
                conn.execute(
                    """
                    UPDATE tareas SET completada = NOT completada
                    WHERE id = %s AND user_id = %s
                    """,
                    (task_id, owner_id),
                )
            conn.commit()

    def delete_task(self, task_id: int, owner_id: int | None = None) -> None:
        with self._session() as conn:
            if owner_id is None:
                conn.execute("DELETE FROM tareas WHERE id = %s", (task_id,))
            else:
                conn.execute(
                    "DELETE FROM tareas WHERE id = %s AND user_id = %s",
                    (task_id, owner_id),
                )
            conn.commit()

    def count_tasks(self) -> int:
        with self._session() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM tareas").fetchone()
        return int(row["total"]) if row else 0

    def create_user(self, username: str, password_hash: str) -> User | None:
        """Insert a user; return None when the username is already taken."""
        with self._session() as conn:
            row = conn.execute(
                """
                INSERT INTO users (username, password)
                VALUES (%s, %s)
                ON CONFLICT (username) DO NOTHING
                RETURNING id, username, password
                """,
                (username, password_hash),
            ).fetchone()
            conn.commit()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_username(self, username: str) -> User | None:
        with self._session() as conn:
            row = conn.execute(
                "SELECT id, username, password FROM users WHERE username = %s",
                (username,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    @contextmanager
    def _session(self) -> Iterator[Any]:
        """Open one connection under the lock and translate driver errors."""
        try:
            with self._lock, self._connect() as conn:
                yield conn
        except self._psycopg.Error as exc:
            raise StorageError(f"PostgreSQL operation failed: {exc}") from exc

    def _connect(self) -> Any:
        """Open a psycopg connection that yields dict-like rows."""
        return self._psycopg.connect(self.database_url, row_factory=self._dict_row)

    @staticmethod
    def _load_psycopg() -> tuple[Any, Any]:
        """Import psycopg and helpers with a friendly install hint on failure."""
        try:
            import psycopg
            from psycopg.rows import dict_row
        except ImportError as exc:  # pragma: no cover - exercised only without dependency
            raise RuntimeError(
                "PostgreSQL backend requires psycopg. Install with: "
                'python -m pip install "psycopg[binary]>=3.2,<4.0"'
            ) from exc
        return psycopg, dict_row

    @staticmethod
    def _parse_datetime(raw: Any) -> datetime:
        """Parse datetime value from database driver output."""
        if isinstance(raw, datetime):
            return raw
        if isinstance(raw, str):
            return datetime.fromisoformat(raw)
        raise TypeError(f"Unsupported datetime value: {type(raw)!r}")

    @classmethod
    def _row_to_task(cls, row: Any) -> Task:
        return Task(
            id=int(row["id"]),
            texto=row["texto"],
            completada=bool(row["completada"]),
            creada_en=cls._parse_datetime(row["creada_en"]),
            user_id=row["user_id"],
        )

    @staticmethod
    def _row_to_user(row: Any) -> User:
        return User(
            id=int(row["id"]),
            username=row["username"],
            password_hash=row["password"],
        )

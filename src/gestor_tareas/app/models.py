"""Pydantic models shared across API, listing, rendering, and storage.

Beginner terms used in this file:
- Model: a typed schema class used for validation/serialization.
- Literal: restricts a field to a fixed set of allowed string values.
- Owner: the user a task belongs to when multi-user mode is on.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

# Status filters accepted by the list view and GET /api/tareas.
StatusFilter = Literal["all", "pending", "completed"]
STATUS_FILTERS: tuple[str, ...] = ("all", "pending", "completed")


class Task(BaseModel):
    """Canonical task record shape returned by API/storage."""

    id: int
    texto: str
    completada: bool = False
    creada_en: datetime
    # None in single-user mode.
    user_id: int | None = None


class User(BaseModel):
    """Registered account (multi-user mode only)."""

    id: int
    username: str
    password_hash: str


class CreateTaskRequest(BaseModel):
    """Request body for POST /api/tareas.

    `texto` is optional here so a missing field can be answered with the
    API's own 400 payload instead of FastAPI's 422 validation error.
    """

    texto: str | None = None


class TaskCounts(BaseModel):
    """Aggregate counters computed before any filter/search is applied."""

    total: int = 0
    pending: int = 0
    completed: int = 0


class TaskListing(BaseModel):
    """Counts plus the filtered subsequence shown to the user."""

    counts: TaskCounts = Field(default_factory=TaskCounts)
    tasks: list[Task] = Field(default_factory=list)
    status_filter: StatusFilter = "all"
    query: str = ""

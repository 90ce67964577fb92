"""Pure filtering/search over a task sequence."""

from __future__ import annotations

from collections.abc import Sequence

from .models import STATUS_FILTERS, StatusFilter, Task, TaskCounts, TaskListing


def normalize_filter(raw: str | None) -> StatusFilter:
    """Map any query value onto a known filter; unknown values mean `all`."""
    value = (raw or "").strip().lower()
    if value in STATUS_FILTERS:
        return value  # type: ignore[return-value]
    return "all"


def count_tasks(tasks: Sequence[Task]) -> TaskCounts:
    completed = sum(1 for task in tasks if task.completada)
    return TaskCounts(total=len(tasks), pending=len(tasks) - completed, completed=completed)


def matches(task: Task, status_filter: StatusFilter, query: str) -> bool:
    """Status filter AND case-insensitive substring search."""
    if status_filter == "pending" and task.completada:
        return False
    if status_filter == "completed" and not task.completada:
        return False
    if query and query.casefold() not in task.texto.casefold():
        return False
    return True


def build_listing(
    tasks: Sequence[Task],
    status_filter: str | None = None,
    query: str | None = None,
) -> TaskListing:
    """Counts over every task, then the subsequence that passes filter and search.

    Input order is preserved, so a newest-first store listing stays newest first.
    """
    normalized = normalize_filter(status_filter)
    needle = (query or "").strip()
    return TaskListing(
        counts=count_tasks(tasks),
        tasks=[task for task in tasks if matches(task, normalized, needle)],
        status_filter=normalized,
        query=needle,
    )

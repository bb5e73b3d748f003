"""Derived views over cached task lists."""

from __future__ import annotations

from typing import Iterable, Optional

from taskapp.models import Task
from taskapp.queries import LIST_ALL
from taskapp.query_cache import QueryCache


def list_categories(tasks: Optional[Iterable[Task]]) -> list[str]:
    """Distinct categories in first-seen order."""
    seen: dict[str, None] = {}
    for task in tasks or []:
        if task.category is not None:
            seen.setdefault(task.category, None)
    return list(seen)


def filter_by_category(tasks: Optional[Iterable[Task]], category: str) -> list[Task]:
    return [t for t in tasks or [] if t.category == category]


def find_task(tasks: Optional[Iterable[Task]], task_id: str) -> Optional[Task]:
    for task in tasks or []:
        if task.id == str(task_id):
            return task
    return None


def category_counts(tasks: Optional[Iterable[Task]]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for task in tasks or []:
        if task.category is not None:
            counts[task.category] = counts.get(task.category, 0) + 1
    return counts


def cached_tasks_in_category(cache: QueryCache, category: str) -> list[Task]:
    """Filter the cached listAll data without touching the network."""
    return filter_by_category(cache.entry(LIST_ALL).data, category)

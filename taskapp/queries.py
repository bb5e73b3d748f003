"""Logical task queries and their cache registration."""

from __future__ import annotations

from typing import Any

from taskapp.query_cache import QueryCache
from taskapp.remote.tasks_api import TasksApi

LIST_ALL = "listAll"
LIST_BY_CATEGORY = "listByCategory"
LIST_COMPLETED = "listCompleted"

TASK_QUERIES = (LIST_ALL, LIST_BY_CATEGORY, LIST_COMPLETED)


def register_task_queries(cache: QueryCache, tasks_api: TasksApi) -> None:
    """Bind the task list queries to their remote calls."""
    cache.register(LIST_ALL, tasks_api.list_all)
    # called as fetcher(category_id=...)
    cache.register(LIST_BY_CATEGORY, tasks_api.list_by_category)
    cache.register(LIST_COMPLETED, tasks_api.list_completed)


def category_params(category_id: str) -> dict[str, Any]:
    """Cache params for the listByCategory query."""
    return {"category_id": category_id}

"""Task mutations and the optional declared invalidation map."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Union

from taskapp.models import Task, TaskDraft, TaskUpdate
from taskapp.queries import LIST_ALL, LIST_BY_CATEGORY, LIST_COMPLETED
from taskapp.query_cache import QueryCache
from taskapp.remote.tasks_api import TasksApi
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="mutations")

CREATE = "create"
UPDATE = "update"
DELETE = "delete"

# mutation -> query endpoints whose cached keys it makes stale
DEFAULT_INVALIDATION_MAP: Mapping[str, tuple[str, ...]] = {
    CREATE: (LIST_ALL, LIST_BY_CATEGORY),
    UPDATE: (LIST_ALL, LIST_BY_CATEGORY, LIST_COMPLETED),
    DELETE: (LIST_ALL, LIST_BY_CATEGORY, LIST_COMPLETED),
}


class TaskMutations:
    """
    Create/update/delete tasks through the remote client.

    Failures propagate to the caller unchanged; a failed mutation must not be
    treated as applied. With no invalidation map (the default) nothing is
    refetched here, and callers refresh the queries their screens show.
    """

    def __init__(
        self,
        tasks_api: TasksApi,
        cache: QueryCache,
        invalidation_map: Optional[Mapping[str, Iterable[str]]] = None,
    ) -> None:
        self.tasks_api = tasks_api
        self.cache = cache
        self.invalidation_map = invalidation_map

    def create(self, draft: Union[TaskDraft, dict]) -> Any:
        result = self.tasks_api.create(draft)
        logger.info("Created task")
        self._invalidate(CREATE)
        return result

    def update(self, task_id: str, changes: Union[TaskUpdate, dict]) -> Any:
        result = self.tasks_api.update(task_id, changes)
        logger.info("Updated task id=%s", task_id)
        self._invalidate(UPDATE)
        return result

    def set_completed(self, task_id: str, completed: bool) -> Any:
        return self.update(task_id, TaskUpdate(completed=completed))

    def toggle_completed(self, task: Task) -> Any:
        """Flip `Completed_task` based on the cached snapshot of the task."""
        return self.set_completed(task.id, not task.completed)

    def delete(self, task_id: str) -> Any:
        result = self.tasks_api.delete(task_id)
        logger.info("Deleted task id=%s", task_id)
        self._invalidate(DELETE)
        return result

    def _invalidate(self, mutation: str) -> None:
        if not self.invalidation_map:
            return
        for endpoint_id in self.invalidation_map.get(mutation, ()):
            self.cache.invalidate_endpoint(endpoint_id)

"""Tasks resource group: list queries and create/update/delete mutations."""

from __future__ import annotations

from typing import Any, Union

from taskapp.models import Task, TaskDraft, TaskUpdate, parse_tasks, validate_payload
from taskapp.remote.http import HttpTransport
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="remote/tasks_api")

JSON_HEADERS = {"Content-Type": "application/json"}


class TasksApi:
    """Request builders for the task endpoints."""

    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport

    # ---- queries ----

    def list_all(self) -> list[Task]:
        """GET tasks"""
        return parse_tasks(self.transport.request("GET", "tasks"))

    def list_by_category(self, category_id: str) -> list[Task]:
        """GET tasks?category=<id>"""
        return parse_tasks(self.transport.request("GET", "tasks", params={"category": category_id}))

    def list_completed(self) -> list[Task]:
        """GET tasks/completed-tasks"""
        return parse_tasks(self.transport.request("GET", "tasks/completed-tasks"))

    # ---- mutations ----

    def create(self, task: Union[TaskDraft, dict]) -> Any:
        """POST tasks/create"""
        task = validate_payload(TaskDraft, task)
        return self.transport.request("POST", "tasks/create", json=task.to_wire(), headers=JSON_HEADERS)

    def update(self, task_id: str, changes: Union[TaskUpdate, dict]) -> Any:
        """PUT tasks/<id> with only the changed fields; the id stays in the path."""
        changes = validate_payload(TaskUpdate, changes)
        return self.transport.request("PUT", f"tasks/{task_id}", json=changes.to_wire(), headers=JSON_HEADERS)

    def delete(self, task_id: str) -> Any:
        """DELETE tasks/<id>"""
        return self.transport.request("DELETE", f"tasks/{task_id}")

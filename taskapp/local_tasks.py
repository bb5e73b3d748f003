"""Local snapshot of the task list under the `tasks` storage key.

Independent of the query cache: screens may save the last list they showed
and read it back before the first fetch lands.
"""

from __future__ import annotations

import json
from typing import Iterable, Union

from taskapp.errors import PersistenceError
from taskapp.models import Task, parse_tasks
from taskapp.storage.base import TASKS_KEY, KeyValueStorage
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="local_tasks")


def save_tasks(storage: KeyValueStorage, tasks: Iterable[Union[Task, dict]]) -> bool:
    """Write the tasks as a JSON array; returns False (and logs) on failure."""
    payload = [t.to_wire() if isinstance(t, Task) else t for t in tasks]
    try:
        storage.set_item(TASKS_KEY, json.dumps(payload))
    except (PersistenceError, TypeError) as exc:
        logger.error("Error saving tasks: %s", exc)
        return False
    return True


def load_tasks(storage: KeyValueStorage) -> list[Task]:
    """Read the saved tasks; an absent or unreadable snapshot yields []."""
    try:
        raw = storage.get_item(TASKS_KEY)
        if not raw:
            return []
        return parse_tasks(json.loads(raw))
    except (PersistenceError, ValueError, TypeError) as exc:
        logger.error("Error loading tasks: %s", exc)
        return []

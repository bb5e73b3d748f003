"""In-memory key/value storage, intended for development and tests."""

import threading
from typing import Optional

from taskapp.storage.base import KeyValueStorage
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="storage/in_memory_storage")


class InMemoryStorage(KeyValueStorage):
    """Thread-safe dict-backed storage; contents are lost with the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        logger.debug("Initializing InMemoryStorage")
        self._items: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def keys(self) -> list[str]:
        """Snapshot of stored keys (debugging/tests)."""
        with self._lock:
            return list(self._items)

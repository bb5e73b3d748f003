"""Shared protocol for durable storage backends."""

from typing import Optional, Protocol

USER_KEY = "user"
TASKS_KEY = "tasks"


class KeyValueStorage(Protocol):
    """String key/value storage. Implementations raise PersistenceError on I/O failure."""

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored string, or None if the key is absent."""

    def set_item(self, key: str, value: str) -> None:
        """Store a string under key, replacing any previous value."""

    def remove_item(self, key: str) -> None:
        """Delete a key without raising if it is absent."""

    def clear(self) -> None:
        """Remove every key owned by this storage."""

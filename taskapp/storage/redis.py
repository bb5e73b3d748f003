"""Redis-backed key/value storage."""

from typing import Optional

from taskapp.errors import PersistenceError
from taskapp.storage.base import KeyValueStorage
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="storage/redis_storage")


class RedisStorage(KeyValueStorage):
    """Store values as plain Redis strings under a key prefix."""

    def __init__(self, client, prefix: str = "taskapp:") -> None:
        """Initialize with a Redis client and a key prefix."""
        logger.debug("Initializing RedisStorage")
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        """Return the Redis key for a storage key."""
        return f"{self.prefix}{key}"

    def get_item(self, key: str) -> Optional[str]:
        try:
            raw = self.client.get(self._key(key))
        except Exception as exc:
            raise PersistenceError(f"Failed to read '{key}' from Redis: {exc}") from exc
        if raw is None:
            return None
        if isinstance(raw, bytes):
            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise PersistenceError(f"Value for '{key}' is not UTF-8") from exc
        return str(raw)

    def set_item(self, key: str, value: str) -> None:
        try:
            self.client.set(self._key(key), value.encode("utf-8"))
        except Exception as exc:
            raise PersistenceError(f"Failed to write '{key}' to Redis: {exc}") from exc

    def remove_item(self, key: str) -> None:
        try:
            self.client.delete(self._key(key))
        except Exception as exc:
            raise PersistenceError(f"Failed to delete '{key}' from Redis: {exc}") from exc

    def clear(self) -> None:
        """Best-effort clear for all keys under the configured prefix."""
        try:
            for redis_key in self.client.scan_iter(f"{self.prefix}*"):
                self.client.delete(redis_key)
        except Exception as exc:
            raise PersistenceError(f"Failed to clear Redis storage: {exc}") from exc

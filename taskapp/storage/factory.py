"""Choose the durable storage backend at startup."""

from __future__ import annotations

import redis

from taskapp import config
from taskapp.storage.base import KeyValueStorage
from taskapp.storage.file import JsonFileStorage
from taskapp.storage.memory import InMemoryStorage
from taskapp.storage.redis import RedisStorage
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="storage/factory")

DEFAULT_BACKEND = "file"


def build_storage(settings: config.Settings | None = None) -> KeyValueStorage:
    """Instantiate the configured storage backend."""
    settings = settings or config.settings
    backend = (settings.storage_backend or DEFAULT_BACKEND).lower()

    if backend == "memory":
        logger.info("Using InMemoryStorage (session will not survive restarts)")
        return InMemoryStorage()

    if backend == "file":
        logger.info("Using JsonFileStorage", extra={"path": settings.storage_path})
        return JsonFileStorage(settings.storage_path)

    if backend == "redis":
        url = settings.storage_redis_url
        if not url:
            raise ValueError("storage_redis_url must be set for the redis storage backend")
        logger.debug(f"Initializing redis storage: url='{mask_url(url)}'")
        try:
            client = redis.Redis.from_url(url)
            client.ping()
            logger.info("Using RedisStorage", extra={"redis_url": mask_url(url)})
            return RedisStorage(client, prefix=settings.storage_redis_prefix)
        except Exception as exc:
            logger.warning("Falling back to InMemoryStorage (Redis unavailable)", extra={"error": str(exc)})
        return InMemoryStorage()

    raise ValueError(f"Unknown storage backend '{backend}'")

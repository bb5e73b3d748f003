"""Durable key/value storage backends for session and task snapshots."""

from .base import KeyValueStorage
from .factory import build_storage
from .file import JsonFileStorage
from .memory import InMemoryStorage
from .redis import RedisStorage

__all__ = [
    "KeyValueStorage",
    "build_storage",
    "JsonFileStorage",
    "InMemoryStorage",
    "RedisStorage",
]

"""JSON-file storage: one document on disk holding every key."""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional

from taskapp.errors import PersistenceError
from taskapp.storage.base import KeyValueStorage
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="storage/json_file_storage")


class JsonFileStorage(KeyValueStorage):
    """
    Persist string values in a single JSON object file.

    Writes go to a temporary file in the same directory and are moved into
    place with os.replace, so a crash never leaves a half-written document.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        logger.debug("Initializing JsonFileStorage at %s", self.path)

    def _read_all(self) -> dict[str, str]:
        """Load the whole document; a missing file is an empty store."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise PersistenceError(f"Failed to read storage file {self.path}: {exc}") from exc
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise PersistenceError(f"Storage file {self.path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceError(f"Storage file {self.path} does not hold a JSON object")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".storage-", suffix=".tmp", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(f"Failed to write storage file {self.path}: {exc}") from exc

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._read_all().get(key)
        return None if value is None else str(value)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if key not in data:
                return
            data.pop(key)
            self._write_all(data)

    def clear(self) -> None:
        with self._lock:
            self._write_all({})

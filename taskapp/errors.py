"""Error taxonomy shared by the remote client, cache, session and storage layers."""

from __future__ import annotations

from typing import Any


class TaskAppError(Exception):
    """Base class for every error raised by the task manager client."""


class NetworkError(TaskAppError):
    """The request never produced a response (no connectivity, DNS, timeout)."""


class ApiError(TaskAppError):
    """The server answered with a non-2xx status."""

    def __init__(self, status: int, body: Any = None, *, url: str | None = None) -> None:
        self.status = status
        self.body = body
        self.url = url
        super().__init__(f"API request failed with status {status}: {_preview(body)}")

    @property
    def message(self) -> str | None:
        """Server-provided message, when the body carries one."""
        if isinstance(self.body, dict):
            msg = self.body.get("message")
            if isinstance(msg, list):
                return "; ".join(str(m) for m in msg)
            return str(msg) if msg is not None else None
        return None


class ValidationError(TaskAppError):
    """An outgoing payload failed client-side validation before being sent."""


class PersistenceError(TaskAppError):
    """Durable local storage could not be read or written."""


def _preview(body: Any, limit: int = 200) -> str:
    text = body if isinstance(body, str) else repr(body)
    return text[:limit]

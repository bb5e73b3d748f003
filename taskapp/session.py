"""Process-wide authentication session with fire-and-forget persistence."""

from __future__ import annotations

import json
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from taskapp.errors import PersistenceError
from taskapp.models import User
from taskapp.storage.base import USER_KEY, KeyValueStorage
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="session")

SessionListener = Callable[["Session"], None]


@dataclass(frozen=True)
class Session:
    """Snapshot of the session; authenticated exactly when a user is present."""
    user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


def read_persisted_user(storage: KeyValueStorage) -> Optional[User]:
    """
    Load the durable `user` record.

    Returns None when there is no record. Raises PersistenceError when the
    storage cannot be read or the record does not parse.
    """
    raw = storage.get_item(USER_KEY)
    if raw is None:
        return None
    try:
        data = json.loads(raw)
        if data is None:
            return None
        if not isinstance(data, dict):
            raise PersistenceError(f"Persisted user is a {type(data).__name__}, expected an object")
        return User.model_validate(data)
    except (ValueError, PydanticValidationError) as exc:
        raise PersistenceError(f"Persisted user record is corrupt: {exc}") from exc


class SessionStore:
    """
    Owner of the in-memory session.

    login/logout change memory first, notify subscribers, then hand the
    storage write to a single background writer and return without waiting.
    Writes run in the order they were issued. Storage failures are logged and
    never undo the in-memory change. No method raises.
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self.storage = storage
        self._session = Session()
        self._lock = threading.Lock()
        self._listeners: list[SessionListener] = []
        self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="session-persist")
        self._pending: set[Future] = set()
        # bumped on every login/logout/restore; lets async work detect it is stale
        self.generation = 0

    # ---- state ----

    @property
    def session(self) -> Session:
        with self._lock:
            return self._session

    @property
    def user(self) -> Optional[User]:
        return self.session.user

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated

    # ---- transitions ----

    def login(self, user: Union[User, dict[str, Any]]) -> None:
        """Set the user, mark authenticated and persist the record in the background."""
        try:
            user = user if isinstance(user, User) else User.model_validate(user)
        except PydanticValidationError as exc:
            logger.error("Ignoring login with an invalid user payload: %s", exc)
            return
        self._set(user)
        logger.info("Logged in user id=%s", user.id)
        record = json.dumps(user.to_storage())
        self._persist(lambda: self.storage.set_item(USER_KEY, record), "save")

    def logout(self) -> None:
        """Clear the session and remove the persisted record in the background."""
        self._set(None)
        logger.info("Logged out")
        self._persist(lambda: self.storage.remove_item(USER_KEY), "remove")

    def restore(self, user: Optional[User]) -> None:
        """Adopt a value already read from storage, without writing it back."""
        self._set(user)
        logger.info("Restored session authenticated=%s", user is not None)

    def restore_if_generation(self, user: Optional[User], generation: int) -> bool:
        """
        Like restore(), but only if no login/logout happened since `generation`.

        The check and the change happen under one lock. Returns False, leaving
        the session untouched, when the value read from storage is stale.
        """
        if not self._set(user, expected_generation=generation):
            logger.info("Discarding persisted session; it changed since generation %d", generation)
            return False
        logger.info("Restored session authenticated=%s", user is not None)
        return True

    # ---- reactivity ----

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call listener with every new Session; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ---- persistence plumbing ----

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for pending storage writes; True if all finished in time."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _done, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self) -> None:
        self._writer.shutdown(wait=True)

    def _set(self, user: Optional[User], expected_generation: Optional[int] = None) -> bool:
        with self._lock:
            if expected_generation is not None and self.generation != expected_generation:
                return False
            self._session = Session(user=user)
            self.generation += 1
            snapshot = self._session
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener failed")
        return True

    def _persist(self, op: Callable[[], None], action: str) -> None:
        try:
            fut = self._writer.submit(self._write, op, action)
        except RuntimeError as exc:
            logger.error("Cannot %s persisted user; writer is closed: %s", action, exc)
            return
        with self._lock:
            self._pending.add(fut)
        fut.add_done_callback(self._forget)

    def _forget(self, fut: Future) -> None:
        with self._lock:
            self._pending.discard(fut)

    @staticmethod
    def _write(op: Callable[[], None], action: str) -> None:
        try:
            op()
        except PersistenceError as exc:
            logger.error("Failed to %s persisted user: %s", action, exc)
        except Exception as exc:
            logger.exception("Unexpected error trying to %s persisted user: %s", action, exc)
        else:
            logger.debug("Persisted user record (%s)", action)

"""Startup sequence that restores the persisted session before the UI renders."""

from __future__ import annotations

import threading
from enum import Enum
from typing import Callable, Optional

from taskapp.session import Session, SessionStore, read_persisted_user
from taskapp.storage.base import KeyValueStorage
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="bootstrap")

StateListener = Callable[["BootState"], None]


class BootState(str, Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class SessionBootstrap:
    """
    LOADING -> AUTHENTICATED | UNAUTHENTICATED.

    The persisted user is read on a background thread. Any read or parse
    failure is logged and ends in UNAUTHENTICATED. Once a terminal state is
    reached, login/logout on the session store move directly between the two
    terminal states.
    """

    def __init__(self, storage: KeyValueStorage, session_store: SessionStore) -> None:
        self.storage = storage
        self.session_store = session_store
        self._state = BootState.LOADING
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._listeners: list[StateListener] = []
        self._unsubscribe = session_store.subscribe(self._on_session_change)

    @property
    def state(self) -> BootState:
        with self._lock:
            return self._state

    @property
    def is_loading(self) -> bool:
        return self.state == BootState.LOADING

    def start(self) -> None:
        """Begin restoring; safe to call more than once."""
        with self._lock:
            if self._thread is not None:
                return
            generation = self.session_store.generation
            self._thread = threading.Thread(
                target=self._load, args=(generation,), name="session-bootstrap", daemon=True
            )
        self._thread.start()

    def run(self) -> BootState:
        """Restore synchronously on the calling thread."""
        with self._lock:
            generation = self.session_store.generation
        self._load(generation)
        return self.state

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until LOADING is left; True if that happened within timeout."""
        return self._done.wait(timeout)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        self._unsubscribe()

    def _load(self, generation: int) -> None:
        try:
            user = read_persisted_user(self.storage)
        except Exception as exc:
            logger.error("Failed to load user from storage: %s", exc)
            user = None

        # a login/logout during the read wins over the stale record
        if user is not None:
            self.session_store.restore_if_generation(user, generation)
        self._finish()

    def _current_state(self) -> BootState:
        return BootState.AUTHENTICATED if self.session_store.is_authenticated else BootState.UNAUTHENTICATED

    def _finish(self) -> None:
        # terminal state comes from the live session, read under the same lock
        # _on_session_change takes
        with self._lock:
            if self._done.is_set():
                return
            state = self._current_state()
            self._state = state
            self._done.set()
        logger.info("Session bootstrap finished: %s", state.value)
        self._notify(state)

    def _on_session_change(self, session: Session) -> None:
        with self._lock:
            if not self._done.is_set():
                return
            new_state = self._current_state()
            if new_state == self._state:
                return
            self._state = new_state
        self._notify(new_state)

    def _notify(self, state: BootState) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(state)
            except Exception:
                logger.exception("Bootstrap listener failed")

"""
Per-endpoint query cache with duplicate in-flight suppression.

Every cached result lives under a key made of the endpoint id plus the JSON
serialization of its parameters. A key has at most one network call in
flight; callers asking for the same key while it is loading get the same
future and therefore observe the same terminal entry.

Forced refreshes (`refetch` / `invalidate`) issued while a call is already in
flight are queued and start as soon as that call lands, so the entry always
converges to a response issued after the refresh was requested.

Nothing here invalidates across keys. Callers decide which keys to refresh
after a mutation (see taskapp.mutations for the optional declared map).
"""

from __future__ import annotations

import json
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from taskapp.errors import ApiError, NetworkError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="query_cache")

CacheKey = tuple[str, str]
Listener = Callable[["CacheEntry"], None]


class QueryStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class ErrorInfo:
    """Serializable description of why the last fetch failed."""
    kind: str  # network | api | unexpected
    message: str
    status: Optional[int] = None
    body: Any = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        if isinstance(exc, ApiError):
            return cls(kind="api", message=exc.message or str(exc), status=exc.status, body=exc.body)
        if isinstance(exc, NetworkError):
            return cls(kind="network", message=str(exc))
        return cls(kind="unexpected", message=f"{type(exc).__name__}: {exc}")


@dataclass(frozen=True)
class CacheEntry:
    """Immutable snapshot of one cache key."""
    endpoint_id: str
    params: Optional[dict[str, Any]] = None
    status: QueryStatus = QueryStatus.IDLE
    data: Any = None
    error: Optional[ErrorInfo] = None
    last_fetched_at: Optional[datetime] = None
    is_stale: bool = False

    @property
    def is_loading(self) -> bool:
        return self.status == QueryStatus.LOADING

    @property
    def is_success(self) -> bool:
        return self.status == QueryStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status == QueryStatus.ERROR


def make_key(endpoint_id: str, params: Optional[dict[str, Any]] = None) -> CacheKey:
    """Build the cache key; parameter order does not matter."""
    return endpoint_id, json.dumps(params or {}, sort_keys=True, default=str)


def _resolved(entry: CacheEntry) -> "Future[CacheEntry]":
    fut: Future[CacheEntry] = Future()
    fut.set_result(entry)
    return fut


@dataclass(frozen=True)
class _Launch:
    """A key moved to loading whose network call has not been submitted yet."""
    key: CacheKey
    endpoint_id: str
    params: Optional[dict[str, Any]]
    fetcher: Callable[..., Any]
    future: Future
    entry: CacheEntry
    version: int


class QueryCache:
    """Cache of the latest result per (endpoint, params), fetched on a worker pool."""

    def __init__(
        self,
        *,
        max_workers: int = 4,
        executor: Optional[ThreadPoolExecutor] = None,
        keep_previous_data: bool = True,
    ) -> None:
        self._executor = executor or ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="query")
        self._owns_executor = executor is None
        self.keep_previous_data = keep_previous_data
        self._fetchers: dict[str, Callable[..., Any]] = {}
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._in_flight: dict[CacheKey, Future] = {}
        self._queued: dict[CacheKey, Future] = {}
        self._listeners: list[Listener] = []
        self._lock = threading.RLock()
        # per-key change counter; listeners never see an older version after a newer one
        self._versions: dict[CacheKey, int] = {}
        self._delivered: dict[CacheKey, int] = {}
        self._notify_lock = threading.RLock()

    # ---- registration / inspection ----

    def register(self, endpoint_id: str, fetcher: Callable[..., Any]) -> None:
        """Bind an endpoint id to the callable that performs its network call."""
        with self._lock:
            self._fetchers[endpoint_id] = fetcher

    def entry(self, endpoint_id: str, params: Optional[dict[str, Any]] = None) -> CacheEntry:
        """Current snapshot for a key (idle if never fetched)."""
        key = make_key(endpoint_id, params)
        with self._lock:
            return self._entries.get(key) or CacheEntry(endpoint_id=endpoint_id, params=params)

    def entries(self, endpoint_id: Optional[str] = None) -> list[CacheEntry]:
        with self._lock:
            return [e for (eid, _), e in self._entries.items() if endpoint_id is None or eid == endpoint_id]

    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    # ---- queries ----

    def fetch(
        self,
        endpoint_id: str,
        params: Optional[dict[str, Any]] = None,
        *,
        force: bool = False,
    ) -> CacheEntry:
        """
        Return the entry right away, starting a fetch when one is needed.

        A fetch starts if the key was never fetched, is marked stale, or
        `force` is set, and only if nothing is in flight for it already.
        """
        self.request(endpoint_id, params, force=force)
        return self.entry(endpoint_id, params)

    def request(
        self,
        endpoint_id: str,
        params: Optional[dict[str, Any]] = None,
        *,
        force: bool = False,
    ) -> "Future[CacheEntry]":
        """Like fetch(), but return a future resolving to the terminal entry."""
        key = make_key(endpoint_id, params)
        with self._lock:
            if endpoint_id not in self._fetchers:
                raise KeyError(f"Unknown query endpoint '{endpoint_id}'")
            in_flight = self._in_flight.get(key)
            if force:
                if in_flight is not None:
                    return self._queue_after_in_flight(key)
                launch = self._begin(key, endpoint_id, params)
            elif in_flight is not None:
                logger.debug("Joining in-flight request for %s", key)
                return in_flight
            else:
                current = self._entries.get(key)
                if current is not None and current.status != QueryStatus.IDLE and not current.is_stale:
                    return _resolved(current)
                launch = self._begin(key, endpoint_id, params)
        self._launch(launch)
        return launch.future

    def refetch(self, endpoint_id: str, params: Optional[dict[str, Any]] = None) -> "Future[CacheEntry]":
        """Force a new network call for the key regardless of freshness."""
        return self.request(endpoint_id, params, force=True)

    def invalidate(self, endpoint_id: str, params: Optional[dict[str, Any]] = None) -> "Future[CacheEntry]":
        """Mark the key stale and refetch it."""
        key = make_key(endpoint_id, params)
        with self._lock:
            current = self._entries.get(key)
            if current is not None and not current.is_loading:
                self._store(key, replace(current, is_stale=True))
        return self.refetch(endpoint_id, params)

    def invalidate_endpoint(self, endpoint_id: str) -> list["Future[CacheEntry]"]:
        """Refetch every key of an endpoint that has been fetched at least once."""
        with self._lock:
            params_list = [
                e.params for (eid, _), e in self._entries.items()
                if eid == endpoint_id and e.status != QueryStatus.IDLE
            ]
        return [self.invalidate(endpoint_id, params) for params in params_list]

    def reset(self) -> None:
        """Drop every cached entry. In-flight calls still land and repopulate their key."""
        with self._lock:
            self._entries.clear()
        logger.info("Query cache cleared")

    # ---- reactivity ----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener with each changed entry; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def close(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    # ---- internals ----

    def _queue_after_in_flight(self, key: CacheKey) -> "Future[CacheEntry]":
        """Return the follow-up future for a key that is already loading (lock held)."""
        queued = self._queued.get(key)
        if queued is None:
            queued = Future()
            self._queued[key] = queued
            logger.debug("Queued refetch for %s behind in-flight request", key)
        return queued

    def _store(self, key: CacheKey, entry: CacheEntry) -> int:
        """Replace the entry for a key and return its new version (lock held)."""
        self._entries[key] = entry
        version = self._versions.get(key, 0) + 1
        self._versions[key] = version
        return version

    def _begin(
        self,
        key: CacheKey,
        endpoint_id: str,
        params: Optional[dict[str, Any]],
        fut: Optional[Future] = None,
    ) -> _Launch:
        """Move the key to loading and claim its in-flight slot (lock held)."""
        current = self._entries.get(key) or CacheEntry(endpoint_id=endpoint_id, params=params)
        loading = replace(current, status=QueryStatus.LOADING, error=None)
        version = self._store(key, loading)
        fut = fut or Future()
        self._in_flight[key] = fut
        return _Launch(key, endpoint_id, params, self._fetchers[endpoint_id], fut, loading, version)

    def _launch(self, launch: _Launch) -> None:
        """Announce the loading entry, then hand the network call to the pool."""
        self._notify(launch.key, launch.entry, launch.version)
        try:
            self._executor.submit(self._run, launch)
        except RuntimeError as exc:
            logger.error("Cannot start query %s: %s", launch.key, exc)
            self._settle(launch, None, ErrorInfo.from_exception(exc))

    def _run(self, launch: _Launch) -> None:
        try:
            data = launch.fetcher(**(launch.params or {}))
        except Exception as exc:
            logger.warning("Query %s failed: %s", launch.key, exc)
            self._settle(launch, None, ErrorInfo.from_exception(exc))
        else:
            self._settle(launch, data, None)

    def _settle(self, launch: _Launch, data: Any, error: Optional[ErrorInfo]) -> None:
        """Store the terminal entry, resolve waiters and start any queued refetch."""
        key = launch.key
        follow_up: Optional[_Launch] = None
        with self._lock:
            previous = self._entries.get(key) or CacheEntry(endpoint_id=launch.endpoint_id, params=launch.params)
            if error is None:
                result = replace(
                    previous,
                    status=QueryStatus.SUCCESS,
                    data=data,
                    error=None,
                    last_fetched_at=datetime.now(timezone.utc),
                    is_stale=False,
                )
            else:
                result = replace(
                    previous,
                    status=QueryStatus.ERROR,
                    data=previous.data if self.keep_previous_data else None,
                    error=error,
                    is_stale=False,
                )
            version = self._store(key, result)
            if self._in_flight.get(key) is launch.future:
                self._in_flight.pop(key)
            queued = self._queued.pop(key, None)
            if queued is not None:
                follow_up = self._begin(key, launch.endpoint_id, launch.params, queued)

        self._notify(key, result, version)
        launch.future.set_result(result)
        if follow_up is not None:
            self._launch(follow_up)

    def _notify(self, key: CacheKey, entry: CacheEntry, version: int) -> None:
        """
        Deliver one entry change to listeners.

        Deliveries are serialized, and a change older than one already
        delivered for the same key is dropped, so the last entry a listener
        sees for a key is always its current one. Listeners run on the
        notifying thread and must not block on cache futures.
        """
        with self._notify_lock:
            if version <= self._delivered.get(key, 0):
                return
            self._delivered[key] = version
            with self._lock:
                listeners = list(self._listeners)
            for listener in listeners:
                try:
                    listener(entry)
                except Exception:
                    logger.exception("Query cache listener failed for %s", entry.endpoint_id)

"""Wiring of storage, session, remote client and query cache into one owned object."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import requests

from taskapp import config
from taskapp.bootstrap import SessionBootstrap
from taskapp.mutations import DEFAULT_INVALIDATION_MAP, TaskMutations
from taskapp.queries import register_task_queries
from taskapp.query_cache import QueryCache
from taskapp.remote import AuthApi, HttpTransport, TasksApi
from taskapp.session import SessionStore
from taskapp.storage import KeyValueStorage, build_storage
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="context")


@dataclass
class AppContext:
    """Everything a screen needs; passed explicitly instead of module globals."""
    settings: config.Settings
    storage: KeyValueStorage
    session_store: SessionStore
    bootstrap: SessionBootstrap
    auth_api: AuthApi
    tasks_api: TasksApi
    query_cache: QueryCache
    mutations: TaskMutations

    def close(self) -> None:
        """Flush pending session writes and stop worker threads."""
        self.session_store.flush(timeout=5)
        self.bootstrap.close()
        self.session_store.close()
        self.query_cache.close(wait=False)


def build_app_context(
    settings: Optional[config.Settings] = None,
    *,
    storage: Optional[KeyValueStorage] = None,
    http_session: Optional[requests.Session] = None,
) -> AppContext:
    """Build the context from settings; storage and HTTP session can be injected."""
    settings = settings or config.settings
    storage = storage if storage is not None else build_storage(settings)

    # one requests.Session shared by both resource groups
    http_session = http_session or requests.Session()
    auth_transport = HttpTransport(settings.auth_base_url, timeout=settings.request_timeout_seconds, session=http_session)
    tasks_transport = HttpTransport(settings.base_url, timeout=settings.request_timeout_seconds, session=http_session)
    auth_api = AuthApi(auth_transport)
    tasks_api = TasksApi(tasks_transport)

    query_cache = QueryCache(max_workers=settings.query_workers)
    register_task_queries(query_cache, tasks_api)
    invalidation_map = DEFAULT_INVALIDATION_MAP if settings.auto_invalidate else None
    mutations = TaskMutations(tasks_api, query_cache, invalidation_map)

    session_store = SessionStore(storage)
    bootstrap = SessionBootstrap(storage, session_store)

    logger.debug(
        "Built app context: base_url=%s auto_invalidate=%s",
        settings.base_url,
        settings.auto_invalidate,
    )
    return AppContext(
        settings=settings,
        storage=storage,
        session_store=session_store,
        bootstrap=bootstrap,
        auth_api=auth_api,
        tasks_api=tasks_api,
        query_cache=query_cache,
        mutations=mutations,
    )

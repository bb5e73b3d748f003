"""HTTP API exposing each screen of the task manager over the query cache and session."""

import concurrent.futures
import hmac
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, Request, UploadFile, status
from pydantic import BaseModel

from taskapp.bootstrap import BootState
from taskapp.context import AppContext
from taskapp.errors import ApiError, TaskAppError, ValidationError
from taskapp.models import ImageUpload, LoginCredentials, Task, TaskDraft, TaskUpdate
from taskapp.queries import LIST_ALL, LIST_BY_CATEGORY, LIST_COMPLETED, category_params
from taskapp.query_cache import CacheEntry
from taskapp.selectors import category_counts, find_task, list_categories
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="taskapp/api")

# extra seconds on top of the HTTP timeout when a screen waits for its query
_WAIT_MARGIN_SECONDS = 2.0


def get_context(request: Request) -> AppContext:
    """Return the AppContext attached to the running application."""
    return request.app.state.context


def require_api_key(request: Request, x_api_key: str | None = Header(default=None)):
    """Validate X-API-Key against the static api_key setting, if one is configured."""
    settings = get_context(request).settings
    if not settings.api_key:
        return
    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")
    if hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return
    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


def require_ready(ctx: AppContext = Depends(get_context)) -> AppContext:
    """Refuse to render any view tree while the session is still being restored."""
    if ctx.bootstrap.is_loading:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Session is loading")
    return ctx


def require_user(ctx: AppContext = Depends(require_ready)) -> AppContext:
    """Screens behind login."""
    if not ctx.session_store.is_authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in")
    return ctx


router = APIRouter(dependencies=[Depends(require_api_key)])


class ErrorDetail(BaseModel):
    """Why the last fetch of a query failed."""
    kind: str
    message: str
    status: Optional[int] = None


class QueryResponse(BaseModel):
    """Cache entry as rendered by a list screen."""
    status: str
    data: Optional[list[dict[str, Any]]] = None
    error: Optional[ErrorDetail] = None
    last_fetched_at: Optional[datetime] = None
    is_stale: bool = False


class CategorySummary(BaseModel):
    name: str
    count: int


class CategoriesResponse(BaseModel):
    """Distinct categories derived from the full task list."""
    status: str
    categories: list[CategorySummary]
    error: Optional[ErrorDetail] = None


class SessionResponse(BaseModel):
    """Bootstrap state plus the logged-in user, if any."""
    state: BootState
    user: Optional[dict[str, Any]] = None


class ProfileResponse(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    username: Optional[str] = None
    handle: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None
    image: Optional[str] = None


class MutationResponse(BaseModel):
    """Outcome of a write; `result` is the backend's body unchanged."""
    ok: bool = True
    result: Any = None


def _to_query_response(entry: CacheEntry) -> QueryResponse:
    """Convert a cache entry into the serialized API shape."""
    data = None
    if entry.data is not None:
        data = [t.to_wire() if isinstance(t, Task) else t for t in entry.data]
    error = None
    if entry.error is not None:
        error = ErrorDetail(kind=entry.error.kind, message=entry.error.message, status=entry.error.status)
    return QueryResponse(
        status=entry.status.value,
        data=data,
        error=error,
        last_fetched_at=entry.last_fetched_at,
        is_stale=entry.is_stale,
    )


def _run_query(
    ctx: AppContext,
    endpoint_id: str,
    params: dict | None = None,
    *,
    refresh: bool,
    wait: bool,
) -> CacheEntry:
    """Start (or join) the query and optionally wait for it to settle."""
    fut = ctx.query_cache.request(endpoint_id, params, force=refresh)
    if not wait:
        return ctx.query_cache.entry(endpoint_id, params)
    timeout = ctx.settings.request_timeout_seconds + _WAIT_MARGIN_SECONDS
    try:
        return fut.result(timeout=timeout)
    except concurrent.futures.TimeoutError:
        logger.warning("Query %s still loading after %.1fs", endpoint_id, timeout)
        return ctx.query_cache.entry(endpoint_id, params)


def _raise_for_remote(exc: TaskAppError, action: str) -> None:
    """Map client errors to HTTP errors for the caller to display."""
    if isinstance(exc, ValidationError):
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if isinstance(exc, ApiError) and 400 <= exc.status < 500:
        raise HTTPException(status_code=exc.status, detail=exc.message or f"Failed to {action}.") from exc
    raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"Failed to {action}.") from exc


def _refresh_home(ctx: AppContext) -> None:
    """Resynchronize the home list after a write, as the home screen does."""
    ctx.query_cache.refetch(LIST_ALL)


# ---- session / auth ----

@router.get("/session", response_model=SessionResponse)
def get_session_state(ctx: AppContext = Depends(get_context)):
    """Bootstrap state; the user is only reported once loading has finished."""
    state = ctx.bootstrap.state
    if state == BootState.LOADING:
        return SessionResponse(state=state)
    user = ctx.session_store.user
    return SessionResponse(state=state, user=user.to_storage() if user else None)


@router.post("/session/login", response_model=SessionResponse)
def login(credentials: LoginCredentials, ctx: AppContext = Depends(require_ready)):
    """Sign in and populate the session."""
    try:
        user = ctx.auth_api.login(credentials)
    except TaskAppError as exc:
        logger.info("Login failed: %s", exc)
        _raise_for_remote(exc, "log in")
    ctx.session_store.login(user)
    return SessionResponse(state=ctx.bootstrap.state, user=user.to_storage())


@router.post("/session/register", response_model=MutationResponse)
def register(
    name: str = Form(...),
    username: str = Form(...),
    mobile: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    img: UploadFile | None = File(default=None),
    ctx: AppContext = Depends(require_ready),
):
    """Create an account. The caller logs in afterwards; no session is created here."""
    image = None
    if img is not None:
        image = ImageUpload(
            content=img.file.read(),
            filename=img.filename or "profile.jpg",
            content_type=img.content_type or "image/jpeg",
        )
    form = {"name": name, "username": username, "mobile": mobile, "email": email, "password": password}
    try:
        result = ctx.auth_api.register(form, image)
    except TaskAppError as exc:
        logger.info("Registration failed: %s", exc)
        _raise_for_remote(exc, "register")
    return MutationResponse(result=result)


@router.post("/session/logout", response_model=SessionResponse)
def logout(ctx: AppContext = Depends(require_ready)):
    """Clear the session and forget the previous user's cached lists."""
    ctx.session_store.logout()
    ctx.query_cache.reset()
    return SessionResponse(state=ctx.bootstrap.state)


@router.get("/profile", response_model=ProfileResponse)
def get_profile(ctx: AppContext = Depends(require_user)):
    user = ctx.session_store.user
    return ProfileResponse(
        id=user.id,
        name=user.name,
        username=user.username,
        handle=f"@{user.username}" if user.username else None,
        email=user.email,
        mobile=user.mobile,
        image=user.image,
    )


# ---- task lists ----

@router.get("/tasks", response_model=QueryResponse)
def home_tasks(refresh: bool = True, wait: bool = True, ctx: AppContext = Depends(require_user)):
    """Home screen: every task, refetched on each visit."""
    return _to_query_response(_run_query(ctx, LIST_ALL, refresh=refresh, wait=wait))


@router.get("/tasks/completed", response_model=QueryResponse)
def completed_tasks(refresh: bool = False, wait: bool = True, ctx: AppContext = Depends(require_user)):
    """Completed screen: served from cache unless a refresh is requested."""
    return _to_query_response(_run_query(ctx, LIST_COMPLETED, refresh=refresh, wait=wait))


@router.get("/categories", response_model=CategoriesResponse)
def categories(refresh: bool = True, ctx: AppContext = Depends(require_user)):
    """Categories screen: distinct categories of the full task list."""
    entry = _run_query(ctx, LIST_ALL, refresh=refresh, wait=True)
    counts = category_counts(entry.data)
    summaries = [CategorySummary(name=name, count=counts[name]) for name in list_categories(entry.data)]
    return CategoriesResponse(
        status=entry.status.value,
        categories=summaries,
        error=_to_query_response(entry).error,
    )


@router.get("/categories/{category}/tasks", response_model=QueryResponse)
def category_tasks(category: str, refresh: bool = True, wait: bool = True, ctx: AppContext = Depends(require_user)):
    """Task list for one category, fetched from the backend's category filter."""
    entry = _run_query(ctx, LIST_BY_CATEGORY, category_params(category), refresh=refresh, wait=wait)
    return _to_query_response(entry)


# ---- task mutations ----

@router.post("/tasks", response_model=MutationResponse, status_code=status.HTTP_201_CREATED)
def create_task(draft: TaskDraft, ctx: AppContext = Depends(require_user)):
    """Create a task and refresh the home list so it shows up there."""
    try:
        result = ctx.mutations.create(draft)
    except TaskAppError as exc:
        logger.warning("Create task failed: %s", exc)
        _raise_for_remote(exc, "create task")
    _refresh_home(ctx)
    return MutationResponse(result=result)


@router.put("/tasks/{task_id}", response_model=MutationResponse)
def update_task(task_id: str, changes: TaskUpdate, ctx: AppContext = Depends(require_user)):
    """Edit title/description (or any field) of a task."""
    try:
        result = ctx.mutations.update(task_id, changes)
    except TaskAppError as exc:
        logger.warning("Update task %s failed: %s", task_id, exc)
        _raise_for_remote(exc, "update task")
    _refresh_home(ctx)
    return MutationResponse(result=result)


@router.post("/tasks/{task_id}/toggle", response_model=MutationResponse)
def toggle_task(task_id: str, ctx: AppContext = Depends(require_user)):
    """Flip completion based on the task as last shown on the home screen."""
    task = find_task(ctx.query_cache.entry(LIST_ALL).data, task_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task is not in the current list")
    try:
        result = ctx.mutations.toggle_completed(task)
    except TaskAppError as exc:
        logger.warning("Toggle task %s failed: %s", task_id, exc)
        _raise_for_remote(exc, "update task")
    _refresh_home(ctx)
    return MutationResponse(result=result)


@router.delete("/tasks/{task_id}", response_model=MutationResponse)
def delete_task(task_id: str, ctx: AppContext = Depends(require_user)):
    try:
        result = ctx.mutations.delete(task_id)
    except TaskAppError as exc:
        logger.warning("Delete task %s failed: %s", task_id, exc)
        _raise_for_remote(exc, "delete task")
    _refresh_home(ctx)
    return MutationResponse(result=result)

"""FastAPI application setup for the task manager screens."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from .api import router as api_router
from .context import AppContext, build_app_context
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="taskapp/main")

APP_TITLE = "Task Manager"


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """Build the app; the session is restored in the background at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ctx = app.state.context
        ctx.bootstrap.start()
        try:
            yield
        finally:
            ctx.close()

    app = FastAPI(title=APP_TITLE, lifespan=lifespan)
    app.state.context = context or build_app_context()

    # Liveness check outside the API key dependency
    @app.get("/healthz")
    def healthz():
        """Report the bootstrap state without touching the backend."""
        return {"ok": True, "session": app.state.context.bootstrap.state.value}

    app.include_router(api_router, prefix="/v1")
    return app


app = create_app()

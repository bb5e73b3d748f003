import os

import uvicorn

from taskapp.check_backend import check_backend
from taskapp.config import settings
from utils.logging_utils import get_tagged_logger, setup_logging

setup_logging(level=settings.log_level, job_name="taskapp_server")
logger = get_tagged_logger(__name__, tag="server")


def maybe_check_backend() -> None:
    """
    Optionally run the backend preflight. Controlled by:
    - TASKAPP_SKIP_BACKEND_CHECK=true to skip entirely (useful in dev/tests)
    - TASKAPP_BASE_URL to pick the backend host.
    """
    if settings.skip_backend_check:
        logger.info("Skipping backend preflight (TASKAPP_SKIP_BACKEND_CHECK=true)")
        return

    try:
        check_backend(settings)
    except SystemExit:
        logger.error("Backend preflight failed; set TASKAPP_SKIP_BACKEND_CHECK=true to bypass during dev/tests.")
        raise


if __name__ == "__main__":
    maybe_check_backend()

    uvicorn.run(
        "taskapp.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )

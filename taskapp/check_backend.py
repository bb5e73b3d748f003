# taskapp/check_backend.py
"""Reachability checks for the remote task backend."""

import sys
from typing import Any, Dict, Optional

import requests

from taskapp.config import Settings, settings as default_settings
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="check_backend")


def _tasks_url(settings: Settings) -> str:
    """Return the task list endpoint used for the reachability check."""
    return f"{settings.base_url}/tasks"


def get_backend_status(settings: Optional[Settings] = None, timeout: float = 5.0) -> Dict[str, Any]:
    """
    Non-fatal reachability check of the task backend.

    Returns a dict like:
    {
      "ok": bool,          # reachable and answered 2xx
      "reachable": bool,   # any HTTP response at all
      "base_url": "...",
      "status_code": int | None,
      "error": "...",      # present if something went wrong
    }

    Any HTTP answer (even 401/404) proves the host is up, so `reachable` is
    True whenever a response arrives. This NEVER sys.exit().
    """
    settings = settings or default_settings
    status: Dict[str, Any] = {
        "ok": False,
        "reachable": False,
        "base_url": settings.base_url,
        "status_code": None,
        "error": None,
    }

    try:
        resp = requests.get(_tasks_url(settings), timeout=timeout)
    except Exception as e:
        status["error"] = str(e)
        return status

    status["reachable"] = True
    status["status_code"] = resp.status_code
    status["ok"] = 200 <= resp.status_code < 300
    if not status["ok"]:
        status["error"] = f"HTTP {resp.status_code}"
    return status


def check_backend(settings: Optional[Settings] = None) -> None:
    """
    "Hard" check for startup.

    Exits with status 1 if the backend cannot be reached at all. A reachable
    backend that answers with an error status only logs a warning, since the
    task list may require a login the preflight does not have.
    """
    settings = settings or default_settings
    status = get_backend_status(settings)

    if not status["reachable"]:
        logger.error(f"\nERROR: Task backend does not appear to be reachable.\n"
                     f"   Tried: {_tasks_url(settings)}")
        if status["error"]:
            logger.error(f"   Details: {status['error']}")
        logger.error("\n   Check TASKAPP_BASE_URL and your network connection.\n"
                     "   Hosted backends on free tiers may need a minute to wake up.")
        sys.exit(1)

    if not status["ok"]:
        logger.warning(f"Task backend reachable at {settings.base_url} but answered {status['error']}")
        return

    logger.info(f"Task backend reachable at {settings.base_url}")

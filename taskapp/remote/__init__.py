"""Remote resource client for the task backend."""

from .auth_api import AuthApi
from .http import HttpTransport
from .tasks_api import TasksApi

__all__ = [
    "AuthApi",
    "HttpTransport",
    "TasksApi",
]

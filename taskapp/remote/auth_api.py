"""Auth resource group: signin and multipart signup under `<host>/user/`."""

from __future__ import annotations

from typing import Any, Optional, Union

from taskapp.models import ImageUpload, LoginCredentials, Registration, User, parse_user, validate_payload
from taskapp.remote.http import HttpTransport
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="remote/auth_api")

SIGNIN_PATH = "signin"
SIGNUP_PATH = "signup"


class AuthApi:
    """Request builders for the auth endpoints."""

    def __init__(self, transport: HttpTransport) -> None:
        self.transport = transport

    def login(self, credentials: Union[LoginCredentials, dict]) -> User:
        """POST signin with `{emailOrusername, password}` and return the user."""
        credentials = validate_payload(LoginCredentials, credentials)
        payload = self.transport.request(
            "POST",
            SIGNIN_PATH,
            json=credentials.to_wire(),
            headers={"Content-Type": "application/json"},
        )
        user = parse_user(payload)
        logger.info("Signed in user id=%s", user.id)
        return user

    def register(self, form: Union[Registration, dict], image: Optional[ImageUpload] = None) -> Any:
        """
        POST signup as multipart form data.

        Text fields go out as filename-less parts so the body is multipart
        even without an image. The boundary is left to requests, so no
        Content-Type header is set here. Returns the server's confirmation
        body unchanged.
        """
        form = validate_payload(Registration, form)
        files: dict[str, tuple] = {name: (None, str(value)) for name, value in form.model_dump().items()}
        if image is not None:
            files["img"] = (image.filename, image.content, image.content_type)
        result = self.transport.request("POST", SIGNUP_PATH, files=files)
        logger.info("Registered username=%s", form.username)
        return result

"""Thin requests-based transport shared by the auth and tasks resource groups."""

from __future__ import annotations

from typing import Any, Mapping, Optional

import requests

from taskapp.errors import ApiError, NetworkError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="remote/http")


class HttpTransport:
    """
    Send one HTTP request against a base address and decode the JSON reply.

    No retries, no caching: a request either returns the decoded body or
    raises NetworkError (no response) / ApiError (non-2xx response).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = str(base_url).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def url_for(self, path: str) -> str:
        """Join a relative resource path onto the base address."""
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        data: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Perform the request and return the decoded body (None when empty)."""
        url = self.url_for(path)
        logger.debug("%s %s params=%s", method, url, params)
        try:
            r = self.session.request(
                method,
                url,
                params=params,
                json=json,
                data=data,
                files=files,
                headers=dict(headers or {}),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            logger.warning("%s %s failed without a response: %s", method, url, exc)
            raise NetworkError(f"{method} {url} failed: {exc}") from exc

        body = _decode_body(r)
        if not 200 <= r.status_code < 300:
            logger.info("%s %s returned status %d", method, url, r.status_code)
            raise ApiError(r.status_code, body, url=url)
        return body


def _decode_body(r) -> Any:
    """Return parsed JSON when possible, otherwise the raw text (None if empty)."""
    text = getattr(r, "text", "") or ""
    if not text.strip():
        return None
    try:
        return r.json()
    except ValueError:
        return text

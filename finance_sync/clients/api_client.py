"""HTTP transport for the finance backend.

Thin wrapper over a requests.Session that attaches the bearer token, encodes
JSON bodies and maps HTTP failures onto the ApiError hierarchy.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from ..config import ApiConfig
from .errors import (
    ApiError,
    ConflictError,
    DecodeError,
    NotFoundError,
    TransportError,
    UnauthorizedError,
    ValidationError,
    looks_like_duplicate,
)

logger = logging.getLogger(__name__)


class ApiClient:
    """JSON-over-HTTP client for the finance REST API."""

    def __init__(self, config: ApiConfig, session: Optional[requests.Session] = None):
        self._config = config
        self._base_url = config.base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": "finance-sync/0.1",
            }
        )
        self.set_token(config.token)

    @property
    def base_url(self) -> str:
        return self._base_url

    def set_token(self, token: Optional[str]) -> None:
        """Set or clear the bearer token sent with every request."""
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"
        else:
            self._session.headers.pop("Authorization", None)

    def request(
        self,
        method: str,
        endpoint: str,
        body: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            UnauthorizedError, NotFoundError, ConflictError, ValidationError,
            TransportError, DecodeError or ApiError.
        """
        response = self._send(method, endpoint, body, params)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Invalid JSON from {method} {endpoint}: {e}") from e

    def request_void(self, method: str, endpoint: str, body: Optional[dict[str, Any]] = None):
        """Send a request whose response body is ignored (e.g. DELETE)."""
        self._send(method, endpoint, body, None)

    def _send(
        self,
        method: str,
        endpoint: str,
        body: Optional[dict[str, Any]],
        params: Optional[dict[str, Any]],
    ) -> requests.Response:
        url = f"{self._base_url}{endpoint}"
        logger.debug("API request: %s %s", method, url)
        try:
            response = self._session.request(
                method,
                url,
                json=body,
                params=params,
                timeout=self._config.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {endpoint} failed: {e}") from e

        logger.debug("API response: %s %s -> %d", method, endpoint, response.status_code)
        if 200 <= response.status_code < 300:
            return response
        raise self._error_for(response)

    @staticmethod
    def _error_for(response: requests.Response) -> ApiError:
        status = response.status_code
        message = _error_message(response)
        if status == 401:
            return UnauthorizedError(message or "Unauthorized", status)
        if status == 404:
            return NotFoundError(message or "Not found", status)
        if status == 409 or (status in (400, 422) and looks_like_duplicate(message)):
            return ConflictError(message or "Conflict", status)
        if status in (400, 422):
            return ValidationError(message or "Validation failed", status)
        return ApiError(message or "Request failed", status)


def _error_message(response: requests.Response) -> str:
    """Extract a readable message from an error response."""
    try:
        data = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(data, dict):
        for key in ("message", "error", "detail"):
            value = data.get(key)
            if isinstance(value, list):
                return "; ".join(str(v) for v in value)
            if value:
                return str(value)
    return response.text.strip()

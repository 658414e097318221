"""Error taxonomy for remote calls."""

from __future__ import annotations

from typing import Optional

# Fragments servers use when rejecting a create because the name is taken
DUPLICATE_MARKERS = ("duplicate", "already exists", "unique", "já existe")


class ApiError(Exception):
    """Base class for remote API failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"HTTP {self.status_code}: {self.message}"
        return self.message


class UnauthorizedError(ApiError):
    """Token missing or rejected (HTTP 401). Aborts the whole run."""


class NotFoundError(ApiError):
    """Remote record does not exist (HTTP 404)."""


class ConflictError(ApiError):
    """Uniqueness violation, e.g. a duplicate name on create."""


class ValidationError(ApiError):
    """Remote rejected the payload."""


class TransportError(ApiError):
    """Network failure before a response was received."""


class DecodeError(ApiError):
    """Response body could not be decoded."""


def looks_like_duplicate(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in DUPLICATE_MARKERS)

"""
Error types raised by the backend client and the auth operations.

Routes catch these and render the message inline; nothing here is retried.
"""
from __future__ import annotations

NETWORK_ERROR_MESSAGE = "Network error. Please check your connection and try again."
GENERIC_API_ERROR_MESSAGE = "An error occurred"


class HustlefyError(Exception):
    """Base class for user-facing errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class NetworkError(HustlefyError):
    """The backend could not be reached (DNS, refused connection, timeout)."""

    def __init__(self, message: str = NETWORK_ERROR_MESSAGE):
        super().__init__(message)


class ApiError(HustlefyError):
    """The backend answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str | None = None, payload: dict | None = None):
        super().__init__(message or GENERIC_API_ERROR_MESSAGE)
        self.status_code = status_code
        self.payload = payload or {}
        # True when the backend supplied its own message
        self.from_server = bool(message)


class AuthError(HustlefyError):
    """An auth operation failed; message is the server's or the operation fallback."""


def user_message(exc: HustlefyError, fallback: str) -> str:
    """Text to show for `exc`: network and server messages win over `fallback`."""
    if isinstance(exc, ApiError) and not exc.from_server:
        return fallback
    return exc.message or fallback


__all__ = [
    "NETWORK_ERROR_MESSAGE",
    "GENERIC_API_ERROR_MESSAGE",
    "HustlefyError",
    "NetworkError",
    "ApiError",
    "AuthError",
    "user_message",
]

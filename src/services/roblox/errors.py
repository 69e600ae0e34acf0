"""
QBot - Roblox API Errors
========================

Typed failures raised by the Roblox client. Callers branch on
``error.kind`` (or the subclass) instead of inspecting message text.
"""

import asyncio
from enum import Enum
from typing import Optional

import aiohttp


class RobloxErrorKind(Enum):
    AUTH_EXPIRED = "auth_expired"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"
    MALFORMED = "malformed"
    UNKNOWN = "unknown"


class RobloxAPIError(Exception):
    """Base class for every Roblox API failure."""

    kind: RobloxErrorKind = RobloxErrorKind.UNKNOWN

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class AuthExpiredError(RobloxAPIError):
    """Cookie or CSRF token rejected (401 / 403 token validation)."""
    kind = RobloxErrorKind.AUTH_EXPIRED


class RateLimitError(RobloxAPIError):
    """429 from Roblox; ``retry_after`` is the server hint in seconds."""
    kind = RobloxErrorKind.RATE_LIMITED

    def __init__(self, message: str, status: Optional[int] = 429, retry_after: float = 0.0) -> None:
        super().__init__(message, status)
        self.retry_after = retry_after


class NotFoundError(RobloxAPIError):
    """User, group or role does not exist."""
    kind = RobloxErrorKind.NOT_FOUND


class RobloxTimeoutError(RobloxAPIError):
    """The request exceeded its timeout."""
    kind = RobloxErrorKind.TIMEOUT


class RobloxUnavailableError(RobloxAPIError):
    """5xx or connection failure."""
    kind = RobloxErrorKind.UNAVAILABLE


class MalformedResponseError(RobloxAPIError):
    """A 2xx answer whose body is not JSON or lacks a required field."""
    kind = RobloxErrorKind.MALFORMED


# Failures worth retrying after a delay
TRANSIENT_ROBLOX_ERRORS = (
    RateLimitError,
    RobloxTimeoutError,
    RobloxUnavailableError,
)


def error_for_status(
    status: int,
    message: str,
    retry_after: Optional[str] = None,
    csrf_rejected: bool = False,
) -> RobloxAPIError:
    """
    Map an HTTP status code to the matching typed error.

    A 403 only counts as auth expiry when Roblox rejected the CSRF token
    (it then sends a replacement token header); other 403s are permission
    errors and are not worth a credential refresh.
    """
    if status == 401 or (status == 403 and csrf_rejected):
        return AuthExpiredError(message, status)
    if status == 404:
        return NotFoundError(message, status)
    if status == 429:
        try:
            wait = float(retry_after) if retry_after else 0.0
        except ValueError:
            wait = 0.0
        return RateLimitError(message, status, retry_after=wait)
    if status >= 500:
        return RobloxUnavailableError(message, status)
    return RobloxAPIError(message, status)


def classify_exception(error: BaseException) -> RobloxAPIError:
    """Turn a transport-level exception into a typed Roblox error."""
    if isinstance(error, RobloxAPIError):
        return error
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return RobloxTimeoutError("Roblox request timed out")
    if isinstance(error, aiohttp.ClientResponseError):
        return error_for_status(error.status, error.message or "HTTP error")
    if isinstance(error, aiohttp.ClientError):
        return RobloxUnavailableError(f"Network error: {error}")
    return RobloxAPIError(str(error) or type(error).__name__)


__all__ = [
    "RobloxErrorKind",
    "RobloxAPIError",
    "AuthExpiredError",
    "RateLimitError",
    "NotFoundError",
    "RobloxTimeoutError",
    "RobloxUnavailableError",
    "MalformedResponseError",
    "TRANSIENT_ROBLOX_ERRORS",
    "error_for_status",
    "classify_exception",
]

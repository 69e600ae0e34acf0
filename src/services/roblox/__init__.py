"""
QBot - Roblox Package
=====================

Structure:
    - errors.py: Typed API failures
    - models.py: Normalized API payloads
    - client.py: aiohttp client (cookie auth, CSRF handling)
    - group.py: Group directory with role cache and safe rank updates
"""

from src.services.roblox.errors import (
    RobloxErrorKind,
    RobloxAPIError,
    AuthExpiredError,
    RateLimitError,
    NotFoundError,
    RobloxTimeoutError,
    RobloxUnavailableError,
    MalformedResponseError,
)
from src.services.roblox.models import GroupRole, GroupMember, RobloxUser

__all__ = [
    "RobloxErrorKind",
    "RobloxAPIError",
    "AuthExpiredError",
    "RateLimitError",
    "NotFoundError",
    "RobloxTimeoutError",
    "RobloxUnavailableError",
    "MalformedResponseError",
    "GroupRole",
    "GroupMember",
    "RobloxUser",
]

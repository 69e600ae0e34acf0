"""
QBot - Roblox API Client
========================

Thin aiohttp client for the Roblox web APIs the bot uses.

Authentication is the account's .ROBLOSECURITY cookie. Mutating requests
also need an X-CSRF-TOKEN; Roblox hands one out in the response headers of
any rejected write (we POST to auth/v2/logout, which never logs out without
a token). Every request carries a ClientTimeout and every non-2xx answer
is raised as a typed RobloxAPIError.
"""

import asyncio
from typing import Any, Callable, Optional, TypeVar

import aiohttp

from src.core.logger import logger
from src.services.roblox.errors import (
    AuthExpiredError,
    MalformedResponseError,
    NotFoundError,
    RobloxAPIError,
    classify_exception,
    error_for_status,
)
from src.services.roblox.models import GroupMember, GroupRole, RobloxUser
from src.utils.retry import exponential_backoff


# =============================================================================
# Endpoints
# =============================================================================

USERS_API = "https://users.roblox.com"
GROUPS_API = "https://groups.roblox.com"
AUTH_API = "https://auth.roblox.com"

CSRF_HEADER = "x-csrf-token"

T = TypeVar("T")


def _parse(url: str, parser: Callable[[Any], T], data: Any) -> T:
    """Run a payload parser; missing or mistyped fields become MalformedResponseError."""
    try:
        return parser(data)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise MalformedResponseError(f"Unexpected payload from {url}: {type(e).__name__} {e}") from e


def _member_from_payload(data: Any, group_id: int, user_id: int) -> Optional[GroupMember]:
    for entry in (data or {}).get("data", []):
        group = entry.get("group") or {}
        if int(group.get("id", 0)) != int(group_id):
            continue
        role = GroupRole.from_api(entry["role"])
        username = str((entry.get("user") or {}).get("username", ""))
        return GroupMember(user_id=int(user_id), username=username, role=role)
    return None


class RobloxClient:
    """
    Cookie-authenticated Roblox API client.

    Call ``start()`` inside the running event loop before use and
    ``close()`` on shutdown.
    """

    def __init__(self, cookie: Optional[str], timeout: float = 30.0) -> None:
        self._cookie = cookie
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self._csrf_token: Optional[str] = None
        self._csrf_lock = asyncio.Lock()
        self.authenticated_user: Optional[RobloxUser] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        if self._session and not self._session.closed:
            return
        headers = {"Accept": "application/json"}
        if self._cookie:
            headers["Cookie"] = f".ROBLOSECURITY={self._cookie}"
        self._session = aiohttp.ClientSession(headers=headers, timeout=self._timeout)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    @property
    def is_started(self) -> bool:
        return self._session is not None and not self._session.closed

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        url: str,
        json: Optional[dict[str, Any]] = None,
        needs_csrf: bool = False,
    ) -> Any:
        """
        Perform one request and return the decoded JSON body.

        Raises:
            RobloxAPIError subclass for every failure (HTTP, network, timeout,
            undecodable body).
        """
        if not self.is_started:
            await self.start()

        headers: dict[str, str] = {}
        if needs_csrf:
            if not self._csrf_token:
                await self.refresh_csrf()
            headers["X-CSRF-TOKEN"] = self._csrf_token or ""

        try:
            async with self._session.request(method, url, json=json, headers=headers) as response:
                # A rejected write hands back a fresh token; keep it for the retry
                new_token = response.headers.get(CSRF_HEADER)
                csrf_rejected = bool(new_token) and new_token != headers.get("X-CSRF-TOKEN")
                if new_token:
                    self._csrf_token = new_token

                if response.status >= 400:
                    body = await response.text()
                    raise error_for_status(
                        response.status,
                        f"{method} {url} -> {response.status}: {body[:200]}",
                        response.headers.get("Retry-After"),
                        csrf_rejected=csrf_rejected,
                    )

                if response.status == 204:
                    return None
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise MalformedResponseError(
                        f"{method} {url} -> {response.status}: body is not JSON", response.status
                    ) from e
        except RobloxAPIError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise classify_exception(e) from e

    async def refresh_csrf(self) -> str:
        """
        Fetch a new X-CSRF-TOKEN.

        Raises:
            AuthExpiredError: If Roblox did not return a token (cookie invalid).
        """
        async with self._csrf_lock:
            if not self.is_started:
                await self.start()
            try:
                async with self._session.post(f"{AUTH_API}/v2/logout") as response:
                    token = response.headers.get(CSRF_HEADER)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise classify_exception(e) from e

            if not token:
                raise AuthExpiredError("Roblox did not issue a CSRF token; cookie may be invalid")
            self._csrf_token = token
            logger.debug("Roblox CSRF Token Refreshed")
            return token

    # =========================================================================
    # Users
    # =========================================================================

    async def login(self) -> RobloxUser:
        """Validate the cookie and remember which account we act as."""
        url = f"{USERS_API}/v1/users/authenticated"
        self.authenticated_user = _parse(url, RobloxUser.from_api, await self._request("GET", url))
        logger.tree("Roblox Login Successful", [
            ("User", self.authenticated_user.name),
            ("ID", self.authenticated_user.id),
        ], emoji="🔐")
        return self.authenticated_user

    @exponential_backoff(max_retries=3, base_delay=1.0)
    async def get_user(self, user_id: int) -> RobloxUser:
        url = f"{USERS_API}/v1/users/{int(user_id)}"
        return _parse(url, RobloxUser.from_api, await self._request("GET", url))

    @exponential_backoff(max_retries=3, base_delay=1.0)
    async def get_user_by_username(self, username: str) -> RobloxUser:
        """
        Raises:
            NotFoundError: If no user has that name.
        """
        url = f"{USERS_API}/v1/usernames/users"
        data = await self._request(
            "POST",
            url,
            json={"usernames": [username], "excludeBannedUsers": False},
        )
        matches = _parse(url, lambda d: list((d or {}).get("data", [])), data)
        if not matches:
            raise NotFoundError(f"No Roblox user named {username!r}", 404)
        return _parse(url, RobloxUser.from_api, matches[0])

    # =========================================================================
    # Groups
    # =========================================================================

    @exponential_backoff(max_retries=3, base_delay=1.0)
    async def get_group_roles(self, group_id: int) -> list[GroupRole]:
        url = f"{GROUPS_API}/v1/groups/{int(group_id)}/roles"
        data = await self._request("GET", url)
        roles = _parse(url, lambda d: [GroupRole.from_api(r) for r in (d or {}).get("roles", [])], data)
        return sorted(roles, key=lambda r: r.rank)

    async def get_member(self, group_id: int, user_id: int) -> Optional[GroupMember]:
        """
        The user's membership in ``group_id`` or None if they are not in it.

        Not retried: callers treat a failed lookup as "skip this cycle".
        """
        url = f"{GROUPS_API}/v2/users/{int(user_id)}/groups/roles"
        data = await self._request("GET", url)
        return _parse(url, lambda d: _member_from_payload(d, group_id, user_id), data)

    async def set_member_role(self, group_id: int, user_id: int, role_id: int) -> None:
        """PATCH the member's group role. Raises AuthExpiredError on token rejection."""
        await self._request(
            "PATCH",
            f"{GROUPS_API}/v1/groups/{int(group_id)}/users/{int(user_id)}",
            json={"roleId": int(role_id)},
            needs_csrf=True,
        )


__all__ = ["RobloxClient", "USERS_API", "GROUPS_API", "AUTH_API"]

"""
QBot - Roblox Group Directory
=============================

The bot's handle on its Roblox group: cached role list, member lookups and
rank updates with a single credential refresh on auth expiry.

The directory is "ready" once ``initialize()`` has logged in and loaded
the group's roles. Promotion scans refuse to run before that.
"""

from typing import Optional

from src.caches import TTLCache
from src.core.logger import logger
from src.services.roblox.client import RobloxClient
from src.services.roblox.errors import AuthExpiredError
from src.services.roblox.models import GroupMember, GroupRole, RobloxUser


class GroupDirectory:
    """Roles, members and rank updates for one Roblox group."""

    def __init__(
        self,
        client: RobloxClient,
        group_id: int,
        roles_cache: Optional[TTLCache] = None,
        names_cache: Optional[TTLCache] = None,
    ) -> None:
        self.client = client
        self.group_id = group_id
        self._roles_cache: TTLCache = roles_cache or TTLCache(300, max_size=4, name="group-roles")
        self._names_cache: TTLCache = names_cache or TTLCache(3600, max_size=5000, name="usernames")
        self._ready = False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def initialize(self) -> None:
        """
        Log in and load the group's roles.

        Raises:
            RobloxAPIError: If login or the role fetch fails.
        """
        await self.client.start()
        await self.client.login()
        roles = await self.get_roles(force=True)
        self._ready = True
        logger.tree("Roblox Group Ready", [
            ("Group ID", self.group_id),
            ("Roles", len(roles)),
        ], emoji="🏰")

    # =========================================================================
    # Roles
    # =========================================================================

    async def get_roles(self, force: bool = False) -> list[GroupRole]:
        """Group roles sorted by rank (cached)."""
        if not force:
            cached = self._roles_cache.get(self.group_id)
            if cached is not None:
                return cached
        roles = await self.client.get_group_roles(self.group_id)
        self._roles_cache.set(self.group_id, roles)
        return roles

    async def get_role_by_rank(self, rank: int) -> Optional[GroupRole]:
        for role in await self.get_roles():
            if role.rank == rank:
                return role
        return None

    # =========================================================================
    # Members
    # =========================================================================

    async def get_username(self, user_id: int) -> str:
        cached = self._names_cache.get(int(user_id))
        if cached is not None:
            return cached
        user = await self.client.get_user(user_id)
        self._names_cache.set(int(user_id), user.name)
        return user.name

    async def resolve_user(self, query: str) -> RobloxUser:
        """
        Look a user up by numeric id or by username.

        Raises:
            NotFoundError: If no such user exists.
        """
        query = query.strip()
        if query.isdigit():
            user = await self.client.get_user(int(query))
        else:
            user = await self.client.get_user_by_username(query)
        self._names_cache.set(user.id, user.name)
        return user

    async def get_member(self, user_id: int) -> Optional[GroupMember]:
        """The user's group membership, or None if they are not in the group."""
        member = await self.client.get_member(self.group_id, user_id)
        if member is None:
            return None
        if member.username:
            self._names_cache.set(int(user_id), member.username)
            return member
        username = await self.get_username(user_id)
        return GroupMember(user_id=member.user_id, username=username, role=member.role)

    async def update_member(self, user_id: int, role_id: int) -> None:
        """
        Set the member's group role.

        On AuthExpiredError the CSRF token (and session validity) is refreshed
        and the update retried exactly once; a second failure propagates.
        """
        try:
            await self.client.set_member_role(self.group_id, user_id, role_id)
        except AuthExpiredError:
            logger.warning("Roblox Auth Expired, Refreshing", [
                ("User ID", user_id),
                ("Role ID", role_id),
            ])
            await self.client.refresh_csrf()
            await self.client.login()
            await self.client.set_member_role(self.group_id, user_id, role_id)


__all__ = ["GroupDirectory"]

"""Fakes for the Roblox group, the promotions channel and the audit log."""

import asyncio
from typing import Any, Optional

from src.services.database.models import UserRecord
from src.services.roblox.client import RobloxClient
from src.services.roblox.errors import RobloxAPIError, RobloxUnavailableError
from src.services.roblox.models import GroupMember, GroupRole


GROUP_ROLES = [
    GroupRole(id=1000, name="Guest", rank=0),
    GroupRole(id=1001, name="Recruit", rank=1),
    GroupRole(id=1002, name="Private", rank=2),
    GroupRole(id=1005, name="Corporal", rank=5),
    GroupRole(id=1010, name="Sergeant", rank=10),
    GroupRole(id=1015, name="Lieutenant", rank=15),
    GroupRole(id=1255, name="Owner", rank=255),
]


def role_for(rank: int) -> GroupRole:
    return next(r for r in GROUP_ROLES if r.rank == rank)


class FakeDirectory:
    """In-memory GroupDirectory: ranks by user id, scripted failures."""

    def __init__(self, ranks: Optional[dict[int, int]] = None, ready: bool = True) -> None:
        self.ranks: dict[int, int] = dict(ranks or {})
        self.ready = ready
        self.lookup_errors: dict[int, BaseException] = {}
        self.update_errors: dict[int, BaseException] = {}
        self.lookup_delay: dict[int, float] = {}
        self.updates: list[tuple[int, int]] = []
        self.on_lookup = None

    @property
    def is_ready(self) -> bool:
        return self.ready

    async def get_roles(self, force: bool = False) -> list[GroupRole]:
        return list(GROUP_ROLES)

    async def get_member(self, user_id: int) -> Optional[GroupMember]:
        if self.on_lookup is not None:
            await self.on_lookup(user_id)
        if user_id in self.lookup_delay:
            await asyncio.sleep(self.lookup_delay[user_id])
        if user_id in self.lookup_errors:
            raise self.lookup_errors[user_id]
        if user_id not in self.ranks:
            return None
        return GroupMember(user_id=user_id, username=f"user{user_id}", role=role_for(self.ranks[user_id]))

    async def update_member(self, user_id: int, role_id: int) -> None:
        if user_id in self.update_errors:
            raise self.update_errors[user_id]
        self.updates.append((user_id, role_id))
        self.ranks[user_id] = next(r.rank for r in GROUP_ROLES if r.id == role_id)


class FakeStore:
    """Stands in for BotDatabase.get_all_users_async()."""

    def __init__(self, users: list[UserRecord]) -> None:
        self.users = users

    async def get_all_users_async(self) -> list[UserRecord]:
        return list(self.users)


class FakeChannel:
    """Records purge / edit / send calls like PromotionChannel."""

    def __init__(self) -> None:
        self.sent: list = []
        self.edited: list = []
        self.purges = 0
        self.existing: set[int] = set()
        self._next_id = 500

    async def purge(self, keep_message_id: Optional[int] = None) -> int:
        self.purges += 1
        self.existing = {keep_message_id} & self.existing if keep_message_id else set()
        return 0

    async def edit(self, message_id: int, embed, view) -> bool:
        if message_id not in self.existing:
            return False
        self.edited.append((message_id, embed))
        return True

    async def send(self, embed, view) -> Optional[int]:
        self._next_id += 1
        self.existing.add(self._next_id)
        self.sent.append((self._next_id, embed))
        return self._next_id


class FakeAudit:
    def __init__(self) -> None:
        self.records: list[tuple] = []

    async def record(self, action, actor, target, detail=None) -> None:
        self.records.append((action, actor, target, detail))


def transient_error() -> RobloxAPIError:
    return RobloxUnavailableError("Roblox returned 503", 503)


def membership(user_id: int, rank: int, group_id: int = 9) -> dict:
    """A groups v2 user-roles payload placing ``user_id`` at ``rank``."""
    role = role_for(rank)
    return {"data": [{
        "group": {"id": group_id},
        "role": {"id": role.id, "name": role.name, "rank": role.rank},
        "user": {"username": f"user{user_id}"},
    }]}


class PayloadClient(RobloxClient):
    """RobloxClient whose HTTP layer returns canned JSON payloads per user."""

    def __init__(self, memberships: dict[int, Any]) -> None:
        super().__init__(cookie=None)
        self.memberships = memberships

    async def start(self) -> None:
        pass

    async def _request(self, method, url, json=None, needs_csrf=False):
        if "/v2/users/" in url:
            user_id = int(url.split("/v2/users/")[1].split("/")[0])
            payload = self.memberships.get(user_id, {"data": []})
            if isinstance(payload, BaseException):
                raise payload
            return payload
        if url.endswith("/v1/users/authenticated"):
            return {"id": 1, "name": "qbot"}
        if url.endswith("/roles"):
            return {"roles": [{"id": r.id, "name": r.name, "rank": r.rank} for r in GROUP_ROLES]}
        user_id = int(url.rsplit("/", 1)[1])
        return {"id": user_id, "name": f"user{user_id}"}

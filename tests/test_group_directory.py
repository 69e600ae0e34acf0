"""Tests for GroupDirectory (fake Roblox client)."""

import pytest

from src.services.roblox.errors import AuthExpiredError
from src.services.roblox.group import GroupDirectory
from src.services.roblox.models import GroupMember, RobloxUser
from tests.fakes import GROUP_ROLES, role_for


class FakeClient:
    def __init__(self) -> None:
        self.role_fetches = 0
        self.set_calls: list[tuple[int, int, int]] = []
        self.set_failures: list[BaseException] = []
        self.refreshes = 0
        self.logins = 0
        self.members: dict[int, GroupMember] = {}

    async def start(self):
        pass

    async def login(self):
        self.logins += 1
        return RobloxUser(id=1, name="qbot", display_name="QBot")

    async def refresh_csrf(self):
        self.refreshes += 1
        return "token"

    async def get_group_roles(self, group_id):
        self.role_fetches += 1
        return list(GROUP_ROLES)

    async def get_user(self, user_id):
        return RobloxUser(id=int(user_id), name=f"user{user_id}", display_name=f"User {user_id}")

    async def get_user_by_username(self, username):
        return RobloxUser(id=77, name=username, display_name=username)

    async def get_member(self, group_id, user_id):
        return self.members.get(user_id)

    async def set_member_role(self, group_id, user_id, role_id):
        self.set_calls.append((group_id, user_id, role_id))
        if self.set_failures:
            raise self.set_failures.pop(0)


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def directory(client):
    return GroupDirectory(client, group_id=9)


async def test_initialize_marks_ready(directory, client):
    assert not directory.is_ready
    await directory.initialize()
    assert directory.is_ready
    assert client.logins == 1


async def test_roles_are_cached(directory, client):
    await directory.get_roles()
    await directory.get_roles()
    assert client.role_fetches == 1
    await directory.get_roles(force=True)
    assert client.role_fetches == 2
    assert (await directory.get_role_by_rank(10)).name == "Sergeant"
    assert await directory.get_role_by_rank(3) is None


async def test_auth_expiry_refreshes_and_retries_once(directory, client):
    client.set_failures = [AuthExpiredError("token rejected", 403)]

    await directory.update_member(5, 1010)

    assert client.refreshes == 1
    assert len(client.set_calls) == 2


async def test_second_auth_failure_propagates(directory, client):
    client.set_failures = [AuthExpiredError("expired", 401), AuthExpiredError("expired", 401)]

    with pytest.raises(AuthExpiredError):
        await directory.update_member(5, 1010)
    assert len(client.set_calls) == 2


async def test_member_username_filled_in(directory, client):
    client.members[5] = GroupMember(user_id=5, username="", role=role_for(2))
    member = await directory.get_member(5)
    assert member.username == "user5"
    assert await directory.get_member(6) is None


async def test_resolve_user_by_id_or_name(directory):
    assert (await directory.resolve_user(" 42 ")).id == 42
    assert (await directory.resolve_user("builder")).name == "builder"

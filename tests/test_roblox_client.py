"""Tests for RobloxClient payload handling (fake aiohttp session)."""

import json

import pytest

from src.services.roblox.client import RobloxClient
from src.services.roblox.errors import MalformedResponseError, RobloxErrorKind


class FakeResponse:
    def __init__(self, body, status: int = 200) -> None:
        self.body = body
        self.status = status
        self.headers: dict[str, str] = {}

    async def json(self, content_type=None):
        if isinstance(self.body, str):
            return json.loads(self.body)
        return self.body

    async def text(self) -> str:
        return str(self.body)


class FakeRequest:
    def __init__(self, response: FakeResponse) -> None:
        self.response = response

    async def __aenter__(self) -> FakeResponse:
        return self.response

    async def __aexit__(self, *exc) -> bool:
        return False


class FakeSession:
    def __init__(self, response: FakeResponse) -> None:
        self.response = response
        self.closed = False

    def request(self, method, url, json=None, headers=None) -> FakeRequest:
        return FakeRequest(self.response)


def client_answering(body) -> RobloxClient:
    client = RobloxClient(cookie=None)
    client._session = FakeSession(FakeResponse(body))
    return client


async def test_non_json_body_is_typed_error():
    client = client_answering("<html>Service Unavailable</html>")

    with pytest.raises(MalformedResponseError) as info:
        await client.get_member(9, 5)
    assert info.value.kind is RobloxErrorKind.MALFORMED
    assert info.value.status == 200


async def test_membership_without_role_id_is_typed_error():
    client = client_answering({"data": [{"group": {"id": 9}, "role": {"name": "Private", "rank": 2}}]})

    with pytest.raises(MalformedResponseError):
        await client.get_member(9, 5)


async def test_membership_parsed():
    client = client_answering({"data": [
        {"group": {"id": 4}, "role": {"id": 40, "name": "Other", "rank": 1}},
        {"group": {"id": 9}, "role": {"id": 1002, "name": "Private", "rank": 2}, "user": {"username": "builder"}},
    ]})

    member = await client.get_member(9, 5)

    assert member.rank == 2
    assert member.username == "builder"
    assert await client_answering({"data": []}).get_member(9, 5) is None


async def test_user_payload_without_id_is_typed_error():
    client = client_answering({"name": "builder"})

    with pytest.raises(MalformedResponseError):
        await client.get_user(5)

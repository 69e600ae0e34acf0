"""
QBot - Roblox Models
====================

Normalized shapes for Roblox API payloads. Every endpoint that returns a
group role or a member's role is parsed into these, so the rest of the bot
only sees one representation.
"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class GroupRole:
    """A role (rank) in the Roblox group."""
    id: int
    name: str
    rank: int
    member_count: Optional[int] = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "GroupRole":
        return cls(
            id=int(data["id"]),
            name=str(data.get("name", "")),
            rank=int(data.get("rank", 0)),
            member_count=data.get("memberCount"),
        )


@dataclass(frozen=True)
class RobloxUser:
    id: int
    name: str
    display_name: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RobloxUser":
        name = str(data.get("name", ""))
        return cls(
            id=int(data["id"]),
            name=name,
            display_name=str(data.get("displayName") or name),
        )


@dataclass(frozen=True)
class GroupMember:
    """A user's membership in the group together with their current role."""
    user_id: int
    username: str
    role: GroupRole

    @property
    def rank(self) -> int:
        return self.role.rank


__all__ = ["GroupRole", "RobloxUser", "GroupMember"]

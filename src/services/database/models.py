"""
QBot - Database Models
======================

Row dataclasses returned by the database mixins.
"""

import json
import sqlite3
from dataclasses import dataclass, field
from typing import Optional

from src.core.config import DEFAULT_NICKNAME_FORMAT


@dataclass
class UserRecord:
    """A Roblox member's XP and activity counters."""
    roblox_id: str
    xp: int = 0
    raids: int = 0
    defenses: int = 0
    scrims: int = 0
    trainings: int = 0
    last_activity: Optional[str] = None
    last_raid: Optional[str] = None
    last_defense: Optional[str] = None
    last_scrim: Optional[str] = None
    last_training: Optional[str] = None
    suspended_until: Optional[str] = None
    unsuspend_rank: Optional[int] = None
    is_banned: bool = False

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "UserRecord":
        return cls(
            roblox_id=str(row["roblox_id"]),
            xp=row["xp"],
            raids=row["raids"],
            defenses=row["defenses"],
            scrims=row["scrims"],
            trainings=row["trainings"],
            last_activity=row["last_activity"],
            last_raid=row["last_raid"],
            last_defense=row["last_defense"],
            last_scrim=row["last_scrim"],
            last_training=row["last_training"],
            suspended_until=row["suspended_until"],
            unsuspend_rank=row["unsuspend_rank"],
            is_banned=bool(row["is_banned"]),
        )


@dataclass
class XpLogEntry:
    """One XP grant or deduction."""
    id: int
    roblox_id: str
    amount: int
    reason: Optional[str]
    actor_id: Optional[str]
    timestamp: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "XpLogEntry":
        return cls(
            id=row["id"],
            roblox_id=str(row["roblox_id"]),
            amount=row["amount"],
            reason=row["reason"],
            actor_id=row["actor_id"],
            timestamp=str(row["timestamp"]),
        )


@dataclass
class RoleBinding:
    """Maps an inclusive Roblox rank range to a Discord role."""
    guild_id: str
    discord_role_id: str
    min_rank_id: int
    max_rank_id: int
    roblox_rank_name: str = ""
    roles_to_remove: list[str] = field(default_factory=list)

    def covers(self, rank: int) -> bool:
        return self.min_rank_id <= rank <= self.max_rank_id

    @property
    def range_label(self) -> str:
        if self.min_rank_id == self.max_rank_id:
            return str(self.min_rank_id)
        return f"{self.min_rank_id}-{self.max_rank_id}"

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "RoleBinding":
        try:
            removals = [str(r) for r in json.loads(row["roles_to_remove"] or "[]")]
        except (TypeError, ValueError):
            removals = []
        return cls(
            guild_id=str(row["guild_id"]),
            discord_role_id=str(row["discord_role_id"]),
            min_rank_id=row["min_rank_id"],
            max_rank_id=row["max_rank_id"],
            roblox_rank_name=row["roblox_rank_name"] or "",
            roles_to_remove=removals,
        )


@dataclass
class UserLink:
    """A verified Discord <-> Roblox account pair."""
    discord_id: str
    roblox_id: str
    linked_at: Optional[str] = None


@dataclass
class GuildSettings:
    """Per-guild preferences."""
    guild_id: str
    nickname_format: str = DEFAULT_NICKNAME_FORMAT


__all__ = [
    "UserRecord",
    "XpLogEntry",
    "RoleBinding",
    "UserLink",
    "GuildSettings",
]

"""
QBot - Data Models
==================

Shared data models used across the bot.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class RankTableEntry:
    """One XP threshold: reaching ``xp`` qualifies a member for group rank ``rank``."""
    rank: int
    xp: int


@dataclass
class PendingPromotion:
    """A member who qualifies for a higher group rank on the last scan."""
    roblox_id: str
    name: str
    current_rank: str  # display name of the current group role
    new_rank: str  # display name of the target group role
    role_id: int  # Roblox role id to assign
    current_rank_number: int = 0
    new_rank_number: int = 0


@dataclass
class RoleDelta:
    """Discord roles to add and remove after reconciling bindings."""
    to_add: set[int] = field(default_factory=set)
    to_remove: set[int] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


@dataclass
class RoleUpdateResult:
    """Outcome of applying a RoleDelta to a guild member."""
    success: bool
    added: list[int] = field(default_factory=list)
    removed: list[int] = field(default_factory=list)
    error: Optional[str] = None
    rank_name: Optional[str] = None
    nickname: Optional[str] = None


__all__ = [
    "RankTableEntry",
    "PendingPromotion",
    "RoleDelta",
    "RoleUpdateResult",
]

"""
QBot - Rank Eligibility
=======================

Pure functions that decide which group rank a member's XP entitles them to.

Rules:
    - An entry qualifies when ``xp >= entry.xp`` and ``entry.rank > current_rank``.
    - Among qualifying entries the highest *rank* wins (not the highest xp).
    - Members already at or above every reachable rank get None.
"""

from typing import Iterable, Optional, Sequence

from src.models import RankTableEntry
from src.services.roblox.models import GroupRole


UNKNOWN_RANK_NAME = "Unknown Rank"


def find_highest_eligible_role(
    current_rank: int,
    xp: int,
    rank_table: Iterable[RankTableEntry],
) -> Optional[RankTableEntry]:
    """
    Highest rank table entry the member qualifies for above their current rank.

    Args:
        current_rank: The member's current group rank number
        xp: The member's XP
        rank_table: Thresholds, in any order

    Returns:
        The qualifying entry with the greatest rank, or None.
    """
    best: Optional[RankTableEntry] = None
    for entry in sorted(rank_table, key=lambda e: (e.xp, e.rank)):
        if entry.xp > xp:
            break
        if entry.rank <= current_rank:
            continue
        if best is None or entry.rank > best.rank:
            best = entry
    return best


def get_rank_name(rank: int, group_roles: Sequence[GroupRole]) -> str:
    """Display name of the group role with this rank number."""
    for role in group_roles:
        if role.rank == rank:
            return role.name
    return UNKNOWN_RANK_NAME


def resolve_group_role(
    entry: RankTableEntry,
    group_roles: Sequence[GroupRole],
) -> Optional[GroupRole]:
    """The concrete group role carrying ``entry.rank`` (None if the group has none)."""
    for role in group_roles:
        if role.rank == entry.rank:
            return role
    return None


def next_threshold(xp: int, rank_table: Iterable[RankTableEntry]) -> Optional[RankTableEntry]:
    """Cheapest entry the member has not reached yet (for /xp view progress)."""
    pending = [e for e in rank_table if e.xp > xp]
    return min(pending, key=lambda e: e.xp) if pending else None


__all__ = [
    "UNKNOWN_RANK_NAME",
    "find_highest_eligible_role",
    "get_rank_name",
    "resolve_group_role",
    "next_threshold",
]

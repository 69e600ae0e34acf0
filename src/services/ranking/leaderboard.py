"""
QBot - XP Leaderboard
=====================

Top users by XP with their Roblox names.

A name that cannot be looked up (Roblox down, unknown id) is shown as the
raw Roblox id instead of failing the whole board.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

import discord

from src.core.colors import EmbedColors, EmbedIcons
from src.core.config import ROBLOX_PROFILE_URL
from src.core.logger import logger
from src.services.database.models import UserRecord
from src.services.roblox.errors import RobloxAPIError
from src.utils.footer import set_footer


LEADERBOARD_SIZE = 10
LEADERBOARD_TITLE = "XP Leaderboard"
NO_DATA_TEXT = "*No data yet*"

MEDALS = ["🥇", "🥈", "🥉"]


class UsernameLookup(Protocol):
    async def get_username(self, user_id: int) -> str: ...


@dataclass(frozen=True)
class LeaderboardRow:
    position: int
    roblox_id: str
    name: str
    xp: int


def top_users(users: Sequence[UserRecord], limit: int = LEADERBOARD_SIZE) -> list[UserRecord]:
    """Highest XP first; ties keep store order."""
    return sorted(users, key=lambda u: u.xp, reverse=True)[:limit]


async def build_leaderboard(
    users: Sequence[UserRecord],
    names: Optional[UsernameLookup],
    limit: int = LEADERBOARD_SIZE,
) -> list[LeaderboardRow]:
    rows = []
    failed = 0
    for position, user in enumerate(top_users(users, limit), start=1):
        name = user.roblox_id
        if names is not None:
            try:
                name = await names.get_username(int(user.roblox_id)) or user.roblox_id
            except (RobloxAPIError, asyncio.TimeoutError, ValueError):
                failed += 1
        rows.append(LeaderboardRow(position, user.roblox_id, name, user.xp))

    if failed:
        logger.warning("Leaderboard Name Lookups Failed", [
            ("Failed", failed),
            ("Shown", len(rows)),
        ])
    return rows


def format_leaderboard_line(row: LeaderboardRow) -> str:
    prefix = MEDALS[row.position - 1] if row.position <= len(MEDALS) else f"`{row.position}.`"
    profile = ROBLOX_PROFILE_URL.format(user_id=row.roblox_id)
    return f"{prefix} [{row.name}]({profile}) **{row.xp}** XP"


def build_leaderboard_embed(rows: Sequence[LeaderboardRow]) -> discord.Embed:
    embed = discord.Embed(
        title=f"{EmbedIcons.XP} {LEADERBOARD_TITLE}",
        color=EmbedColors.INFO,
        description="\n".join(format_leaderboard_line(row) for row in rows) or NO_DATA_TEXT,
    )
    return set_footer(embed)


__all__ = [
    "LEADERBOARD_SIZE",
    "NO_DATA_TEXT",
    "LeaderboardRow",
    "top_users",
    "build_leaderboard",
    "format_leaderboard_line",
    "build_leaderboard_embed",
]

"""
QBot - Member Sync
==================

Brings a linked Discord member in line with their Roblox account: bound
roles via role_bindings.update_member_roles() and the guild's nickname
template.
"""

from dataclasses import dataclass
from typing import Optional

import discord

from src.core.logger import logger
from src.models import RoleUpdateResult
from src.services.database import BotDatabase
from src.services.ranking.role_bindings import NOT_A_MEMBER, update_member_roles
from src.services.roblox.group import GroupDirectory
from src.services.roblox.models import GroupMember, RobloxUser


# Discord nickname length cap
NICKNAME_LIMIT = 32

NICKNAME_PLACEHOLDERS = (
    "{robloxUsername}",
    "{robloxDisplayName}",
    "{robloxId}",
    "{discordName}",
    "{rankName}",
)


def format_nickname(
    template: str,
    roblox_username: str,
    roblox_id,
    discord_name: str = "",
    rank_name: str = "",
    display_name: Optional[str] = None,
) -> str:
    """Fill a nickname template and clip it to Discord's length limit."""
    nickname = (
        template
        .replace("{robloxUsername}", roblox_username)
        .replace("{robloxDisplayName}", display_name or roblox_username)
        .replace("{robloxId}", str(roblox_id))
        .replace("{discordName}", discord_name)
        .replace("{rankName}", rank_name)
    ).strip()
    return nickname[:NICKNAME_LIMIT] or roblox_username[:NICKNAME_LIMIT]


async def update_nickname(member: discord.Member, nickname: str) -> bool:
    """
    Set the member's nickname if it differs.

    Guild owners and members above the bot cannot be renamed; that is
    reported as False without raising.
    """
    if member.nick == nickname or (member.nick is None and member.name == nickname):
        return True
    if member.guild.owner_id == member.id:
        return False
    try:
        await member.edit(nick=nickname, reason="Roblox nickname sync")
        return True
    except discord.Forbidden:
        logger.debug("Nickname Update Not Permitted", [
            ("Member", f"{member} ({member.id})"),
        ])
        return False
    except discord.HTTPException as e:
        logger.warning("Nickname Update Failed", [
            ("Member", f"{member} ({member.id})"),
            ("Error", str(e)[:100]),
        ])
        return False


@dataclass
class SyncOutcome:
    """What /update did for one member."""
    linked: bool
    roblox_user: Optional[RobloxUser] = None
    group_member: Optional[GroupMember] = None
    roles: Optional[RoleUpdateResult] = None
    old_nickname: Optional[str] = None
    new_nickname: Optional[str] = None
    nickname_updated: bool = False


async def sync_member(
    member: discord.Member,
    db: BotDatabase,
    directory: GroupDirectory,
) -> SyncOutcome:
    """
    Sync roles and nickname for a linked member.

    Raises:
        RobloxAPIError: When the Roblox lookups fail.
    """
    link = await db.get_link_async(str(member.id))
    if link is None:
        return SyncOutcome(linked=False)

    roblox_user = await directory.client.get_user(int(link.roblox_id))
    group_member = await directory.get_member(roblox_user.id)
    bindings = await db.get_role_bindings_async(str(member.guild.id))

    roles = await update_member_roles(member, group_member, bindings, reason="/update role sync")
    outcome = SyncOutcome(
        linked=True,
        roblox_user=roblox_user,
        group_member=group_member,
        roles=roles,
        old_nickname=member.display_name,
    )

    settings = await db.get_guild_settings_async(str(member.guild.id))
    nickname = format_nickname(
        settings.nickname_format,
        roblox_user.name,
        roblox_user.id,
        discord_name=member.name,
        rank_name=group_member.role.name if group_member else "",
        display_name=roblox_user.display_name,
    )
    outcome.nickname_updated = await update_nickname(member, nickname)
    outcome.new_nickname = nickname if outcome.nickname_updated else outcome.old_nickname

    if roles.error == NOT_A_MEMBER:
        logger.info("Member Not In Roblox Group", [
            ("Member", f"{member} ({member.id})"),
            ("Roblox", f"{roblox_user.name} ({roblox_user.id})"),
        ])
    return outcome


__all__ = [
    "NICKNAME_LIMIT",
    "NICKNAME_PLACEHOLDERS",
    "format_nickname",
    "update_nickname",
    "SyncOutcome",
    "sync_member",
]

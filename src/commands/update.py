"""
QBot - Update Command
=====================

Commands:
- /update - Sync your (or, for admins, another member's) roles and nickname
  with the linked Roblox account
"""

from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

from src.caches import CooldownTracker
from src.core.colors import EmbedColors, EmbedIcons
from src.core.config import UPDATE_COOLDOWN_SECONDS, has_admin_role
from src.core.logger import logger
from src.services.ranking.member_sync import SyncOutcome, sync_member
from src.services.ranking.role_bindings import NOT_A_MEMBER
from src.services.roblox.errors import RobloxAPIError, classify_exception
from src.utils.footer import set_footer

if TYPE_CHECKING:
    from src.bot import QBot


def build_update_embed(member: discord.Member, outcome: SyncOutcome) -> discord.Embed:
    embed = discord.Embed(
        title=f"{EmbedIcons.SYNC} Updated {member.display_name}",
        color=EmbedColors.ROLE_SYNC,
    )
    user = outcome.roblox_user
    embed.add_field(name="Roblox", value=f"{user.name} ({user.id})", inline=True)

    roles = outcome.roles
    if roles is not None and roles.error == NOT_A_MEMBER:
        embed.add_field(name="Rank", value="Not in the group", inline=True)
    elif roles is not None:
        embed.add_field(name="Rank", value=roles.rank_name or "-", inline=True)
        added = " ".join(f"<@&{r}>" for r in roles.added) or "None"
        removed = " ".join(f"<@&{r}>" for r in roles.removed) or "None"
        embed.add_field(name="Added Roles", value=added, inline=False)
        embed.add_field(name="Removed Roles", value=removed, inline=False)
        if roles.error:
            embed.add_field(name="⚠️ Problems", value=roles.error[:1024], inline=False)
            embed.color = EmbedColors.WARNING

    if outcome.nickname_updated:
        embed.add_field(name="Nickname", value=f"{outcome.old_nickname} → {outcome.new_nickname}", inline=False)
    return set_footer(embed)


class UpdateCog(commands.Cog):
    """Cog for /update."""

    def __init__(self, bot: "QBot") -> None:
        self.bot = bot
        self.cooldowns = CooldownTracker(UPDATE_COOLDOWN_SECONDS)

    @app_commands.command(name="update", description="Sync roles and nickname with your Roblox account")
    @app_commands.describe(user="Member to update (admins only, leave empty for yourself)")
    @app_commands.guild_only()
    async def update(
        self,
        interaction: discord.Interaction,
        user: Optional[discord.Member] = None,
    ) -> None:
        target = user or interaction.user
        logger.info("/update Command Invoked", [
            ("Invoked By", f"{interaction.user.name} ({interaction.user.id})"),
            ("Target User", f"{target.name} ({target.id})" if user else "Self"),
        ])

        if target.id != interaction.user.id and not has_admin_role(interaction.user):
            await interaction.response.send_message(
                "You don't have permission to update other members.", ephemeral=True
            )
            return

        directory = self.bot.roblox_directory
        if directory is None or not directory.is_ready:
            await interaction.response.send_message(
                "The Roblox group is not connected yet. Please try again later.", ephemeral=True
            )
            return

        if not has_admin_role(interaction.user) and not self.cooldowns.hit(interaction.user.id):
            wait = self.cooldowns.retry_after(interaction.user.id)
            await interaction.response.send_message(
                f"Please wait {wait:.0f}s before using /update again.", ephemeral=True
            )
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            outcome = await sync_member(target, self.bot.db, directory)
        except RobloxAPIError as e:
            error = classify_exception(e)
            logger.warning("/update Failed", [
                ("Target", f"{target} ({target.id})"),
                ("Kind", error.kind.value),
                ("Error", str(error)[:100]),
            ])
            await interaction.followup.send(
                "Roblox could not be reached. Please try again in a moment.", ephemeral=True
            )
            return

        if not outcome.linked:
            who = "You are" if target.id == interaction.user.id else f"{target.mention} is"
            await interaction.followup.send(
                f"{who} not linked to a Roblox account. Ask an admin to run /link.", ephemeral=True
            )
            return

        roles = outcome.roles
        if roles is not None and (roles.added or roles.removed):
            await self.bot.audit_log.record(
                "Roles Updated",
                f"<@{interaction.user.id}>",
                f"{target.mention} ({outcome.roblox_user.name})",
                [("Added", len(roles.added)), ("Removed", len(roles.removed))],
            )
        await interaction.followup.send(embed=build_update_embed(target, outcome), ephemeral=True)


async def setup(bot: "QBot") -> None:
    await bot.add_cog(UpdateCog(bot))
    logger.info("Update Cog Loaded", [
        ("Commands", "/update"),
    ])


__all__ = ["UpdateCog", "build_update_embed", "setup"]

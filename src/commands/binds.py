"""
QBot - Binds Commands
=====================

Manage the Roblox rank range -> Discord role bindings used by /update.

Commands:
- /binds add - Bind a Discord role to a rank or rank range
- /binds remove - Delete a role's binding
- /binds view - List this server's bindings
"""

import sqlite3
from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

from src.core.config import has_admin_role
from src.core.logger import logger
from src.services.ranking.embeds import build_bindings_embed
from src.services.ranking.role_bindings import find_binding_conflicts, parse_rank_range
from src.services.roblox.errors import RobloxAPIError
from src.utils.helpers import parse_role_ids

if TYPE_CHECKING:
    from src.bot import QBot


class BindsCog(commands.Cog):
    """Cog for /binds commands."""

    binds = app_commands.Group(
        name="binds",
        description="Roblox rank to Discord role bindings",
        guild_only=True,
    )

    def __init__(self, bot: "QBot") -> None:
        self.bot = bot

    async def _deny(self, interaction: discord.Interaction, command: str) -> bool:
        logger.info(f"/binds {command} Command Invoked", [
            ("Invoked By", f"{interaction.user.name} ({interaction.user.id})"),
            ("Guild", interaction.guild_id),
        ])
        if has_admin_role(interaction.user):
            return False
        await interaction.response.send_message(
            "You don't have permission to manage role bindings.", ephemeral=True
        )
        return True

    async def _rank_name(self, rank: int) -> str:
        """Group role name for ``rank``; blank when the group is unreachable."""
        directory = self.bot.roblox_directory
        if directory is None or not directory.is_ready:
            return ""
        try:
            role = await directory.get_role_by_rank(rank)
        except RobloxAPIError as e:
            logger.warning("Rank Name Lookup Failed", [
                ("Rank", rank),
                ("Error", str(e)[:100]),
            ])
            return ""
        return role.name if role else ""

    # =========================================================================
    # /binds add
    # =========================================================================

    @binds.command(name="add", description="Bind a Discord role to a Roblox rank or rank range")
    @app_commands.describe(
        role="Discord role to grant",
        ranks="Rank number (e.g. 5) or inclusive range (e.g. 1-255)",
        remove_roles="Roles to strip from members at these ranks (mentions or ids)",
    )
    async def add(
        self,
        interaction: discord.Interaction,
        role: discord.Role,
        ranks: str,
        remove_roles: Optional[str] = None,
    ) -> None:
        if await self._deny(interaction, "add"):
            return

        try:
            min_rank, max_rank = parse_rank_range(ranks)
        except ValueError as e:
            await interaction.response.send_message(
                f"Invalid rank range `{ranks}`: {e}", ephemeral=True
            )
            return

        removals = [r for r in parse_role_ids(remove_roles) if r != str(role.id)]
        guild_id = str(interaction.guild_id)

        await interaction.response.defer(ephemeral=True, thinking=True)
        rank_name = await self._rank_name(min_rank) if min_rank == max_rank else ""

        try:
            binding = await self.bot.db.upsert_role_binding_async(
                guild_id, str(role.id), min_rank, max_rank, rank_name, removals
            )
            bindings = await self.bot.db.get_role_bindings_async(guild_id)
        except (ValueError, sqlite3.Error) as e:
            logger.error_tree("/binds add Failed", e, [("Role", role.id)])
            await interaction.followup.send("Could not save the binding.", ephemeral=True)
            return

        message = f"{role.mention} is now bound to ranks **{binding.range_label}**"
        if binding.roblox_rank_name:
            message += f" ({binding.roblox_rank_name})"
        if removals:
            message += " and removes " + ", ".join(f"<@&{r}>" for r in removals)
        message += "."

        conflicts = find_binding_conflicts(bindings)
        if conflicts:
            logger.warning("Role Binding Conflicts Detected", [
                ("Guild", guild_id),
                ("Pairs", ", ".join(f"{granted}<-{remover}" for granted, remover in conflicts)),
            ])
            lines = [f"<@&{granted}> is removed by the <@&{remover}> binding" for granted, remover in conflicts]
            message += "\n\n⚠️ Overlapping bindings (the removal wins):\n" + "\n".join(lines)

        await self.bot.audit_log.record(
            "Binding Changed",
            f"<@{interaction.user.id}>",
            role.mention,
            [("Ranks", binding.range_label), ("Removes", len(removals))],
        )
        await interaction.followup.send(message, ephemeral=True)

    # =========================================================================
    # /binds remove
    # =========================================================================

    @binds.command(name="remove", description="Remove a Discord role's binding")
    @app_commands.describe(role="Bound Discord role")
    async def remove(self, interaction: discord.Interaction, role: discord.Role) -> None:
        if await self._deny(interaction, "remove"):
            return

        removed = await self.bot.db.remove_role_binding_async(str(interaction.guild_id), str(role.id))
        if not removed:
            await interaction.response.send_message(f"{role.mention} has no binding.", ephemeral=True)
            return

        await self.bot.audit_log.record(
            "Binding Changed", f"<@{interaction.user.id}>", role.mention, [("Ranks", "removed")]
        )
        await interaction.response.send_message(f"Removed the binding for {role.mention}.", ephemeral=True)

    # =========================================================================
    # /binds view
    # =========================================================================

    @binds.command(name="view", description="List this server's role bindings")
    async def view(self, interaction: discord.Interaction) -> None:
        if await self._deny(interaction, "view"):
            return
        bindings = await self.bot.db.get_role_bindings_async(str(interaction.guild_id))
        await interaction.response.send_message(embed=build_bindings_embed(bindings), ephemeral=True)


async def setup(bot: "QBot") -> None:
    await bot.add_cog(BindsCog(bot))
    logger.info("Binds Cog Loaded", [
        ("Commands", "/binds add, /binds remove, /binds view"),
    ])


__all__ = ["BindsCog", "setup"]

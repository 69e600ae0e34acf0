"""
QBot - XP Commands
==================

Slash commands for granting and inspecting XP.

Commands:
- /xp add - Grant XP to a Roblox user, optionally counting an event (ranking roles)
- /xp remove - Deduct XP from a Roblox user (ranking roles)
- /xp view - Show a Roblox user's XP and next rank
- /resetstats - Zero a user's XP and event counters (admin roles)
- /removeuser - Delete a user and their XP history (admin roles)
- /leaderboard - Top 10 users by XP

Users are given as a Roblox username or numeric user id.
"""

import sqlite3
from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

from src.core.config import XP_RANK_TABLE, has_admin_role, has_ranking_role
from src.core.logger import logger
from src.services.database import EVENT_TYPES
from src.services.ranking.embeds import build_xp_embed
from src.services.ranking.leaderboard import build_leaderboard, build_leaderboard_embed
from src.services.ranking.rank_table import get_rank_name, next_threshold
from src.services.roblox.errors import NotFoundError, RobloxAPIError
from src.services.roblox.models import RobloxUser
from src.utils.helpers import sanitize_input

if TYPE_CHECKING:
    from src.bot import QBot


MAX_XP_CHANGE = 10_000

EVENT_CHOICES = [app_commands.Choice(name=event.title(), value=event) for event in EVENT_TYPES]


class XpCog(commands.Cog):
    """Cog for /xp, /resetstats, /removeuser and /leaderboard."""

    xp = app_commands.Group(name="xp", description="XP tools")

    def __init__(self, bot: "QBot") -> None:
        self.bot = bot

    async def _resolve(self, interaction: discord.Interaction, query: str) -> Optional[RobloxUser]:
        """
        Resolve ``query`` to a Roblox user, answering the interaction on failure.

        Expects the interaction to be deferred already.
        """
        directory = self.bot.roblox_directory
        if directory is None:
            await interaction.followup.send("The Roblox client is not ready yet.", ephemeral=True)
            return None
        try:
            return await directory.resolve_user(query)
        except NotFoundError:
            await interaction.followup.send(f"No Roblox user found for `{query}`.", ephemeral=True)
        except RobloxAPIError as e:
            logger.warning("Roblox User Lookup Failed", [
                ("Query", query),
                ("Kind", e.kind.value),
                ("Error", str(e)[:100]),
            ])
            await interaction.followup.send(
                "Roblox could not be reached. Please try again in a moment.", ephemeral=True
            )
        return None

    async def _change_xp(
        self,
        interaction: discord.Interaction,
        user: str,
        amount: int,
        reason: Optional[str],
        action: str,
        event: Optional[str] = None,
    ) -> None:
        logger.info(f"/xp {'add' if amount > 0 else 'remove'} Command Invoked", [
            ("Invoked By", f"{interaction.user.name} ({interaction.user.id})"),
            ("User", user),
            ("Amount", amount),
            ("Event", event or "-"),
        ])

        if not has_ranking_role(interaction.user):
            await interaction.response.send_message("You don't have permission to change XP.", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        roblox_user = await self._resolve(interaction, user)
        if roblox_user is None:
            return

        reason = sanitize_input(reason, max_length=200)
        if reason is None and event:
            reason = f"Attended {event}"
        try:
            new_xp = await self.bot.db.add_xp_async(
                str(roblox_user.id), amount, reason, str(interaction.user.id)
            )
            if event:
                await self.bot.db.record_event_async(str(roblox_user.id), event)
        except sqlite3.Error as e:
            logger.error_tree("XP Update Failed", e, [("Roblox ID", roblox_user.id)])
            await interaction.followup.send("Could not save the XP change.", ephemeral=True)
            return

        detail = [("Amount", f"{amount:+d}"), ("Total", new_xp), ("Reason", reason or "-")]
        if event:
            detail.append(("Event", event.title()))
        await self.bot.audit_log.record(
            action,
            f"<@{interaction.user.id}>",
            f"{roblox_user.name} ({roblox_user.id})",
            detail,
        )
        await interaction.followup.send(
            f"{'Added' if amount > 0 else 'Removed'} {abs(amount)} XP "
            f"{'to' if amount > 0 else 'from'} **{roblox_user.name}**. New total: **{new_xp}** XP.",
            ephemeral=True,
        )

    # =========================================================================
    # /xp add | remove
    # =========================================================================

    @xp.command(name="add", description="Grant XP to a Roblox user")
    @app_commands.describe(
        user="Roblox username or id",
        amount="XP to grant",
        reason="Why the XP was granted",
        event="Event attended (adds to the user's event count)",
    )
    @app_commands.choices(event=EVENT_CHOICES)
    async def add(
        self,
        interaction: discord.Interaction,
        user: str,
        amount: app_commands.Range[int, 1, MAX_XP_CHANGE],
        reason: Optional[str] = None,
        event: Optional[app_commands.Choice[str]] = None,
    ) -> None:
        await self._change_xp(interaction, user, amount, reason, "XP Added", event.value if event else None)

    @xp.command(name="remove", description="Deduct XP from a Roblox user")
    @app_commands.describe(user="Roblox username or id", amount="XP to deduct", reason="Why the XP was removed")
    async def remove(
        self,
        interaction: discord.Interaction,
        user: str,
        amount: app_commands.Range[int, 1, MAX_XP_CHANGE],
        reason: Optional[str] = None,
    ) -> None:
        await self._change_xp(interaction, user, -amount, reason, "XP Removed")

    # =========================================================================
    # /xp view
    # =========================================================================

    @xp.command(name="view", description="Show a Roblox user's XP")
    @app_commands.describe(user="Roblox username or id")
    async def view(self, interaction: discord.Interaction, user: str) -> None:
        logger.info("/xp view Command Invoked", [
            ("Invoked By", f"{interaction.user.name} ({interaction.user.id})"),
            ("User", user),
        ])
        await interaction.response.defer(ephemeral=True, thinking=True)
        roblox_user = await self._resolve(interaction, user)
        if roblox_user is None:
            return

        record = await self.bot.db.find_user_async(str(roblox_user.id))
        if record is None:
            await interaction.followup.send(f"**{roblox_user.name}** has no XP yet.", ephemeral=True)
            return

        rank_name: Optional[str] = None
        next_rank_name: Optional[str] = None
        upcoming = next_threshold(record.xp, XP_RANK_TABLE)
        directory = self.bot.roblox_directory
        if directory.is_ready:
            try:
                member = await directory.get_member(roblox_user.id)
                roles = await directory.get_roles()
            except RobloxAPIError as e:
                logger.warning("Rank Lookup Failed", [
                    ("Roblox ID", roblox_user.id),
                    ("Error", str(e)[:100]),
                ])
            else:
                rank_name = member.role.name if member else None
                if upcoming is not None:
                    next_rank_name = get_rank_name(upcoming.rank, roles)

        history = await self.bot.db.get_xp_logs_async(str(roblox_user.id), limit=5)
        embed = build_xp_embed(roblox_user.name, record, rank_name, upcoming, next_rank_name, history)
        await interaction.followup.send(embed=embed, ephemeral=True)

    # =========================================================================
    # /resetstats
    # =========================================================================

    @app_commands.command(name="resetstats", description="Reset a Roblox user's XP and event counts to 0")
    @app_commands.describe(user="Roblox username or id")
    async def resetstats(self, interaction: discord.Interaction, user: str) -> None:
        logger.info("/resetstats Command Invoked", [
            ("Invoked By", f"{interaction.user.name} ({interaction.user.id})"),
            ("User", user),
        ])
        if not has_admin_role(interaction.user):
            await interaction.response.send_message("You don't have permission to reset stats.", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        roblox_user = await self._resolve(interaction, user)
        if roblox_user is None:
            return

        roblox_id = str(roblox_user.id)
        try:
            previous = await self.bot.db.find_user_async(roblox_id)
            if previous is None:
                await interaction.followup.send(f"**{roblox_user.name}** is not tracked.", ephemeral=True)
                return
            await self.bot.db.update_user_async(
                roblox_id, xp=0, raids=0, defenses=0, scrims=0, trainings=0,
            )
            if previous.xp:
                await self.bot.db.log_xp_change_async(
                    roblox_id, -previous.xp, "Stats reset", str(interaction.user.id)
                )
        except sqlite3.Error as e:
            logger.error_tree("Stats Reset Failed", e, [("Roblox ID", roblox_id)])
            await interaction.followup.send("Could not reset the user's stats.", ephemeral=True)
            return

        await self.bot.audit_log.record(
            "Stats Reset",
            f"<@{interaction.user.id}>",
            f"{roblox_user.name} ({roblox_id})",
            [("Previous XP", previous.xp)],
        )
        await interaction.followup.send(f"Reset all stats for **{roblox_user.name}**.", ephemeral=True)

    # =========================================================================
    # /removeuser
    # =========================================================================

    @app_commands.command(name="removeuser", description="Delete a Roblox user and their XP history")
    @app_commands.describe(user="Roblox username or id")
    async def removeuser(self, interaction: discord.Interaction, user: str) -> None:
        logger.info("/removeuser Command Invoked", [
            ("Invoked By", f"{interaction.user.name} ({interaction.user.id})"),
            ("User", user),
        ])
        if not has_admin_role(interaction.user):
            await interaction.response.send_message("You don't have permission to remove users.", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        if user.strip().isdigit():
            roblox_id, label = user.strip(), user.strip()
        else:
            roblox_user = await self._resolve(interaction, user)
            if roblox_user is None:
                return
            roblox_id, label = str(roblox_user.id), roblox_user.name

        try:
            deleted = await self.bot.db.safe_delete_user_async(roblox_id)
        except sqlite3.Error as e:
            logger.error_tree("User Removal Failed", e, [("Roblox ID", roblox_id)])
            await interaction.followup.send("Could not remove the user.", ephemeral=True)
            return

        if not deleted:
            await interaction.followup.send(f"**{label}** is not tracked.", ephemeral=True)
            return

        await self.bot.audit_log.record("User Removed", f"<@{interaction.user.id}>", f"{label} ({roblox_id})")
        await interaction.followup.send(f"Removed **{label}** and their XP history.", ephemeral=True)

    # =========================================================================
    # /leaderboard
    # =========================================================================

    @app_commands.command(name="leaderboard", description="Show the top 10 users by XP")
    async def leaderboard(self, interaction: discord.Interaction) -> None:
        logger.info("/leaderboard Command Invoked", [
            ("Invoked By", f"{interaction.user.name} ({interaction.user.id})"),
        ])
        await interaction.response.defer(thinking=True)
        try:
            users = await self.bot.db.get_all_users_async()
        except sqlite3.Error as e:
            logger.error_tree("Leaderboard Failed", e)
            await interaction.followup.send("Could not load the leaderboard.", ephemeral=True)
            return

        rows = await build_leaderboard(users, self.bot.roblox_directory)
        await interaction.followup.send(embed=build_leaderboard_embed(rows))


async def setup(bot: "QBot") -> None:
    await bot.add_cog(XpCog(bot))
    logger.info("XP Cog Loaded", [
        ("Commands", "/xp add, /xp remove, /xp view, /resetstats, /removeuser, /leaderboard"),
    ])


__all__ = ["XpCog", "MAX_XP_CHANGE", "EVENT_CHOICES", "setup"]

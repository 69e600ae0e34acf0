"""
QBot - Promotions Commands
==========================

Slash commands for the XP promotion workflow.

Commands:
- /promotions check - Scan every tracked user now
- /promotions execute - Promote everyone on the pending list
- /promotions view - Show the pending list privately
"""

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from src.core.config import has_ranking_role
from src.core.logger import logger
from src.services.ranking.embeds import build_promotion_embed

if TYPE_CHECKING:
    from src.bot import QBot


def _invoked_by(interaction: discord.Interaction) -> tuple[str, str]:
    return ("Invoked By", f"{interaction.user.name} ({interaction.user.id})")


# =============================================================================
# Promotions Cog
# =============================================================================

class PromotionsCog(commands.Cog):
    """Cog for /promotions commands."""

    promotions = app_commands.Group(name="promotions", description="XP promotion tools")

    def __init__(self, bot: "QBot") -> None:
        self.bot = bot

    async def _guard(self, interaction: discord.Interaction, command: str) -> bool:
        """Permission and readiness checks shared by every subcommand."""
        logger.info(f"/promotions {command} Command Invoked", [_invoked_by(interaction)])

        if not has_ranking_role(interaction.user):
            await interaction.response.send_message(
                "You don't have permission to manage promotions.", ephemeral=True
            )
            return False

        if self.bot.promotion_service is None:
            logger.warning(f"/promotions {command} Failed - Service Unavailable", [
                _invoked_by(interaction),
            ])
            await interaction.response.send_message(
                "The promotion system is not ready yet. Please try again later.", ephemeral=True
            )
            return False
        return True

    @promotions.command(name="check", description="Scan all tracked users for promotions")
    async def check(self, interaction: discord.Interaction) -> None:
        if not await self._guard(interaction, "check"):
            return
        service = self.bot.promotion_service

        await interaction.response.defer(ephemeral=True, thinking=True)
        if not service.directory.is_ready:
            await interaction.followup.send(
                "The Roblox group is not connected yet; the check was skipped.", ephemeral=True
            )
            return

        pending = await service.check_for_promotions()
        stats = service.last_scan_stats
        message = f"Promotion check complete: {len(pending)} user(s) eligible."
        if stats.get("failed"):
            message += f" {stats['failed']} user(s) could not be checked and were skipped."
        await interaction.followup.send(message, ephemeral=True)

    @promotions.command(name="execute", description="Promote everyone on the pending list")
    async def execute(self, interaction: discord.Interaction) -> None:
        if not await self._guard(interaction, "execute"):
            return
        service = self.bot.promotion_service

        pending = len(service.pending_promotions)
        if pending == 0:
            await interaction.response.send_message("There are no pending promotions.", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        attempted, succeeded = await service.execute_batch(interaction.user.id)
        if attempted == 0:
            await interaction.followup.send("These promotions were already executed.", ephemeral=True)
            return
        await interaction.followup.send(f"Promoted {succeeded} of {attempted} users.", ephemeral=True)

    @promotions.command(name="view", description="Show the pending promotion list")
    async def view(self, interaction: discord.Interaction) -> None:
        if not await self._guard(interaction, "view"):
            return
        embed = build_promotion_embed(self.bot.promotion_service.pending_promotions)
        await interaction.response.send_message(embed=embed, ephemeral=True)


# =============================================================================
# Setup Function
# =============================================================================

async def setup(bot: "QBot") -> None:
    await bot.add_cog(PromotionsCog(bot))
    logger.info("Promotions Cog Loaded", [
        ("Commands", "/promotions check, /promotions execute, /promotions view"),
    ])


__all__ = ["PromotionsCog", "setup"]

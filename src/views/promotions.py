"""
QBot - Promotion Views
======================

Persistent buttons on the pending promotions message.

Custom IDs:
- promote_all: Execute every pending promotion (ranking roles)
- check_promotions: Run a fresh promotion scan (ranking roles)

timeout=None plus fixed custom ids keeps the buttons working after a
restart once ``bot.add_view(PromotionView())`` runs in setup_hook.
"""

import discord

from src.core.config import has_ranking_role
from src.core.logger import logger
from src.services.ranking.promotion import get_promotion_service


PROMOTE_ALL_ID = "promote_all"
CHECK_PROMOTIONS_ID = "check_promotions"


class PromotionView(discord.ui.View):
    """Promote All / Check for Promotions buttons."""

    def __init__(self, pending_count: int = 0) -> None:
        super().__init__(timeout=None)
        self.add_item(PromoteAllButton(pending_count))
        self.add_item(CheckPromotionsButton())


class PromoteAllButton(discord.ui.Button):
    def __init__(self, pending_count: int) -> None:
        super().__init__(
            style=discord.ButtonStyle.success,
            label=f"Promote All ({pending_count})",
            custom_id=PROMOTE_ALL_ID,
            disabled=pending_count == 0,
        )

    async def callback(self, interaction: discord.Interaction) -> None:
        await handle_promote_all(interaction)


class CheckPromotionsButton(discord.ui.Button):
    def __init__(self) -> None:
        super().__init__(
            style=discord.ButtonStyle.primary,
            label="Check for Promotions",
            custom_id=CHECK_PROMOTIONS_ID,
        )

    async def callback(self, interaction: discord.Interaction) -> None:
        await handle_check_promotions(interaction)


# =============================================================================
# Handlers
# =============================================================================

async def handle_promote_all(interaction: discord.Interaction) -> None:
    if not has_ranking_role(interaction.user):
        await interaction.response.send_message(
            "You don't have permission to execute promotions.", ephemeral=True
        )
        return

    service = get_promotion_service()
    if service is None:
        await interaction.response.send_message(
            "The promotion system is not ready yet. Please try again later.", ephemeral=True
        )
        return

    await interaction.response.defer(ephemeral=True, thinking=True)
    pending = len(service.pending_promotions)
    logger.info("Promote All Pressed", [
        ("User", f"{interaction.user} ({interaction.user.id})"),
        ("Pending", pending),
    ])

    if pending == 0:
        await interaction.followup.send("There are no pending promotions.", ephemeral=True)
        return

    attempted, succeeded = await service.execute_batch(interaction.user.id)
    if attempted == 0:
        await interaction.followup.send("These promotions were already executed.", ephemeral=True)
        return
    await interaction.followup.send(
        f"Promoted {succeeded} of {attempted} users."
        + ("" if succeeded == attempted else " Failed promotions were logged; run a new check to retry."),
        ephemeral=True,
    )


async def handle_check_promotions(interaction: discord.Interaction) -> None:
    if not has_ranking_role(interaction.user):
        await interaction.response.send_message(
            "You don't have permission to run a promotion check.", ephemeral=True
        )
        return

    service = get_promotion_service()
    if service is None:
        await interaction.response.send_message(
            "The promotion system is not ready yet. Please try again later.", ephemeral=True
        )
        return

    await interaction.response.defer(ephemeral=True, thinking=True)
    if not service.directory.is_ready:
        await interaction.followup.send(
            "The Roblox group is not connected yet; the check was skipped.", ephemeral=True
        )
        return

    pending = await service.check_for_promotions()
    await interaction.followup.send(
        f"Promotion check complete: {len(pending)} user(s) eligible.", ephemeral=True
    )


__all__ = [
    "PROMOTE_ALL_ID",
    "CHECK_PROMOTIONS_ID",
    "PromotionView",
    "handle_promote_all",
    "handle_check_promotions",
]

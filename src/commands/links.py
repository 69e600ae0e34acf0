"""
QBot - Account Link Commands
============================

Commands:
- /link - Link a Discord member to a Roblox account (admin roles)
- /unlink - Remove a member's link (admin roles)
- /nickname-format - Set the nickname template /update applies (admin roles)
"""

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from src.core.config import has_admin_role
from src.core.logger import logger
from src.services.ranking.member_sync import NICKNAME_LIMIT, NICKNAME_PLACEHOLDERS, format_nickname
from src.services.roblox.errors import NotFoundError, RobloxAPIError

if TYPE_CHECKING:
    from src.bot import QBot


class LinksCog(commands.Cog):
    """Cog for /link, /unlink and /nickname-format."""

    def __init__(self, bot: "QBot") -> None:
        self.bot = bot

    async def _deny(self, interaction: discord.Interaction, command: str) -> bool:
        logger.info(f"/{command} Command Invoked", [
            ("Invoked By", f"{interaction.user.name} ({interaction.user.id})"),
        ])
        if has_admin_role(interaction.user):
            return False
        await interaction.response.send_message(
            "You don't have permission to use this command.", ephemeral=True
        )
        return True

    @app_commands.command(name="link", description="Link a member to a Roblox account")
    @app_commands.describe(member="Discord member", roblox_user="Roblox username or id")
    @app_commands.guild_only()
    async def link(self, interaction: discord.Interaction, member: discord.Member, roblox_user: str) -> None:
        if await self._deny(interaction, "link"):
            return
        if self.bot.roblox_directory is None:
            await interaction.response.send_message("The Roblox client is not ready yet.", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            user = await self.bot.roblox_directory.resolve_user(roblox_user)
        except NotFoundError:
            await interaction.followup.send(f"No Roblox user found for `{roblox_user}`.", ephemeral=True)
            return
        except RobloxAPIError as e:
            logger.warning("/link Lookup Failed", [
                ("Query", roblox_user),
                ("Error", str(e)[:100]),
            ])
            await interaction.followup.send(
                "Roblox could not be reached. Please try again in a moment.", ephemeral=True
            )
            return

        others = [
            discord_id for discord_id in await self.bot.db.get_discord_ids_for_roblox_async(str(user.id))
            if discord_id != str(member.id)
        ]
        await self.bot.db.link_account_async(str(member.id), str(user.id))
        await self.bot.audit_log.record(
            "Account Linked",
            f"<@{interaction.user.id}>",
            f"{member.mention} → {user.name} ({user.id})",
            [("Also Linked To", ", ".join(f"<@{d}>" for d in others))] if others else None,
        )
        message = f"Linked {member.mention} to **{user.name}** ({user.id}). They can now run /update."
        if others:
            message += "\nNote: this Roblox account is also linked to " + ", ".join(f"<@{d}>" for d in others) + "."
        await interaction.followup.send(message, ephemeral=True)

    @app_commands.command(name="unlink", description="Remove a member's Roblox link")
    @app_commands.describe(member="Discord member")
    @app_commands.guild_only()
    async def unlink(self, interaction: discord.Interaction, member: discord.Member) -> None:
        if await self._deny(interaction, "unlink"):
            return
        removed = await self.bot.db.unlink_account_async(str(member.id))
        if not removed:
            await interaction.response.send_message(f"{member.mention} is not linked.", ephemeral=True)
            return
        await self.bot.audit_log.record(
            "Account Linked", f"<@{interaction.user.id}>", member.mention, [("Change", "unlinked")]
        )
        await interaction.response.send_message(f"Unlinked {member.mention}.", ephemeral=True)

    @app_commands.command(name="nickname-format", description="Set the nickname template applied by /update")
    @app_commands.describe(template="e.g. [{rankName}] {robloxUsername}")
    @app_commands.guild_only()
    async def nickname_format(self, interaction: discord.Interaction, template: str) -> None:
        if await self._deny(interaction, "nickname-format"):
            return

        template = template.strip()
        if not any(p in template for p in NICKNAME_PLACEHOLDERS):
            await interaction.response.send_message(
                "The template needs at least one of: " + ", ".join(f"`{p}`" for p in NICKNAME_PLACEHOLDERS),
                ephemeral=True,
            )
            return

        await self.bot.db.set_nickname_format_async(str(interaction.guild_id), template)
        preview = format_nickname(template, "Builderman", 156, interaction.user.name, "Member", "Builder")
        await interaction.response.send_message(
            f"Nickname template saved. Preview: `{preview}` (max {NICKNAME_LIMIT} characters).",
            ephemeral=True,
        )


async def setup(bot: "QBot") -> None:
    await bot.add_cog(LinksCog(bot))
    logger.info("Links Cog Loaded", [
        ("Commands", "/link, /unlink, /nickname-format"),
    ])


__all__ = ["LinksCog", "setup"]

"""
QBot - Embed Footer Utility
===========================

Centralized footer for all embeds. The bot's avatar is cached once the
bot is ready.
"""

from typing import Optional

import discord

from src.core.colors import EMBED_FOOTER_TEXT
from src.core.logger import logger


FOOTER_TEXT = EMBED_FOOTER_TEXT

_cached_avatar_url: Optional[str] = None


def init_footer(bot: discord.Client) -> None:
    """Cache the bot's avatar for footers. Call after the bot is ready."""
    global _cached_avatar_url
    _cached_avatar_url = bot.user.display_avatar.url if bot.user else None
    logger.tree("Footer Initialized", [
        ("Text", FOOTER_TEXT),
        ("Avatar Cached", "Yes" if _cached_avatar_url else "No"),
    ], emoji="📝")


def set_footer(embed: discord.Embed, avatar_url: Optional[str] = None) -> discord.Embed:
    """Set the standard footer on an embed and return it."""
    url = avatar_url if avatar_url is not None else _cached_avatar_url
    embed.set_footer(text=FOOTER_TEXT, icon_url=url)
    return embed


__all__ = [
    "FOOTER_TEXT",
    "init_footer",
    "set_footer",
]

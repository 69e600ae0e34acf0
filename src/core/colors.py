"""
QBot - Centralized Colors
=========================

All embed colors and icons used throughout the bot in one place.
"""

import discord


# =============================================================================
# Base Color Values (Hex)
# =============================================================================

COLOR_BLURPLE = 0x5865F2
COLOR_GREEN = 0x2ECC71
COLOR_GOLD = 0xF1C40F
COLOR_RED = 0xE74C3C
COLOR_GRAY = 0x95A5A6


# =============================================================================
# Discord Embed Colors (discord.Color objects)
# =============================================================================

class EmbedColors:
    """Standardized color palette for Discord embeds."""
    PROMOTIONS = discord.Color(COLOR_BLURPLE)
    PROMOTIONS_EMPTY = discord.Color(COLOR_GRAY)

    RANK_UP = discord.Color(COLOR_GREEN)
    XP_CHANGE = discord.Color(COLOR_GOLD)
    ROLE_SYNC = discord.Color(COLOR_BLURPLE)

    SUCCESS = discord.Color(COLOR_GREEN)
    WARNING = discord.Color(COLOR_GOLD)
    ERROR = discord.Color(COLOR_RED)
    INFO = discord.Color(COLOR_BLURPLE)


class EmbedIcons:
    """Standardized emoji icons for embed titles."""
    PROMOTION = "🎖️"
    XP = "⭐"
    SYNC = "🔄"
    BIND = "🔗"
    SUCCESS = "✅"
    ERROR = "❌"
    WARNING = "⚠️"
    INFO = "📋"


EMBED_FOOTER_TEXT = "QBot Rank Bridge"


__all__ = [
    "COLOR_BLURPLE",
    "COLOR_GREEN",
    "COLOR_GOLD",
    "COLOR_RED",
    "COLOR_GRAY",
    "EmbedColors",
    "EmbedIcons",
    "EMBED_FOOTER_TEXT",
]

"""
QBot - Helper Utilities
=======================

Common helper functions used across the bot.
"""

from typing import Optional

import discord

from src.core.logger import logger


# =============================================================================
# Safe Discord API Fetch Helpers
# =============================================================================

async def safe_fetch_message(
    channel: discord.abc.Messageable,
    message_id: int
) -> Optional[discord.Message]:
    """
    Fetch a message, returning None if it is gone or unreadable.
    """
    try:
        return await channel.fetch_message(message_id)
    except discord.NotFound:
        logger.debug("Message Not Found", [
            ("Message ID", str(message_id)),
        ])
        return None
    except discord.Forbidden:
        logger.warning("No Permission To Fetch Message", [
            ("Message ID", str(message_id)),
        ])
        return None
    except discord.HTTPException as e:
        logger.warning("HTTP Error Fetching Message", [
            ("Message ID", str(message_id)),
            ("Error", str(e)),
        ])
        return None


async def safe_fetch_channel(
    client: discord.Client,
    channel_id: Optional[int],
) -> Optional[discord.abc.GuildChannel]:
    """Cached channel lookup with an API fallback. None when unavailable."""
    if not channel_id:
        return None
    channel = client.get_channel(channel_id)
    if channel is not None:
        return channel
    try:
        return await client.fetch_channel(channel_id)
    except (discord.NotFound, discord.Forbidden):
        logger.warning("Channel Unavailable", [
            ("Channel ID", str(channel_id)),
        ])
        return None
    except discord.HTTPException as e:
        logger.warning("HTTP Error Fetching Channel", [
            ("Channel ID", str(channel_id)),
            ("Error", str(e)),
        ])
        return None


# =============================================================================
# String Helpers
# =============================================================================

def truncate(text: str, max_length: int, ellipsis: str = "...") -> str:
    """Truncate text to ``max_length`` characters including the ellipsis."""
    if not text or len(text) <= max_length:
        return text
    return text[:max_length - len(ellipsis)] + ellipsis


def sanitize_input(text: Optional[str], max_length: int = 500) -> Optional[str]:
    """Strip whitespace and cap length; None for empty input."""
    if text is None:
        return None
    cleaned = text.strip()
    if not cleaned:
        return None
    return cleaned[:max_length]


def parse_role_ids(text: Optional[str]) -> list[str]:
    """
    Extract role ids from free text such as ``"<@&123> 456, 789"``.
    """
    if not text:
        return []
    ids: list[str] = []
    for token in text.replace(",", " ").split():
        digits = token.strip("<@&>")
        if digits.isdigit() and digits not in ids:
            ids.append(digits)
    return ids


__all__ = [
    "safe_fetch_message",
    "safe_fetch_channel",
    "truncate",
    "sanitize_input",
    "parse_role_ids",
]

"""
QBot - Audit Log
================

Records moderation-relevant actions (promotions, XP changes, role syncs,
binding edits). Every record goes to the tree logger; when an action-log
channel is configured it is also posted there as an embed.

``record()`` never raises: a failed audit post must not fail the action
being audited.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

import discord

from src.core.colors import EmbedColors
from src.core.logger import logger
from src.utils.discord_rate_limit import send_message_with_retry
from src.utils.footer import set_footer
from src.utils.helpers import safe_fetch_channel


# Action -> (title, color)
AUDIT_ACTIONS = {
    "XP Rankup": ("🎖️ XP Rankup", EmbedColors.RANK_UP),
    "XP Added": ("⭐ XP Added", EmbedColors.XP_CHANGE),
    "XP Removed": ("⭐ XP Removed", EmbedColors.XP_CHANGE),
    "Stats Reset": ("♻️ Stats Reset", EmbedColors.WARNING),
    "User Removed": ("🗑️ User Removed", EmbedColors.ERROR),
    "Roles Updated": ("🔄 Roles Updated", EmbedColors.ROLE_SYNC),
    "Binding Changed": ("🔗 Binding Changed", EmbedColors.INFO),
    "Account Linked": ("🔗 Account Linked", EmbedColors.INFO),
}


class AuditLog:
    """Audit sink backed by the logger and an optional Discord channel."""

    def __init__(self, bot: Optional[discord.Client] = None, channel_id: Optional[int] = None) -> None:
        self.bot = bot
        self.channel_id = channel_id

    async def record(
        self,
        action: str,
        actor: Any,
        target: Any,
        detail: Optional[List[Tuple[str, Any]]] = None,
    ) -> None:
        """Record an action. Failures are logged, never raised."""
        items: List[Tuple[str, Any]] = [("Actor", actor), ("Target", target)]
        if detail:
            items.extend(detail)
        logger.tree(f"Audit: {action}", items, emoji="📜")

        if not self.bot or not self.channel_id:
            return
        try:
            channel = await safe_fetch_channel(self.bot, self.channel_id)
            if channel is None:
                return
            await send_message_with_retry(channel, embed=self._build_embed(action, actor, target, detail))
        except Exception as e:
            logger.warning("Audit Log Post Failed", [
                ("Action", action),
                ("Error", str(e)[:100]),
            ])

    def _build_embed(
        self,
        action: str,
        actor: Any,
        target: Any,
        detail: Optional[List[Tuple[str, Any]]],
    ) -> discord.Embed:
        title, color = AUDIT_ACTIONS.get(action, (action, EmbedColors.INFO))
        embed = discord.Embed(title=title, color=color, timestamp=datetime.now(timezone.utc))
        embed.add_field(name="Actor", value=str(actor), inline=True)
        embed.add_field(name="Target", value=str(target), inline=True)
        for key, value in (detail or [])[:20]:
            embed.add_field(name=str(key), value=str(value)[:1024] or "-", inline=False)
        return set_footer(embed)


# =============================================================================
# Singleton
# =============================================================================

_audit_log: Optional[AuditLog] = None


def get_audit_log() -> AuditLog:
    """Shared AuditLog (logger-only until the bot configures a channel)."""
    global _audit_log
    if _audit_log is None:
        _audit_log = AuditLog()
    return _audit_log


def configure_audit_log(bot: discord.Client, channel_id: Optional[int]) -> AuditLog:
    audit = get_audit_log()
    audit.bot = bot
    audit.channel_id = channel_id
    return audit


__all__ = [
    "AUDIT_ACTIONS",
    "AuditLog",
    "get_audit_log",
    "configure_audit_log",
]

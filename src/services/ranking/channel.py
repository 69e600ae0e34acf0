"""
QBot - Promotion Channel
========================

Adapter over the promotions text channel. Keeps the channel holding a
single status message: everything else is purged, the tracked message is
edited in place or re-sent.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import discord

from src.core.logger import logger
from src.utils.discord_rate_limit import (
    bulk_delete_safe,
    delete_message_safe,
    edit_message_with_retry,
    log_http_error,
    send_message_with_retry,
)
from src.utils.helpers import safe_fetch_message


# Discord refuses bulk deletes of messages older than 14 days; stay clear of the edge
BULK_DELETE_MAX_AGE = timedelta(days=13)
PURGE_FETCH_LIMIT = 100


class PromotionChannel:
    """Purge / edit / send operations on the promotions channel."""

    def __init__(self, channel: discord.TextChannel) -> None:
        self.channel = channel

    @property
    def id(self) -> int:
        return self.channel.id

    async def purge(self, keep_message_id: Optional[int] = None) -> int:
        """
        Delete recent messages except ``keep_message_id``.

        Messages younger than 13 days go through bulk delete, older ones
        are deleted one by one. Already-deleted messages are ignored.

        Returns:
            Number of messages removed.
        """
        try:
            messages = [
                m async for m in self.channel.history(limit=PURGE_FETCH_LIMIT)
                if m.id != keep_message_id
            ]
        except discord.HTTPException as e:
            log_http_error(e, "Promotion Channel History", [("Channel", str(self.channel.id))])
            return 0

        if not messages:
            return 0

        cutoff = datetime.now(timezone.utc) - BULK_DELETE_MAX_AGE
        recent = [m for m in messages if m.created_at > cutoff]
        old = [m for m in messages if m.created_at <= cutoff]

        deleted = await bulk_delete_safe(self.channel, recent) if recent else 0
        for message in old:
            if await delete_message_safe(message):
                deleted += 1

        if deleted:
            logger.debug("Promotion Channel Purged", [
                ("Channel", str(self.channel.id)),
                ("Deleted", deleted),
                ("Kept", str(keep_message_id) if keep_message_id else "-"),
            ])
        return deleted

    async def edit(
        self,
        message_id: int,
        embed: discord.Embed,
        view: Optional[discord.ui.View],
    ) -> bool:
        """Edit the tracked message. False if it no longer exists or the edit failed."""
        message = await safe_fetch_message(self.channel, message_id)
        if message is None:
            return False
        return await edit_message_with_retry(message, embed=embed, view=view)

    async def send(
        self,
        embed: discord.Embed,
        view: Optional[discord.ui.View],
    ) -> Optional[int]:
        """Post a new status message. Returns its id (None on failure)."""
        message = await send_message_with_retry(self.channel, embed=embed, view=view)
        return message.id if message else None


__all__ = [
    "BULK_DELETE_MAX_AGE",
    "PromotionChannel",
]

"""
QBot - Discord Rate Limit Utilities
===================================

Wrappers around Discord message operations that honour 429 retry_after,
log failures and return a status instead of raising.
"""

import asyncio
from typing import Any, Optional, Sequence, Union

import discord

from src.core.logger import logger


# =============================================================================
# Rate Limit Configuration
# =============================================================================

MAX_RETRIES: int = 3
BASE_DELAY: float = 1.0  # seconds
BULK_DELETE_LIMIT: int = 100  # Discord cap per bulk delete call

HTTP_STATUS_DESCRIPTIONS = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    429: "Rate Limited",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


def log_http_error(
    e: discord.HTTPException,
    operation: str,
    context: Optional[list] = None,
) -> None:
    """Log a Discord HTTPException with status, text and extra context."""
    status_desc = HTTP_STATUS_DESCRIPTIONS.get(e.status, "Unknown")
    log_items = [
        ("Status", f"{e.status} ({status_desc})"),
        ("Error", str(e.text) if getattr(e, "text", None) else str(e)),
    ]
    retry_after = getattr(e, "retry_after", None)
    if retry_after:
        log_items.append(("Retry After", f"{retry_after:.1f}s"))
    if context:
        log_items.extend(context)

    if e.status in (403, 404, 429):
        logger.warning(f"{operation} {status_desc}", log_items)
    else:
        logger.error(f"{operation} Failed", log_items)


def _retry_delay(e: discord.HTTPException, attempt: int) -> float:
    return getattr(e, "retry_after", None) or BASE_DELAY * (2 ** attempt)


# =============================================================================
# Helper Functions for Common Operations
# =============================================================================

async def send_message_with_retry(
    channel: Union[discord.TextChannel, discord.Thread],
    content: Optional[str] = None,
    embed: Optional[discord.Embed] = None,
    view: Optional[discord.ui.View] = None,
    max_retries: int = MAX_RETRIES,
    **kwargs: Any,
) -> Optional[discord.Message]:
    """
    Send a message, retrying on 429.

    Returns:
        The sent message or None on failure.
    """
    send_kwargs: dict[str, Any] = dict(kwargs)
    if content is not None:
        send_kwargs["content"] = content
    if embed is not None:
        send_kwargs["embed"] = embed
    if view is not None:
        send_kwargs["view"] = view

    for attempt in range(max_retries):
        try:
            return await channel.send(**send_kwargs)
        except discord.HTTPException as e:
            if e.status == 429 and attempt < max_retries - 1:
                await asyncio.sleep(_retry_delay(e, attempt) + 0.5)
                continue
            log_http_error(e, "Send Message", [("Channel", str(channel.id))])
            return None
    return None


async def edit_message_with_retry(
    message: discord.Message,
    max_retries: int = MAX_RETRIES,
    **kwargs: Any,
) -> bool:
    """
    Edit a message, retrying on 429.

    Returns:
        True on success, False on failure (including a deleted message).
    """
    for attempt in range(max_retries):
        try:
            await message.edit(**kwargs)
            return True
        except discord.NotFound:
            logger.debug("Edit Target Missing", [("Message ID", str(message.id))])
            return False
        except discord.HTTPException as e:
            if e.status == 429 and attempt < max_retries - 1:
                await asyncio.sleep(_retry_delay(e, attempt) + 0.5)
                continue
            log_http_error(e, "Edit Message", [("Message ID", str(message.id))])
            return False
    return False


async def delete_message_safe(message: discord.Message) -> bool:
    """
    Delete a message. An already-deleted message counts as success.
    """
    try:
        await message.delete()
        return True
    except discord.NotFound:
        return True
    except discord.HTTPException as e:
        if e.status != 429:
            log_http_error(e, "Delete Message", [("Message ID", str(message.id))])
        return False


async def bulk_delete_safe(
    channel: discord.TextChannel,
    messages: Sequence[discord.Message],
) -> int:
    """
    Bulk delete messages (all must be younger than 14 days).

    Returns:
        Number of messages deleted (0 on failure).
    """
    deleted = 0
    for start in range(0, len(messages), BULK_DELETE_LIMIT):
        chunk = list(messages[start:start + BULK_DELETE_LIMIT])
        try:
            if len(chunk) == 1:
                await chunk[0].delete()
            else:
                await channel.delete_messages(chunk)
            deleted += len(chunk)
        except discord.NotFound:
            # Some were already gone; Discord rejects the whole batch
            for message in chunk:
                if await delete_message_safe(message):
                    deleted += 1
        except discord.HTTPException as e:
            log_http_error(e, "Bulk Delete", [
                ("Channel", str(channel.id)),
                ("Messages", len(chunk)),
            ])
    return deleted


__all__ = [
    "log_http_error",
    "send_message_with_retry",
    "edit_message_with_retry",
    "delete_message_safe",
    "bulk_delete_safe",
]

"""
QBot - Ready Handler
====================

Startup logic run once the gateway connection is up.
"""

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable, List

import discord

from src.core.config import (
    GUILD_ID,
    PROMOTION_CHECK_INTERVAL,
    PROMOTION_INIT_RETRIES,
    PROMOTION_INIT_RETRY_DELAY,
    PROMOTION_REFRESH_INTERVAL,
)
from src.core.logger import logger
from src.services.ranking.scheduler import PromotionScheduler
from src.services.roblox.errors import RobloxAPIError
from src.utils.footer import init_footer

if TYPE_CHECKING:
    from src.bot import QBot


# Default timeout for service initialization (seconds)
SERVICE_INIT_TIMEOUT: float = 30.0


async def _safe_init(
    name: str,
    init_func: Callable[["QBot"], Awaitable[None]],
    bot: "QBot",
    timeout: float = SERVICE_INIT_TIMEOUT
) -> bool:
    """
    Initialize a service with a timeout. One failing service never blocks
    the others.

    Returns:
        True if initialization succeeded, False otherwise
    """
    try:
        async with asyncio.timeout(timeout):
            await init_func(bot)
        return True
    except asyncio.TimeoutError:
        logger.error("Timeout Initializing Service", [
            ("Service", name),
            ("Timeout", f"{timeout}s"),
            ("Status", "Skipped - continuing startup"),
        ])
        return False
    except Exception as e:
        logger.error("Failed To Initialize Service", [
            ("Service", name),
            ("Error Type", type(e).__name__),
            ("Error", str(e)),
            ("Status", "Skipped - continuing startup"),
        ])
        return False


async def on_ready_handler(bot: "QBot") -> None:
    """Sync commands and start the promotion scheduler."""
    init_results: List[tuple[str, bool]] = []

    logger.startup_tree(
        bot.user.name,
        bot.user.id,
        len(bot.guilds),
        bot.latency * 1000,
        extra=[
            ("Roblox Group", str(bot.roblox_directory.group_id) if bot.roblox_directory else "Not Set"),
            ("Promotion Channel", str(bot.promotion_channel_id) if bot.promotion_channel_id else "Not Set"),
            ("Database", "OK" if bot.db is not None and bot.db.health_check() else "Unavailable"),
        ],
    )

    try:
        async with asyncio.timeout(30.0):
            await _sync_commands(bot)
    except asyncio.TimeoutError:
        logger.error("Timeout syncing commands - continuing startup")

    init_footer(bot)

    init_results.append(("Promotion Scheduler", await _safe_init("Promotion Scheduler", _init_promotion_scheduler, bot)))

    failed = [name for name, ok in init_results if not ok]
    logger.tree("Startup Complete", [
        ("Services Started", f"{len(init_results) - len(failed)}/{len(init_results)}"),
        ("Failed", ", ".join(failed) if failed else "None"),
    ], emoji="🚀")


# =============================================================================
# Promotion Scheduler
# =============================================================================

async def _roblox_group_ready(bot: "QBot") -> bool:
    """Dependency check for the scheduler: log in and load the group's roles."""
    directory = bot.roblox_directory
    if directory is None:
        return False
    if directory.is_ready:
        return True
    try:
        await directory.initialize()
    except RobloxAPIError as e:
        logger.warning("Roblox Group Initialization Failed", [
            ("Group ID", directory.group_id),
            ("Kind", e.kind.value),
            ("Error", str(e)[:100]),
        ])
        return False
    return directory.is_ready


async def _init_promotion_scheduler(bot: "QBot") -> None:
    """
    Start the promotion scheduler.

    start() only spawns the background task, so the bounded dependency
    wait happens outside the init timeout.
    """
    if bot.promotion_service is None:
        logger.info("🎖️ Promotion Service Not Initialized - Skipping Scheduler")
        return

    bot.promotion_scheduler = PromotionScheduler(
        bot.promotion_service,
        dependency_ready=lambda: _roblox_group_ready(bot),
        init_retries=PROMOTION_INIT_RETRIES,
        init_retry_delay=PROMOTION_INIT_RETRY_DELAY,
        check_interval=PROMOTION_CHECK_INTERVAL,
        refresh_interval=PROMOTION_REFRESH_INTERVAL,
    )
    await bot.promotion_scheduler.start()
    logger.tree("Promotion Scheduler Launched", [
        ("Init Attempts", PROMOTION_INIT_RETRIES),
        ("Retry Delay", f"{PROMOTION_INIT_RETRY_DELAY:.0f}s"),
    ], emoji="🎖️")


# =============================================================================
# Command Sync
# =============================================================================

async def _sync_commands(bot: "QBot") -> None:
    """Sync slash commands to the home guild (instant) or globally."""
    try:
        if GUILD_ID:
            guild = discord.Object(id=GUILD_ID)
            bot.tree.copy_global_to(guild=guild)
            synced = await bot.tree.sync(guild=guild)
            target = f"Guild {GUILD_ID}"
        else:
            synced = await bot.tree.sync()
            target = "Global"
        logger.tree("Synced Commands", [
            ("Target", target),
            ("Commands", str(len(synced))),
        ], emoji="⚡")
    except discord.HTTPException as e:
        logger.error("⚡ Failed To Sync Commands", [
            ("Error", str(e)),
        ])


__all__ = ["on_ready_handler"]

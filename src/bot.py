"""
QBot - Main Bot Class
=====================

Discord client for the Roblox rank bridge.

ARCHITECTURE OVERVIEW:
======================
┌─────────────────────────────────────────────────────────────────┐
│                        BOT LAYER (bot.py)                        │
│  - Discord client setup and event routing                       │
│  - Service construction and lifecycle                           │
└─────────────────────────────────────────────────────────────────┘
                              │
        ┌─────────────────────┼─────────────────────┐
        ▼                     ▼                     ▼
┌───────────────┐    ┌───────────────────┐    ┌───────────────┐
│   HANDLERS    │    │     SERVICES      │    │   COMMANDS    │
│ - ready.py    │    │ - roblox/         │    │ - promotions  │
│ - shutdown.py │    │ - ranking/        │    │ - binds       │
└───────────────┘    │ - database/       │    │ - update, xp  │
                     │ - audit_log.py    │    │ - links       │
                     └───────────────────┘    └───────────────┘

SERVICE ORDER:
1. setup_hook: database, Roblox client + group directory, audit log,
   promotion service, command cogs, persistent promotion view
2. on_ready: command sync, footer, promotion scheduler (waits for the
   Roblox group before its first scan)
"""

from typing import Optional

import discord
from discord.ext import commands

from src.caches import TTLCache
from src.core.config import (
    ACTION_LOG_CHANNEL_ID,
    PROMOTION_CHANNEL_ID,
    ROBLOX_GROUP_ID,
    ROBLOX_REQUEST_TIMEOUT,
    ROLES_CACHE_TTL,
    XP_RANK_TABLE,
    get_roblox_cookie,
)
from src.core.logger import logger
from src.handlers.ready import on_ready_handler
from src.handlers.shutdown import shutdown_handler
from src.services.audit_log import AuditLog, configure_audit_log
from src.services.database import BotDatabase, get_db
from src.services.ranking.channel import PromotionChannel
from src.services.ranking.promotion import PromotionService, init_promotion_service
from src.services.ranking.scheduler import PromotionScheduler
from src.services.roblox.client import RobloxClient
from src.services.roblox.group import GroupDirectory
from src.utils.helpers import safe_fetch_channel
from src.views.promotions import PromotionView


COMMAND_EXTENSIONS = (
    "src.commands.promotions",
    "src.commands.binds",
    "src.commands.update",
    "src.commands.xp",
    "src.commands.links",
)


# =============================================================================
# QBot Class
# =============================================================================

class QBot(commands.Bot):
    """
    Main Discord bot class.

    Holds every service so cogs, views and handlers reach them through
    the bot instance. Services are None until setup_hook runs.

    INTENTS REQUIRED:
    - guilds: Access server info
    - members: Role and nickname sync for /update
    """

    def __init__(self) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.members = True

        super().__init__(
            command_prefix="!",  # Not used - slash commands only
            intents=intents,
            help_command=None,
        )

        self.promotion_channel_id: Optional[int] = PROMOTION_CHANNEL_ID

        self.db: Optional[BotDatabase] = None
        self.roblox_client: Optional[RobloxClient] = None
        self.roblox_directory: Optional[GroupDirectory] = None
        self.audit_log: Optional[AuditLog] = None
        self.promotion_service: Optional[PromotionService] = None
        self.promotion_scheduler: Optional[PromotionScheduler] = None

        # Discord can fire on_ready multiple times (reconnects)
        self._ready_initialized: bool = False

    # =========================================================================
    # Setup
    # =========================================================================

    async def setup_hook(self) -> None:
        """Build services, load cogs and register the persistent view."""
        self.db = get_db()

        self.roblox_client = RobloxClient(get_roblox_cookie(), timeout=ROBLOX_REQUEST_TIMEOUT)
        self.roblox_directory = GroupDirectory(
            self.roblox_client,
            ROBLOX_GROUP_ID or 0,
            roles_cache=TTLCache(ROLES_CACHE_TTL, max_size=4, name="group-roles"),
        )

        self.audit_log = configure_audit_log(self, ACTION_LOG_CHANNEL_ID)

        self.promotion_service = init_promotion_service(
            directory=self.roblox_directory,
            store=self.db,
            rank_table=XP_RANK_TABLE,
            channel_provider=self.get_promotion_channel,
            audit=self.audit_log,
            user_timeout=ROBLOX_REQUEST_TIMEOUT,
        )

        for extension in COMMAND_EXTENSIONS:
            await self.load_extension(extension)

        # Buttons on messages sent before a restart keep working
        self.add_view(PromotionView())

        logger.info("Bot Setup Complete", [
            ("Cogs", len(COMMAND_EXTENSIONS)),
            ("Rank Table", f"{len(XP_RANK_TABLE)} entries"),
            ("Promotion Channel", str(self.promotion_channel_id) if self.promotion_channel_id else "Not Set"),
        ])

    async def get_promotion_channel(self) -> Optional[PromotionChannel]:
        """The promotions channel wrapped for the promotion service, or None."""
        if not self.promotion_channel_id:
            return None
        channel = await safe_fetch_channel(self, self.promotion_channel_id)
        if not isinstance(channel, discord.TextChannel):
            return None
        return PromotionChannel(channel)

    # =========================================================================
    # Events
    # =========================================================================

    async def on_ready(self) -> None:
        if self._ready_initialized:
            logger.info("🔄 Bot Reconnected (skipping re-initialization)")
            return

        self._ready_initialized = True
        await on_ready_handler(self)

    async def close(self) -> None:
        await shutdown_handler(self)
        await super().close()


__all__ = ["QBot", "COMMAND_EXTENSIONS"]

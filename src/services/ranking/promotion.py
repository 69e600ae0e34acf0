"""
QBot - Promotion Service
========================

Scans every tracked user for XP-based promotions, keeps a status message
in the promotions channel, and executes the pending batch on request.

State:
    pending_promotions: Result of the last completed scan
    last_message_id: Id of the rendered status message (None = send a new one)

Guarantees:
    - A scan never runs before the Roblox group is ready; the previous
      list is left untouched in that case.
    - One user's failure (HTTP error, timeout, malformed payload or a
      bad record) only drops that user from the current scan.
    - execute_promotions() takes and clears the list with no await in
      between, so each pending entry is executed at most once even when
      two operators press the button together.
"""

import asyncio
import sqlite3
from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence, Union

import discord

from src.core.logger import logger
from src.models import PendingPromotion, RankTableEntry
from src.services.audit_log import AuditLog
from src.services.database.models import UserRecord
from src.services.ranking.channel import PromotionChannel
from src.services.ranking.embeds import build_promotion_embed
from src.services.ranking.rank_table import (
    find_highest_eligible_role,
    get_rank_name,
    resolve_group_role,
)
from src.services.roblox.errors import RobloxAPIError, classify_exception
from src.services.roblox.models import GroupMember, GroupRole


class GroupDirectoryLike(Protocol):
    @property
    def is_ready(self) -> bool: ...
    async def get_roles(self, force: bool = False) -> list[GroupRole]: ...
    async def get_member(self, user_id: int) -> Optional[GroupMember]: ...
    async def update_member(self, user_id: int, role_id: int) -> None: ...


class RankStoreLike(Protocol):
    async def get_all_users_async(self) -> list[UserRecord]: ...


ChannelProvider = Callable[[], Awaitable[Optional[PromotionChannel]]]
ViewFactory = Callable[[int], Optional[discord.ui.View]]


def _default_view_factory(pending_count: int) -> discord.ui.View:
    from src.views.promotions import PromotionView
    return PromotionView(pending_count)


# =============================================================================
# Promotion Service
# =============================================================================

class PromotionService:
    """Scan, render and execute XP promotions."""

    def __init__(
        self,
        directory: GroupDirectoryLike,
        store: RankStoreLike,
        rank_table: Sequence[RankTableEntry],
        channel_provider: ChannelProvider,
        audit: AuditLog,
        user_timeout: float = 30.0,
        view_factory: ViewFactory = _default_view_factory,
    ) -> None:
        self.directory = directory
        self.store = store
        self.rank_table = list(rank_table)
        self.channel_provider = channel_provider
        self.audit = audit
        self.user_timeout = user_timeout
        self.view_factory = view_factory

        self.pending_promotions: list[PendingPromotion] = []
        self.last_message_id: Optional[int] = None
        self.last_scan_stats: dict[str, int] = {}

        self._scan_lock = asyncio.Lock()
        self._render_lock = asyncio.Lock()
        # Users promoted while a scan is in flight; filtered from that scan's result
        self._promoted_during_scan: set[str] = set()
        self._scanning = False

    # =========================================================================
    # Scan
    # =========================================================================

    async def check_for_promotions(self) -> list[PendingPromotion]:
        """
        Rebuild the pending list from every stored user and re-render.

        Returns:
            The pending list after the scan (unchanged if the scan could not run).
        """
        if not self.directory.is_ready:
            logger.warning("Promotion Check Skipped", [
                ("Reason", "Roblox group not initialized"),
                ("Pending Kept", len(self.pending_promotions)),
            ])
            return list(self.pending_promotions)

        async with self._scan_lock:
            self._promoted_during_scan = set()
            self._scanning = True
            try:
                found = await self._scan()
            finally:
                self._scanning = False

            if found is None:
                return list(self.pending_promotions)

            promoted = self._promoted_during_scan
            self.pending_promotions = [p for p in found if p.roblox_id not in promoted]

        await self.update_promotion_embed()
        return list(self.pending_promotions)

    async def _scan(self) -> Optional[list[PendingPromotion]]:
        try:
            roles = await self.directory.get_roles()
            users = await self.store.get_all_users_async()
        except RobloxAPIError as e:
            logger.error_tree("Promotion Check Aborted", e, [("Stage", "load roles")])
            return None
        except sqlite3.Error as e:
            logger.error_tree("Promotion Check Aborted", e, [("Stage", "load users")])
            return None

        found: list[PendingPromotion] = []
        stats = {"users": len(users), "eligible": 0, "skipped": 0, "failed": 0}

        for user in users:
            outcome = await self._evaluate_user(user, roles)
            if outcome is None:
                stats["skipped"] += 1
            elif outcome is False:
                stats["failed"] += 1
            else:
                found.append(outcome)
                stats["eligible"] += 1

        self.last_scan_stats = stats
        logger.tree("Promotion Check Complete", [
            ("Users", stats["users"]),
            ("Eligible", stats["eligible"]),
            ("Not Eligible", stats["skipped"]),
            ("Failed", stats["failed"]),
        ], emoji="🎖️")
        return found

    async def _evaluate_user(self, user: UserRecord, roles: list[GroupRole]) -> Union[PendingPromotion, None, bool]:
        """
        PendingPromotion if eligible, None if not eligible, False on failure.
        """
        try:
            user_id = int(user.roblox_id)
            xp = int(user.xp)
        except (TypeError, ValueError):
            logger.warning("Malformed User Record", [
                ("Roblox ID", repr(user.roblox_id)),
                ("XP", repr(user.xp)),
            ])
            return False
        if xp < 0:
            return False

        try:
            async with asyncio.timeout(self.user_timeout):
                member = await self.directory.get_member(user_id)
        except (RobloxAPIError, asyncio.TimeoutError) as e:
            error = classify_exception(e)
            logger.warning("Promotion Lookup Failed", [
                ("Roblox ID", user_id),
                ("Kind", error.kind.value),
                ("Error", str(error)[:100]),
            ])
            return False
        except Exception as e:
            logger.error_tree("Promotion Lookup Error", e, [("Roblox ID", user_id)])
            return False

        if member is None:
            return None

        entry = find_highest_eligible_role(member.rank, xp, self.rank_table)
        if entry is None:
            return None

        target = resolve_group_role(entry, roles)
        if target is None:
            logger.warning("Rank Table Entry Has No Group Role", [
                ("Rank", entry.rank),
                ("Roblox ID", user_id),
            ])
            return False

        return PendingPromotion(
            roblox_id=str(user_id),
            name=member.username or str(user_id),
            current_rank=member.role.name or get_rank_name(member.rank, roles),
            new_rank=target.name,
            role_id=target.id,
            current_rank_number=member.rank,
            new_rank_number=target.rank,
        )

    # =========================================================================
    # Render
    # =========================================================================

    async def update_promotion_embed(self) -> None:
        """Purge the channel and show the current pending list. Never raises."""
        async with self._render_lock:
            try:
                channel = await self.channel_provider()
            except Exception as e:
                logger.error_tree("Promotion Channel Lookup Failed", e)
                return
            if channel is None:
                logger.warning("Promotion Channel Unavailable", [
                    ("Pending", len(self.pending_promotions)),
                ])
                return

            await channel.purge(keep_message_id=self.last_message_id)

            pending = list(self.pending_promotions)
            embed = build_promotion_embed(pending)
            view = self.view_factory(len(pending))

            if self.last_message_id is not None:
                if await channel.edit(self.last_message_id, embed, view):
                    return
                logger.info("Promotion Message Missing, Reposting", [
                    ("Old Message ID", str(self.last_message_id)),
                ])

            self.last_message_id = await channel.send(embed, view)

    # =========================================================================
    # Execute
    # =========================================================================

    async def execute_promotions(self, initiator_id: int) -> int:
        """
        Promote everyone on the pending list.

        Failed entries are logged and dropped; the next scan picks them up
        again if they are still eligible.

        Returns:
            Number of successful promotions in this call.
        """
        _, succeeded = await self.execute_batch(initiator_id)
        return succeeded

    async def execute_batch(self, initiator_id: int) -> tuple[int, int]:
        """
        Like execute_promotions(), also reporting the size of the batch this
        call took. A call that lost the race to another executor gets (0, 0).

        Returns:
            (attempted, succeeded)
        """
        batch = self.pending_promotions
        self.pending_promotions = []

        succeeded = 0
        for promotion in batch:
            try:
                await self.directory.update_member(int(promotion.roblox_id), promotion.role_id)
            except (RobloxAPIError, asyncio.TimeoutError, ValueError) as e:
                logger.error("Promotion Failed", [
                    ("User", f"{promotion.name} ({promotion.roblox_id})"),
                    ("Target", promotion.new_rank),
                    ("Error", str(e)[:100] or type(e).__name__),
                ])
                continue

            succeeded += 1
            if self._scanning:
                self._promoted_during_scan.add(promotion.roblox_id)

            logger.rank_tree(
                "XP Rankup",
                promotion.name,
                promotion.roblox_id,
                promotion.current_rank,
                promotion.new_rank,
                extra=[("By", initiator_id)],
            )
            await self.audit.record(
                "XP Rankup",
                f"<@{initiator_id}>",
                f"{promotion.name} ({promotion.roblox_id})",
                [("From", promotion.current_rank), ("To", promotion.new_rank)],
            )

        logger.tree("Promotions Executed", [
            ("Initiator", initiator_id),
            ("Attempted", len(batch)),
            ("Succeeded", succeeded),
            ("Failed", len(batch) - succeeded),
        ], emoji="🎖️")

        self.last_message_id = None
        await self.update_promotion_embed()
        return len(batch), succeeded


# =============================================================================
# Singleton
# =============================================================================

_promotion_service: Optional[PromotionService] = None


def init_promotion_service(**kwargs: Any) -> PromotionService:
    """Create the process-wide PromotionService (replaces any previous one)."""
    global _promotion_service
    _promotion_service = PromotionService(**kwargs)
    return _promotion_service


def get_promotion_service() -> Optional[PromotionService]:
    return _promotion_service


__all__ = [
    "PromotionService",
    "init_promotion_service",
    "get_promotion_service",
]

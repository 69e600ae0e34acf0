"""
QBot - Ranking Embeds
=====================

Embed builders for the promotions status message and rank/XP replies.
"""

from datetime import datetime, timezone
from typing import Optional, Sequence

import discord

from src.core.colors import EmbedColors, EmbedIcons
from src.core.config import ROBLOX_PROFILE_URL
from src.models import PendingPromotion, RankTableEntry
from src.services.database.models import RoleBinding, UserRecord, XpLogEntry
from src.utils.footer import set_footer
from src.utils.helpers import truncate


PROMOTIONS_TITLE = "Pending Promotions"
NO_PROMOTIONS_TEXT = "No users are currently eligible for promotion."
DESCRIPTION_LIMIT = 4000


def format_promotion_line(promotion: PendingPromotion) -> str:
    profile = ROBLOX_PROFILE_URL.format(user_id=promotion.roblox_id)
    return f"[{promotion.name}]({profile}): {promotion.current_rank} → {promotion.new_rank}"


def build_promotion_embed(pending: Sequence[PendingPromotion]) -> discord.Embed:
    """Status embed listing every pending promotion."""
    if not pending:
        embed = discord.Embed(
            title=PROMOTIONS_TITLE,
            description=NO_PROMOTIONS_TEXT,
            color=EmbedColors.PROMOTIONS_EMPTY,
            timestamp=datetime.now(timezone.utc),
        )
        return set_footer(embed)

    lines: list[str] = []
    used = 0
    for index, promotion in enumerate(pending):
        line = format_promotion_line(promotion)
        if used + len(line) + 1 > DESCRIPTION_LIMIT:
            lines.append(f"...and {len(pending) - index} more")
            break
        lines.append(line)
        used += len(line) + 1

    embed = discord.Embed(
        title=PROMOTIONS_TITLE,
        description="\n".join(lines),
        color=EmbedColors.PROMOTIONS,
        timestamp=datetime.now(timezone.utc),
    )
    embed.add_field(name="Eligible", value=str(len(pending)), inline=True)
    return set_footer(embed)


def build_xp_embed(
    username: str,
    record: UserRecord,
    rank_name: Optional[str],
    next_entry: Optional[RankTableEntry],
    next_rank_name: Optional[str] = None,
    history: Sequence[XpLogEntry] = (),
) -> discord.Embed:
    embed = discord.Embed(
        title=f"{EmbedIcons.XP} {username}",
        color=EmbedColors.XP_CHANGE,
    )
    embed.add_field(name="XP", value=str(record.xp), inline=True)
    embed.add_field(name="Rank", value=rank_name or "Not in group", inline=True)
    if next_entry is not None:
        label = next_rank_name or f"rank {next_entry.rank}"
        embed.add_field(
            name="Next Rank",
            value=f"{label} at {next_entry.xp} XP ({next_entry.xp - record.xp} to go)",
            inline=False,
        )
    embed.add_field(
        name="Activity",
        value=(
            f"Raids: {record.raids} · Defenses: {record.defenses} · "
            f"Scrims: {record.scrims} · Trainings: {record.trainings}"
        ),
        inline=False,
    )
    if history:
        lines = [
            f"`{entry.amount:+d}` {truncate(entry.reason or 'No reason', 60)}"
            for entry in history
        ]
        embed.add_field(name="Recent Changes", value="\n".join(lines), inline=False)
    return set_footer(embed)


def build_bindings_embed(bindings: Sequence[RoleBinding]) -> discord.Embed:
    embed = discord.Embed(title=f"{EmbedIcons.BIND} Role Bindings", color=EmbedColors.INFO)
    if not bindings:
        embed.description = "No role bindings configured."
        return set_footer(embed)

    lines = []
    for binding in bindings:
        line = f"<@&{binding.discord_role_id}> → ranks {binding.range_label}"
        if binding.roblox_rank_name:
            line += f" ({binding.roblox_rank_name})"
        if binding.roles_to_remove:
            line += " · removes " + ", ".join(f"<@&{r}>" for r in binding.roles_to_remove)
        lines.append(line)
    embed.description = "\n".join(lines)[:DESCRIPTION_LIMIT]
    return set_footer(embed)


__all__ = [
    "PROMOTIONS_TITLE",
    "NO_PROMOTIONS_TEXT",
    "format_promotion_line",
    "build_promotion_embed",
    "build_xp_embed",
    "build_bindings_embed",
]

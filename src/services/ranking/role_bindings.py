"""
QBot - Role Binding Reconciliation
==================================

Works out which Discord roles a member should gain or lose for their
current Roblox group rank, and applies that delta.

Reconciliation rules for a member at rank R:
    1. Applicable bindings: this guild's bindings whose range covers R.
    2. Removal list: every ``roles_to_remove`` entry of an applicable binding.
    3. Add-set: every applicable binding's role that is not on the removal
       list. A role both granted and removed at R is a configuration
       conflict; it is logged and the removal applies.
    4. Removals: roles the member has that are bound by some binding but
       not in the add-set, plus held roles on the removal list.

The add and remove sets are disjoint, and applying a delta then
reconciling again yields an empty delta.
"""

from typing import Iterable, Optional, Sequence

import discord

from src.core.logger import logger
from src.models import RoleDelta, RoleUpdateResult
from src.services.database.models import RoleBinding
from src.services.roblox.models import GroupMember


NOT_A_MEMBER = "User is not in the Roblox group"


# =============================================================================
# Pure Reconciliation
# =============================================================================

def _to_ids(values: Iterable) -> set[int]:
    ids: set[int] = set()
    for value in values:
        try:
            ids.add(int(value))
        except (TypeError, ValueError):
            continue
    return ids


def reconcile_roles(
    guild_id,
    member_roles: Iterable[int],
    roblox_rank: int,
    bindings: Sequence[RoleBinding],
) -> RoleDelta:
    """
    Compute the roles to add and remove for a member.

    Args:
        guild_id: Guild whose bindings apply (others are ignored)
        member_roles: Discord role ids the member currently has
        roblox_rank: The member's current group rank number
        bindings: Role bindings (may include other guilds)

    Returns:
        RoleDelta with disjoint ``to_add`` / ``to_remove`` sets.
    """
    guild_key = str(guild_id)
    current = _to_ids(member_roles)
    guild_bindings = [b for b in bindings if str(b.guild_id) == guild_key]
    applicable = [b for b in guild_bindings if b.covers(roblox_rank)]

    granted = _to_ids(b.discord_role_id for b in applicable)
    explicit_removals = _to_ids(r for b in applicable for r in b.roles_to_remove)
    bound_ids = _to_ids(b.discord_role_id for b in guild_bindings)

    conflicts = granted & explicit_removals
    if conflicts:
        logger.warning("Role Binding Conflict", [
            ("Guild", guild_key),
            ("Rank", roblox_rank),
            ("Roles", ", ".join(str(r) for r in sorted(conflicts))),
            ("Resolution", "removed (removal list wins over grant)"),
        ])

    add_set = granted - explicit_removals
    to_add = add_set - current
    stale_bound = (current & bound_ids) - add_set
    to_remove = stale_bound | (current & explicit_removals)

    return RoleDelta(to_add=to_add, to_remove=to_remove)


def find_binding_conflicts(bindings: Sequence[RoleBinding]) -> list[tuple[str, str]]:
    """
    Pairs ``(role_id, remover_role_id)`` where one binding's ``roles_to_remove``
    lists a role that another binding grants over an overlapping rank range.

    Such pairs are configuration mistakes: at the overlapping ranks the role
    is both granted and removed (the removal wins).
    """
    conflicts: list[tuple[str, str]] = []
    for remover in bindings:
        removals = {str(r) for r in remover.roles_to_remove}
        if not removals:
            continue
        for granter in bindings:
            if str(granter.guild_id) != str(remover.guild_id):
                continue
            if str(granter.discord_role_id) not in removals:
                continue
            overlaps = (
                granter.min_rank_id <= remover.max_rank_id
                and remover.min_rank_id <= granter.max_rank_id
            )
            if overlaps:
                conflicts.append((str(granter.discord_role_id), str(remover.discord_role_id)))
    return conflicts


def parse_rank_range(text: str) -> tuple[int, int]:
    """
    Parse ``"5"`` or ``"1-255"`` into an inclusive (min, max) range.

    Raises:
        ValueError: On malformed input, ranks outside 0-255 or min > max.
    """
    raw = text.strip()
    if "-" in raw:
        low_text, high_text = raw.split("-", 1)
        low, high = int(low_text.strip()), int(high_text.strip())
    else:
        low = high = int(raw)
    if low < 0 or high > 255:
        raise ValueError("ranks must be within 0-255")
    if low > high:
        raise ValueError(f"min rank {low} is greater than max rank {high}")
    return low, high


# =============================================================================
# Applying A Delta
# =============================================================================

async def update_member_roles(
    member: discord.Member,
    roblox_member: Optional[GroupMember],
    bindings: Sequence[RoleBinding],
    reason: str = "Role sync",
) -> RoleUpdateResult:
    """
    Reconcile and apply role bindings for a guild member.

    Not in the group -> no mutations. The add and remove batches are
    independent: a failure in one is logged and the other still runs.
    """
    if roblox_member is None:
        return RoleUpdateResult(success=False, error=NOT_A_MEMBER)

    delta = reconcile_roles(
        member.guild.id,
        [role.id for role in member.roles],
        roblox_member.rank,
        bindings,
    )
    result = RoleUpdateResult(success=True, rank_name=roblox_member.role.name)
    if delta.is_empty:
        return result

    to_add = [r for r in (member.guild.get_role(i) for i in sorted(delta.to_add)) if r is not None]
    to_remove = [r for r in (member.guild.get_role(i) for i in sorted(delta.to_remove)) if r is not None]
    errors: list[str] = []

    if to_add:
        try:
            await member.add_roles(*to_add, reason=reason)
            result.added = [r.id for r in to_add]
        except discord.HTTPException as e:
            errors.append(f"add failed: {e}")
            logger.error("Role Add Failed", [
                ("Member", f"{member} ({member.id})"),
                ("Roles", ", ".join(r.name for r in to_add)),
                ("Error", str(e)[:100]),
            ])

    if to_remove:
        try:
            await member.remove_roles(*to_remove, reason=reason)
            result.removed = [r.id for r in to_remove]
        except discord.HTTPException as e:
            errors.append(f"remove failed: {e}")
            logger.error("Role Remove Failed", [
                ("Member", f"{member} ({member.id})"),
                ("Roles", ", ".join(r.name for r in to_remove)),
                ("Error", str(e)[:100]),
            ])

    if errors:
        result.success = False
        result.error = "; ".join(errors)

    logger.tree("Member Roles Synced", [
        ("Member", f"{member} ({member.id})"),
        ("Rank", f"{roblox_member.role.name} ({roblox_member.rank})"),
        ("Added", len(result.added)),
        ("Removed", len(result.removed)),
        ("Errors", len(errors)),
    ], emoji="🔄")
    return result


__all__ = [
    "NOT_A_MEMBER",
    "reconcile_roles",
    "find_binding_conflicts",
    "parse_rank_range",
    "update_member_roles",
]

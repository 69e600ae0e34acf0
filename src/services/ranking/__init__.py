"""
QBot - Ranking Package
======================

Structure:
    - rank_table.py: XP -> rank eligibility
    - role_bindings.py: Discord role reconciliation against the group rank
    - member_sync.py: /update flow (roles + nickname)
    - promotion.py: Promotion scan / render / execute
    - channel.py: Promotions channel adapter
    - embeds.py: Embed builders
    - leaderboard.py: Top users by XP
    - scheduler.py: Promotion scheduler
"""

from src.services.ranking.rank_table import (
    find_highest_eligible_role,
    get_rank_name,
    resolve_group_role,
)
from src.services.ranking.role_bindings import (
    reconcile_roles,
    find_binding_conflicts,
    parse_rank_range,
    update_member_roles,
)

__all__ = [
    "find_highest_eligible_role",
    "get_rank_name",
    "resolve_group_role",
    "reconcile_roles",
    "find_binding_conflicts",
    "parse_rank_range",
    "update_member_roles",
]

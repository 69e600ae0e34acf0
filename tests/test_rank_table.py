"""Tests for XP -> rank eligibility."""

import pytest

from src.core.config import DEFAULT_RANK_TABLE
from src.models import RankTableEntry
from src.services.ranking.rank_table import (
    UNKNOWN_RANK_NAME,
    find_highest_eligible_role,
    get_rank_name,
    next_threshold,
    resolve_group_role,
)
from tests.fakes import GROUP_ROLES


def test_picks_highest_rank_not_first_match(rank_table):
    entry = find_highest_eligible_role(current_rank=2, xp=150, rank_table=rank_table)
    assert entry == RankTableEntry(rank=10, xp=100)


def test_member_above_every_threshold_gets_nothing(rank_table):
    assert find_highest_eligible_role(current_rank=10, xp=500, rank_table=rank_table) is None


def test_exact_threshold_qualifies(rank_table):
    assert find_highest_eligible_role(2, 40, rank_table).rank == 5
    assert find_highest_eligible_role(2, 39, rank_table) is None


def test_table_order_does_not_matter(rank_table):
    shuffled = list(reversed(rank_table))
    assert find_highest_eligible_role(2, 150, shuffled) == find_highest_eligible_role(2, 150, rank_table)


def test_highest_rank_wins_over_highest_xp():
    table = [RankTableEntry(rank=20, xp=50), RankTableEntry(rank=15, xp=80)]
    assert find_highest_eligible_role(1, 100, table).rank == 20


@pytest.mark.parametrize("current_rank", [0, 5, 12, 25, 40, 255])
@pytest.mark.parametrize("xp", [0, 39, 40, 150, 299, 1000, 50_000])
def test_no_higher_qualifying_rank_is_missed(current_rank, xp):
    entry = find_highest_eligible_role(current_rank, xp, DEFAULT_RANK_TABLE)
    qualifying = [e for e in DEFAULT_RANK_TABLE if e.xp <= xp and e.rank > current_rank]
    if entry is None:
        assert qualifying == []
    else:
        assert entry.rank > current_rank
        assert all(e.rank <= entry.rank for e in qualifying)


def test_entries_at_or_below_current_rank_never_selected():
    table = [RankTableEntry(rank=5, xp=0), RankTableEntry(rank=10, xp=0)]
    assert find_highest_eligible_role(10, 10_000, table) is None
    assert find_highest_eligible_role(5, 10_000, table).rank == 10


def test_rank_names_and_role_resolution():
    assert get_rank_name(10, GROUP_ROLES) == "Sergeant"
    assert get_rank_name(99, GROUP_ROLES) == UNKNOWN_RANK_NAME
    assert resolve_group_role(RankTableEntry(rank=5, xp=40), GROUP_ROLES).id == 1005
    assert resolve_group_role(RankTableEntry(rank=7, xp=40), GROUP_ROLES) is None


def test_next_threshold(rank_table):
    assert next_threshold(0, rank_table).rank == 5
    assert next_threshold(40, rank_table).rank == 10
    assert next_threshold(100, rank_table) is None

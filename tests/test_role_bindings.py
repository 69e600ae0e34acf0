"""Tests for role binding reconciliation."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from src.services.database.models import RoleBinding
from src.services.ranking.role_bindings import (
    NOT_A_MEMBER,
    find_binding_conflicts,
    parse_rank_range,
    reconcile_roles,
    update_member_roles,
)
from tests.fakes import role_for
from src.services.roblox.models import GroupMember


GUILD = "42"
ROLE_A, ROLE_B, ROLE_C, ROLE_D = 11, 22, 33, 44


def binding(role, low, high, remove=(), guild=GUILD):
    return RoleBinding(
        guild_id=guild,
        discord_role_id=str(role),
        min_rank_id=low,
        max_rank_id=high,
        roles_to_remove=[str(r) for r in remove],
    )


def test_removal_list_wins_over_grant():
    bindings = [binding(ROLE_A, 5, 5), binding(ROLE_B, 1, 10, remove=[ROLE_A])]
    delta = reconcile_roles(GUILD, {ROLE_A}, 5, bindings)
    assert delta.to_add == {ROLE_B}
    assert delta.to_remove == {ROLE_A}


def test_removal_list_applies_when_role_not_granted():
    bindings = [binding(ROLE_A, 5, 5), binding(ROLE_B, 1, 10, remove=[ROLE_A])]
    delta = reconcile_roles(GUILD, {ROLE_A}, 6, bindings)
    assert delta.to_add == {ROLE_B}
    assert delta.to_remove == {ROLE_A}


def test_stale_bound_roles_removed_unbound_roles_kept():
    bindings = [binding(ROLE_A, 1, 4), binding(ROLE_B, 5, 10)]
    delta = reconcile_roles(GUILD, {ROLE_A, ROLE_D}, 7, bindings)
    assert delta.to_add == {ROLE_B}
    assert delta.to_remove == {ROLE_A}


def test_other_guild_bindings_ignored():
    bindings = [binding(ROLE_A, 1, 10, guild="99"), binding(ROLE_B, 1, 10)]
    delta = reconcile_roles(GUILD, {ROLE_A}, 3, bindings)
    assert delta.to_add == {ROLE_B}
    assert delta.to_remove == set()


def test_add_and_remove_are_disjoint():
    bindings = [
        binding(ROLE_A, 1, 10, remove=[ROLE_B]),
        binding(ROLE_B, 1, 10, remove=[ROLE_A]),
        binding(ROLE_C, 1, 10, remove=[ROLE_C]),
    ]
    delta = reconcile_roles(GUILD, {ROLE_A, ROLE_B, ROLE_C}, 5, bindings)
    assert delta.to_add.isdisjoint(delta.to_remove)
    assert delta.to_add == set()
    assert delta.to_remove == {ROLE_A, ROLE_B, ROLE_C}


@pytest.mark.parametrize("rank", [0, 1, 5, 6, 10, 11, 255])
@pytest.mark.parametrize("start_roles", [set(), {ROLE_A}, {ROLE_A, ROLE_B, ROLE_C, ROLE_D}])
def test_second_pass_reaches_fixed_point(rank, start_roles):
    bindings = [
        binding(ROLE_A, 5, 5),
        binding(ROLE_B, 1, 10, remove=[ROLE_A]),
        binding(ROLE_C, 6, 255, remove=[ROLE_D]),
    ]
    first = reconcile_roles(GUILD, start_roles, rank, bindings)
    after = (set(start_roles) | first.to_add) - first.to_remove
    second = reconcile_roles(GUILD, after, rank, bindings)
    assert second.is_empty


def test_conflicting_bindings_reported():
    bindings = [binding(ROLE_A, 5, 5), binding(ROLE_B, 1, 10, remove=[ROLE_A]), binding(ROLE_C, 20, 30, remove=[ROLE_A])]
    assert find_binding_conflicts(bindings) == [(str(ROLE_A), str(ROLE_B))]


@pytest.mark.parametrize("text,expected", [("5", (5, 5)), ("1-255", (1, 255)), (" 3 - 7 ", (3, 7))])
def test_parse_rank_range(text, expected):
    assert parse_rank_range(text) == expected


@pytest.mark.parametrize("text", ["", "abc", "10-5", "0-256", "-3"])
def test_parse_rank_range_rejects_bad_input(text):
    with pytest.raises(ValueError):
        parse_rank_range(text)


# =============================================================================
# Applying to a member
# =============================================================================

def make_member(role_ids):
    roles = {rid: SimpleNamespace(id=rid, name=f"role{rid}") for rid in (ROLE_A, ROLE_B, ROLE_C, ROLE_D)}
    guild = SimpleNamespace(id=int(GUILD), get_role=roles.get)
    return SimpleNamespace(
        id=1,
        guild=guild,
        roles=[roles[r] for r in role_ids],
        add_roles=AsyncMock(),
        remove_roles=AsyncMock(),
    )


async def test_not_in_group_makes_no_changes():
    member = make_member({ROLE_A})
    result = await update_member_roles(member, None, [binding(ROLE_B, 1, 10)])
    assert result.error == NOT_A_MEMBER
    member.add_roles.assert_not_awaited()
    member.remove_roles.assert_not_awaited()


async def test_failed_add_does_not_block_remove():
    member = make_member({ROLE_A})
    response = SimpleNamespace(status=403, reason="Forbidden")
    member.add_roles.side_effect = discord.Forbidden(response, "Missing Permissions")
    roblox_member = GroupMember(user_id=7, username="user7", role=role_for(10))

    result = await update_member_roles(member, roblox_member, [binding(ROLE_A, 1, 4), binding(ROLE_B, 5, 10)])

    member.remove_roles.assert_awaited_once()
    assert result.removed == [ROLE_A]
    assert result.added == []
    assert not result.success

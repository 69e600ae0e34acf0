"""Tests for the SQLite store."""

import pytest

from src.services.database import BotDatabase


# =============================================================================
# Users & XP
# =============================================================================

def test_add_xp_creates_user_and_logs(db):
    assert db.find_user("100") is None

    total = db.add_xp("100", 25, reason="raid", actor_id=9)

    assert total == 25
    assert db.find_user("100").xp == 25
    (log,) = db.get_xp_logs("100")
    assert (log.amount, log.reason, log.actor_id) == (25, "raid", "9")


def test_xp_never_drops_below_zero(db):
    db.add_xp("100", 10)
    assert db.add_xp("100", -50, reason="penalty") == 0
    newest = db.get_xp_logs("100")[0]
    assert newest.amount == -10


def test_users_listed_in_insertion_order(db):
    for roblox_id in ("3", "1", "2"):
        db.add_xp(roblox_id, 0)
    assert [u.roblox_id for u in db.get_all_users()] == ["3", "1", "2"]


def test_update_user_rejects_unknown_fields(db):
    db.add_xp("100", 0)
    with pytest.raises(ValueError):
        db.update_user("100", roblox_id="200")
    with pytest.raises(ValueError):
        db.update_user("100", raids=-1)


def test_update_user(db):
    db.add_xp("100", 0)
    user = db.update_user("100", raids=3, is_banned=True)
    assert user.raids == 3
    assert user.is_banned is True
    assert db.find_user("100").raids == 3
    assert db.update_user("missing", raids=1) is None


def test_record_event_bumps_counter(db):
    db.add_xp("100", 10)
    user = db.record_event("100", "raid")
    assert user.raids == 1
    assert user.last_raid is not None
    assert db.record_event("100", "raid").raids == 2
    assert db.record_event("missing", "raid") is None
    with pytest.raises(ValueError):
        db.record_event("100", "party")


def test_reset_is_logged_separately(db):
    db.add_xp("100", 30)
    db.update_user("100", xp=0, raids=0)
    db.log_xp_change("100", -30, "Stats reset", "9")
    assert db.find_user("100").xp == 0
    assert [log.amount for log in db.get_xp_logs("100")] == [-30, 30]


def test_safe_delete_removes_logs(db):
    db.add_xp("100", 5)
    db.add_xp("100", 5)

    assert db.safe_delete_user("100")
    assert db.find_user("100") is None
    assert db.get_xp_logs("100") == []
    assert not db.safe_delete_user("100")


async def test_async_wrappers(db):
    await db.add_xp_async("100", 40)
    users = await db.get_all_users_async()
    assert [(u.roblox_id, u.xp) for u in users] == [("100", 40)]


def test_data_survives_reopen(tmp_path):
    path = str(tmp_path / "persist.db")
    first = BotDatabase(path)
    first.add_xp("100", 12)
    first.close()

    second = BotDatabase(path)
    try:
        assert second.find_user("100").xp == 12
    finally:
        second.close()


# =============================================================================
# Role Bindings
# =============================================================================

def test_binding_with_inverted_range_rejected(db):
    with pytest.raises(ValueError):
        db.upsert_role_binding("1", "11", 10, 5)
    with pytest.raises(ValueError):
        db.upsert_role_binding("1", "11", 0, 300)
    assert db.get_role_bindings("1") == []


def test_binding_upsert_replaces(db):
    db.upsert_role_binding("1", "11", 1, 5, roles_to_remove=["22"])
    db.upsert_role_binding("1", "11", 6, 10)

    (binding,) = db.get_role_bindings("1")
    assert (binding.min_rank_id, binding.max_rank_id) == (6, 10)
    assert binding.roles_to_remove == []


def test_bindings_scoped_to_guild(db):
    db.upsert_role_binding("1", "11", 1, 5, roles_to_remove=[22, 33])
    db.upsert_role_binding("2", "11", 1, 5)

    (binding,) = db.get_role_bindings("1")
    assert binding.roles_to_remove == ["22", "33"]
    assert db.remove_role_binding("2", "11")
    assert not db.remove_role_binding("2", "11")
    assert len(db.get_role_bindings("1")) == 1


# =============================================================================
# Links & Settings
# =============================================================================

def test_link_and_unlink(db):
    db.link_account("500", "100")
    db.link_account("501", "100")

    assert db.get_link("500").roblox_id == "100"
    assert sorted(db.get_discord_ids_for_roblox("100")) == ["500", "501"]
    assert db.find_user("100") is not None

    db.link_account("500", "200")
    assert db.get_discord_ids_for_roblox("100") == ["501"]

    assert db.unlink_account("501")
    assert db.get_link("501") is None
    assert not db.unlink_account("501")


def test_guild_settings_defaults_and_update(db):
    settings = db.get_guild_settings("1")
    assert settings.nickname_format == "{robloxUsername}"

    db.set_nickname_format("1", "[{rankName}] {robloxUsername}")
    assert db.get_guild_settings("1").nickname_format == "[{rankName}] {robloxUsername}"
    assert db.get_guild_settings("2").nickname_format == "{robloxUsername}"

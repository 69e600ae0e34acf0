"""Tests for embed builders and nickname templates."""

from src.models import PendingPromotion, RankTableEntry
from src.services.database.models import UserRecord, XpLogEntry
from src.services.ranking.embeds import (
    DESCRIPTION_LIMIT,
    NO_PROMOTIONS_TEXT,
    build_promotion_embed,
    build_xp_embed,
)
from src.services.ranking.member_sync import NICKNAME_LIMIT, format_nickname


def promotion(index: int) -> PendingPromotion:
    return PendingPromotion(
        roblox_id=str(1000 + index),
        name=f"soldier_{index:04d}",
        current_rank="Private",
        new_rank="Sergeant",
        role_id=1010,
    )


def test_empty_list_placeholder():
    embed = build_promotion_embed([])
    assert embed.description == NO_PROMOTIONS_TEXT
    assert not embed.fields


def test_lists_each_promotion():
    embed = build_promotion_embed([promotion(1), promotion(2)])
    lines = embed.description.splitlines()
    assert len(lines) == 2
    assert "soldier_0001" in lines[0]
    assert "Private → Sergeant" in lines[0]
    assert "users/1001/profile" in lines[0]
    assert embed.fields[0].value == "2"


def test_long_list_is_truncated():
    pending = [promotion(i) for i in range(200)]
    embed = build_promotion_embed(pending)
    assert len(embed.description) <= DESCRIPTION_LIMIT + 40
    assert embed.description.splitlines()[-1].startswith("...and ")
    assert embed.fields[0].value == "200"


def test_nickname_placeholders():
    nickname = format_nickname(
        "[{rankName}] {robloxUsername}",
        "builder",
        55,
        discord_name="disc",
        rank_name="Sgt",
    )
    assert nickname == "[Sgt] builder"
    assert format_nickname("{robloxDisplayName} ({robloxId})", "builder", 55, display_name="Bob") == "Bob (55)"
    assert format_nickname("{robloxDisplayName}", "builder", 55) == "builder"


def test_nickname_clipped_to_discord_limit():
    nickname = format_nickname("{robloxUsername} {rankName}", "a" * 20, 1, rank_name="b" * 20)
    assert len(nickname) == NICKNAME_LIMIT


def test_blank_template_falls_back_to_username():
    assert format_nickname("  ", "builder", 1) == "builder"


def test_xp_embed_shows_recent_changes():
    record = UserRecord(roblox_id="1001", xp=70, raids=2)
    history = [
        XpLogEntry(id=2, roblox_id="1001", amount=-10, reason=None, actor_id="9", timestamp="t2"),
        XpLogEntry(id=1, roblox_id="1001", amount=80, reason="Attended raid", actor_id="9", timestamp="t1"),
    ]
    embed = build_xp_embed("soldier", record, "Private", RankTableEntry(rank=10, xp=100), "Sergeant", history)

    fields = {field.name: field.value for field in embed.fields}
    assert fields["XP"] == "70"
    assert fields["Next Rank"] == "Sergeant at 100 XP (30 to go)"
    assert fields["Recent Changes"].splitlines() == ["`-10` No reason", "`+80` Attended raid"]

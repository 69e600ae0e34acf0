"""Tests for the promotion scan / render / execute cycle."""

import asyncio
import json

import pytest

from src.services.database.models import UserRecord
from src.services.ranking.embeds import NO_PROMOTIONS_TEXT, PROMOTIONS_TITLE
from src.services.ranking.promotion import PromotionService
from src.services.roblox.group import GroupDirectory
from tests.fakes import FakeDirectory, FakeStore, PayloadClient, membership, transient_error


def users(*pairs):
    return [UserRecord(roblox_id=str(uid), xp=xp) for uid, xp in pairs]


@pytest.fixture
def make_service(rank_table, channel, audit):
    def factory(directory, records, provide_channel=True, user_timeout=1.0):
        async def channel_provider():
            return channel if provide_channel else None

        return PromotionService(
            directory=directory,
            store=FakeStore(records),
            rank_table=rank_table,
            channel_provider=channel_provider,
            audit=audit,
            user_timeout=user_timeout,
            view_factory=lambda count: None,
        )
    return factory


# =============================================================================
# Scan
# =============================================================================

async def test_scan_collects_eligible_users(make_service):
    directory = FakeDirectory({1: 2, 2: 1, 3: 10})
    service = make_service(directory, users((1, 150), (2, 50), (3, 500)))

    pending = await service.check_for_promotions()

    assert [(p.roblox_id, p.new_rank) for p in pending] == [("1", "Sergeant"), ("2", "Corporal")]
    assert pending[0].current_rank == "Private"
    assert pending[0].role_id == 1010
    assert service.last_scan_stats == {"users": 3, "eligible": 2, "skipped": 1, "failed": 0}


async def test_one_failing_lookup_does_not_abort_scan(make_service):
    directory = FakeDirectory({1: 2, 2: 1, 4: 2})
    directory.lookup_errors[3] = transient_error()
    service = make_service(directory, users((1, 150), (2, 50), (3, 999), (4, 100)))

    pending = await service.check_for_promotions()

    assert [p.roblox_id for p in pending] == ["1", "2", "4"]
    assert service.last_scan_stats["failed"] == 1


async def test_slow_lookup_times_out_and_is_skipped(make_service):
    directory = FakeDirectory({1: 2, 2: 2, 3: 2})
    directory.lookup_delay[2] = 5.0
    service = make_service(directory, users((1, 150), (2, 150), (3, 150)), user_timeout=0.05)

    pending = await service.check_for_promotions()

    assert [p.roblox_id for p in pending] == ["1", "3"]
    assert service.last_scan_stats["failed"] == 1


async def test_malformed_roblox_payloads_only_drop_that_user(make_service):
    client = PayloadClient({
        1: membership(1, 2),
        2: membership(2, 1),
        3: {"data": [{"group": {"id": 9}, "role": {"name": "Private", "rank": 2}}]},
        4: membership(4, 2),
        5: json.JSONDecodeError("Expecting value", "<html>", 0),
    })
    directory = GroupDirectory(client, group_id=9)
    await directory.initialize()
    service = make_service(directory, users((1, 150), (2, 50), (3, 999), (4, 100), (5, 999)))

    pending = await service.check_for_promotions()

    assert [p.roblox_id for p in pending] == ["1", "2", "4"]
    assert service.last_scan_stats["failed"] == 2


async def test_malformed_records_are_skipped(make_service):
    directory = FakeDirectory({1: 2})
    records = [UserRecord(roblox_id="not-a-number", xp=100), *users((1, 150))]
    service = make_service(directory, records)

    pending = await service.check_for_promotions()

    assert [p.roblox_id for p in pending] == ["1"]
    assert service.last_scan_stats["failed"] == 1


async def test_users_outside_group_are_not_eligible(make_service):
    service = make_service(FakeDirectory({}), users((1, 1000)))
    assert await service.check_for_promotions() == []
    assert service.last_scan_stats["skipped"] == 1


async def test_scan_skipped_while_group_not_ready_keeps_previous_list(make_service, channel):
    directory = FakeDirectory({1: 2})
    service = make_service(directory, users((1, 150)))
    await service.check_for_promotions()
    sends_before = len(channel.sent)

    directory.ready = False
    directory.ranks.clear()
    pending = await service.check_for_promotions()

    assert [p.roblox_id for p in pending] == ["1"]
    assert [p.roblox_id for p in service.pending_promotions] == ["1"]
    assert len(channel.sent) == sends_before
    assert channel.purges == 1


# =============================================================================
# Render
# =============================================================================

async def test_status_message_is_edited_in_place(make_service, channel):
    service = make_service(FakeDirectory({1: 2}), users((1, 150)))

    await service.check_for_promotions()
    first_id = service.last_message_id
    await service.check_for_promotions()

    assert len(channel.sent) == 1
    assert channel.edited and channel.edited[-1][0] == first_id
    assert service.last_message_id == first_id
    embed = channel.edited[-1][1]
    assert embed.title.endswith(PROMOTIONS_TITLE)


async def test_deleted_status_message_is_reposted(make_service, channel):
    service = make_service(FakeDirectory({1: 2}), users((1, 150)))
    await service.check_for_promotions()
    channel.existing.clear()

    await service.update_promotion_embed()

    assert len(channel.sent) == 2
    assert service.last_message_id == channel.sent[-1][0]


async def test_empty_list_renders_placeholder(make_service, channel):
    service = make_service(FakeDirectory({1: 10}), users((1, 150)))
    await service.check_for_promotions()
    assert NO_PROMOTIONS_TEXT in channel.sent[-1][1].description


async def test_missing_channel_is_not_an_error(make_service):
    service = make_service(FakeDirectory({1: 2}), users((1, 150)), provide_channel=False)
    pending = await service.check_for_promotions()
    assert len(pending) == 1
    assert service.last_message_id is None


# =============================================================================
# Execute
# =============================================================================

async def test_execute_counts_successes_and_failed_user_reappears(make_service, audit):
    directory = FakeDirectory({1: 2, 2: 2, 3: 1})
    service = make_service(directory, users((1, 150), (2, 150), (3, 50)))
    await service.check_for_promotions()
    directory.update_errors[2] = transient_error()

    promoted = await service.execute_promotions(initiator_id=77)

    assert promoted == 2
    assert directory.updates == [(1, 1010), (3, 1005)]
    assert service.pending_promotions == []
    assert [r[0] for r in audit.records] == ["XP Rankup", "XP Rankup"]

    # Still eligible, so the next scan lists them again; promoted users do not
    pending = await service.check_for_promotions()
    assert [p.roblox_id for p in pending] == ["2"]


async def test_execute_resets_status_message(make_service, channel):
    service = make_service(FakeDirectory({1: 2}), users((1, 150)))
    await service.check_for_promotions()
    first_id = service.last_message_id

    await service.execute_promotions(initiator_id=1)

    assert service.last_message_id != first_id
    assert NO_PROMOTIONS_TEXT in channel.sent[-1][1].description


async def test_concurrent_executes_promote_each_user_once(make_service):
    directory = FakeDirectory({1: 2, 2: 2, 3: 1})
    service = make_service(directory, users((1, 150), (2, 150), (3, 50)))
    await service.check_for_promotions()

    results = await asyncio.gather(
        service.execute_promotions(initiator_id=1),
        service.execute_promotions(initiator_id=2),
    )

    assert sorted(results) == [0, 3]
    promoted_ids = [user_id for user_id, _ in directory.updates]
    assert sorted(promoted_ids) == [1, 2, 3]


async def test_concurrent_batches_report_what_each_call_took(make_service):
    directory = FakeDirectory({1: 2, 2: 2, 3: 1})
    directory.update_errors[3] = transient_error()
    service = make_service(directory, users((1, 150), (2, 150), (3, 50)))
    await service.check_for_promotions()

    results = await asyncio.gather(
        service.execute_batch(initiator_id=1),
        service.execute_batch(initiator_id=2),
    )

    assert sorted(results) == [(0, 0), (3, 2)]


async def test_user_promoted_during_scan_is_not_listed_again(make_service):
    directory = FakeDirectory({1: 2, 2: 1})
    service = make_service(directory, users((1, 150), (2, 50)))
    await service.check_for_promotions()

    fired = False

    async def promote_mid_scan(user_id):
        nonlocal fired
        # User 1 has already been evaluated (still at its old rank) by now
        if user_id == 2 and not fired:
            fired = True
            await service.execute_promotions(initiator_id=5)

    directory.on_lookup = promote_mid_scan
    pending = await service.check_for_promotions()

    assert fired
    assert (1, 1010) in directory.updates
    assert [p.roblox_id for p in pending] == []

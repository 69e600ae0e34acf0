"""Tests for the promotion buttons and /promotions execute replies."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from src.commands.promotions import PromotionsCog
from src.core import config
from src.services.database.models import UserRecord
from src.services.ranking.promotion import PromotionService
from src.views import promotions as views
from tests.fakes import FakeDirectory, FakeStore, transient_error


RANKING_ROLE = 42
ADMIN_ROLE = 43


def staff_member(*role_ids: int) -> MagicMock:
    member = MagicMock(spec=discord.Member)
    member.id = 7
    member.name = "staff"
    member.guild_permissions.administrator = False
    member.roles = [SimpleNamespace(id=role_id) for role_id in role_ids]
    return member


def interaction_for(member) -> MagicMock:
    interaction = MagicMock()
    interaction.user = member
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


@pytest.fixture(autouse=True)
def staff_roles(monkeypatch):
    monkeypatch.setattr(config, "RANKING_ROLE_IDS", [RANKING_ROLE])
    monkeypatch.setattr(config, "ADMIN_ROLE_IDS", [ADMIN_ROLE])


@pytest.fixture
def service(rank_table, channel, audit, monkeypatch):
    async def channel_provider():
        return channel

    service = PromotionService(
        directory=FakeDirectory({1: 2, 2: 2}),
        store=FakeStore([UserRecord(roblox_id="1", xp=150), UserRecord(roblox_id="2", xp=150)]),
        rank_table=rank_table,
        channel_provider=channel_provider,
        audit=audit,
        view_factory=lambda count: None,
    )
    monkeypatch.setattr(views, "get_promotion_service", lambda: service)
    return service


async def test_ranking_staff_can_press_check(service):
    interaction = interaction_for(staff_member(RANKING_ROLE))

    await views.handle_check_promotions(interaction)

    interaction.response.send_message.assert_not_called()
    message = interaction.followup.send.call_args.args[0]
    assert message == "Promotion check complete: 2 user(s) eligible."


async def test_check_refused_without_staff_role(service):
    interaction = interaction_for(staff_member(99))

    await views.handle_check_promotions(interaction)

    assert "permission" in interaction.response.send_message.call_args.args[0]
    assert service.pending_promotions == []


async def test_promote_all_reports_executed_batch(service):
    await service.check_for_promotions()
    service.directory.update_errors[2] = transient_error()
    interaction = interaction_for(staff_member(RANKING_ROLE))

    await views.handle_promote_all(interaction)

    message = interaction.followup.send.call_args.args[0]
    assert message.startswith("Promoted 1 of 2 users.")
    assert service.pending_promotions == []


async def test_execute_after_another_executor_drained_the_list(service):
    await service.check_for_promotions()
    interaction = interaction_for(staff_member(RANKING_ROLE))

    async def other_executor_wins(*args, **kwargs):
        await service.execute_batch(initiator_id=99)

    interaction.response.defer.side_effect = other_executor_wins
    cog = PromotionsCog(SimpleNamespace(promotion_service=service))

    await PromotionsCog.execute.callback(cog, interaction)

    assert interaction.followup.send.call_args.args[0] == "These promotions were already executed."
    assert sorted(user_id for user_id, _ in service.directory.updates) == [1, 2]

"""
Test configuration for QBot.

Shared fixtures; the fakes themselves live in tests/fakes.py. Nothing here
touches the network.
"""

import os
import tempfile

import pytest

# Keep test runs from writing into ./logs
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="qbot-test-logs-"))

from src.models import RankTableEntry
from src.services.database import BotDatabase
from tests.fakes import FakeAudit, FakeChannel


@pytest.fixture
def rank_table() -> list[RankTableEntry]:
    return [RankTableEntry(rank=5, xp=40), RankTableEntry(rank=10, xp=100)]


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def audit() -> FakeAudit:
    return FakeAudit()


@pytest.fixture
def db(tmp_path):
    database = BotDatabase(str(tmp_path / "qbot.db"))
    yield database
    database.close()

"""
QBot - Database Module
======================

SQLite persistence for user XP, role bindings, account links and guild
settings.

Structure:
    - core.py: Connection management and schema
    - models.py: Row dataclasses
    - users.py: User records and XP logs
    - bindings.py: Role bindings
    - links.py: Account links and guild settings
"""

from typing import Optional

from src.core.config import DATABASE_PATH
from .core import DatabaseCore, DatabaseUnavailableError
from .models import GuildSettings, RoleBinding, UserLink, UserRecord, XpLogEntry
from .users import EVENT_TYPES, UsersMixin, VALID_USER_FIELDS
from .bindings import BindingsMixin
from .links import LinksMixin, GuildSettingsMixin


class BotDatabase(
    UsersMixin,
    BindingsMixin,
    LinksMixin,
    GuildSettingsMixin,
    DatabaseCore,
):
    """
    Complete database class combining all mixins.

    The order matters - DatabaseCore must be last so its __init__ runs.
    """
    pass


_db_instance: Optional[BotDatabase] = None


def get_db() -> BotDatabase:
    """Get the global database instance (singleton)."""
    global _db_instance
    if _db_instance is None:
        _db_instance = BotDatabase(DATABASE_PATH)
    return _db_instance


__all__ = [
    "BotDatabase",
    "get_db",
    "DatabaseCore",
    "DatabaseUnavailableError",
    "UserRecord",
    "XpLogEntry",
    "RoleBinding",
    "UserLink",
    "GuildSettings",
    "VALID_USER_FIELDS",
    "EVENT_TYPES",
]

"""
QBot - Account Links & Guild Settings Database Mixins
=====================================================

Discord <-> Roblox account links and per-guild settings.
"""

import asyncio
from typing import Optional

from src.services.database.models import GuildSettings, UserLink


class LinksMixin:
    """Mixin for Discord <-> Roblox account links."""

    def link_account(self, discord_id: str, roblox_id: str) -> None:
        """Link (or relink) a Discord user to a Roblox account."""
        with self._lock:
            conn = self._get_connection()
            conn.execute(
                """INSERT INTO user_links (discord_id, roblox_id) VALUES (?, ?)
                   ON CONFLICT(discord_id) DO UPDATE SET
                       roblox_id = excluded.roblox_id,
                       linked_at = CURRENT_TIMESTAMP""",
                (str(discord_id), str(roblox_id))
            )
            # First link creates the user record
            conn.execute("INSERT OR IGNORE INTO users (roblox_id) VALUES (?)", (str(roblox_id),))
            conn.commit()

    async def link_account_async(self, discord_id: str, roblox_id: str) -> None:
        await asyncio.to_thread(self.link_account, discord_id, roblox_id)

    def unlink_account(self, discord_id: str) -> bool:
        with self._lock:
            conn = self._get_connection()
            cursor = conn.execute("DELETE FROM user_links WHERE discord_id = ?", (str(discord_id),))
            conn.commit()
            return cursor.rowcount > 0

    async def unlink_account_async(self, discord_id: str) -> bool:
        return await asyncio.to_thread(self.unlink_account, discord_id)

    def get_link(self, discord_id: str) -> Optional[UserLink]:
        with self._lock:
            row = self._get_connection().execute(
                "SELECT discord_id, roblox_id, linked_at FROM user_links WHERE discord_id = ?",
                (str(discord_id),)
            ).fetchone()
        if not row:
            return None
        return UserLink(discord_id=row["discord_id"], roblox_id=row["roblox_id"], linked_at=row["linked_at"])

    async def get_link_async(self, discord_id: str) -> Optional[UserLink]:
        return await asyncio.to_thread(self.get_link, discord_id)

    def get_discord_ids_for_roblox(self, roblox_id: str) -> list[str]:
        with self._lock:
            rows = self._get_connection().execute(
                "SELECT discord_id FROM user_links WHERE roblox_id = ?", (str(roblox_id),)
            ).fetchall()
        return [row["discord_id"] for row in rows]

    async def get_discord_ids_for_roblox_async(self, roblox_id: str) -> list[str]:
        return await asyncio.to_thread(self.get_discord_ids_for_roblox, roblox_id)


class GuildSettingsMixin:
    """Mixin for per-guild settings."""

    def get_guild_settings(self, guild_id: str) -> GuildSettings:
        """Settings for a guild (defaults when never configured)."""
        with self._lock:
            row = self._get_connection().execute(
                "SELECT * FROM guild_settings WHERE guild_id = ?", (str(guild_id),)
            ).fetchone()
        if not row:
            return GuildSettings(guild_id=str(guild_id))
        return GuildSettings(
            guild_id=row["guild_id"],
            nickname_format=row["nickname_format"],
        )

    async def get_guild_settings_async(self, guild_id: str) -> GuildSettings:
        return await asyncio.to_thread(self.get_guild_settings, guild_id)

    def set_nickname_format(self, guild_id: str, nickname_format: str) -> None:
        with self._lock:
            conn = self._get_connection()
            conn.execute(
                """INSERT INTO guild_settings (guild_id, nickname_format) VALUES (?, ?)
                   ON CONFLICT(guild_id) DO UPDATE SET nickname_format = excluded.nickname_format""",
                (str(guild_id), nickname_format)
            )
            conn.commit()

    async def set_nickname_format_async(self, guild_id: str, nickname_format: str) -> None:
        await asyncio.to_thread(self.set_nickname_format, guild_id, nickname_format)


__all__ = ["LinksMixin", "GuildSettingsMixin"]

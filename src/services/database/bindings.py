"""
QBot - Role Bindings Database Mixin
===================================

Rank-range -> Discord role bindings, keyed by (guild_id, discord_role_id).
"""

import asyncio
import json
from typing import Iterable, Optional

from src.core.logger import logger
from src.services.database.models import RoleBinding


class BindingsMixin:
    """Mixin for role binding operations."""

    def upsert_role_binding(
        self,
        guild_id: str,
        discord_role_id: str,
        min_rank_id: int,
        max_rank_id: int,
        roblox_rank_name: str = "",
        roles_to_remove: Optional[Iterable[str]] = None,
    ) -> RoleBinding:
        """
        Create or replace the binding for a Discord role.

        Raises:
            ValueError: If the rank range is empty or outside 0-255.
        """
        if min_rank_id > max_rank_id:
            raise ValueError(f"min rank {min_rank_id} is greater than max rank {max_rank_id}")
        if min_rank_id < 0 or max_rank_id > 255:
            raise ValueError("rank ids must be within 0-255")

        binding = RoleBinding(
            guild_id=str(guild_id),
            discord_role_id=str(discord_role_id),
            min_rank_id=min_rank_id,
            max_rank_id=max_rank_id,
            roblox_rank_name=roblox_rank_name,
            roles_to_remove=[str(r) for r in (roles_to_remove or [])],
        )

        with self._lock:
            conn = self._get_connection()
            conn.execute(
                """INSERT INTO role_bindings
                       (guild_id, discord_role_id, min_rank_id, max_rank_id, roblox_rank_name, roles_to_remove)
                   VALUES (?, ?, ?, ?, ?, ?)
                   ON CONFLICT(guild_id, discord_role_id) DO UPDATE SET
                       min_rank_id = excluded.min_rank_id,
                       max_rank_id = excluded.max_rank_id,
                       roblox_rank_name = excluded.roblox_rank_name,
                       roles_to_remove = excluded.roles_to_remove""",
                (
                    binding.guild_id,
                    binding.discord_role_id,
                    binding.min_rank_id,
                    binding.max_rank_id,
                    binding.roblox_rank_name,
                    json.dumps(binding.roles_to_remove),
                )
            )
            conn.commit()

        logger.tree("Role Binding Saved", [
            ("Guild", binding.guild_id),
            ("Role", binding.discord_role_id),
            ("Ranks", binding.range_label),
            ("Removes", len(binding.roles_to_remove)),
        ], emoji="🔗")
        return binding

    async def upsert_role_binding_async(
        self,
        guild_id: str,
        discord_role_id: str,
        min_rank_id: int,
        max_rank_id: int,
        roblox_rank_name: str = "",
        roles_to_remove: Optional[Iterable[str]] = None,
    ) -> RoleBinding:
        return await asyncio.to_thread(
            self.upsert_role_binding,
            guild_id, discord_role_id, min_rank_id, max_rank_id, roblox_rank_name,
            list(roles_to_remove or []),
        )

    def remove_role_binding(self, guild_id: str, discord_role_id: str) -> bool:
        with self._lock:
            conn = self._get_connection()
            cursor = conn.execute(
                "DELETE FROM role_bindings WHERE guild_id = ? AND discord_role_id = ?",
                (str(guild_id), str(discord_role_id))
            )
            conn.commit()
            return cursor.rowcount > 0

    async def remove_role_binding_async(self, guild_id: str, discord_role_id: str) -> bool:
        return await asyncio.to_thread(self.remove_role_binding, guild_id, discord_role_id)

    def get_role_bindings(self, guild_id: str) -> list[RoleBinding]:
        with self._lock:
            cursor = self._get_connection().execute(
                "SELECT * FROM role_bindings WHERE guild_id = ? ORDER BY min_rank_id, discord_role_id",
                (str(guild_id),)
            )
            return [RoleBinding.from_row(row) for row in cursor.fetchall()]

    async def get_role_bindings_async(self, guild_id: str) -> list[RoleBinding]:
        return await asyncio.to_thread(self.get_role_bindings, guild_id)


__all__ = ["BindingsMixin"]

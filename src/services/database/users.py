"""
QBot - Users Database Mixin
===========================

User records and XP logs.
"""

import asyncio
import sqlite3
from datetime import datetime, timezone
from typing import Any, Optional

from src.core.logger import logger
from src.services.database.models import UserRecord, XpLogEntry


# Columns callers may change through update_user()
VALID_USER_FIELDS = frozenset({
    "xp", "raids", "defenses", "scrims", "trainings",
    "last_activity", "last_raid", "last_defense", "last_scrim", "last_training",
    "suspended_until", "unsuspend_rank", "is_banned",
})

COUNTER_FIELDS = frozenset({"xp", "raids", "defenses", "scrims", "trainings"})

# Activity kinds counted by record_event()
EVENT_TYPES = ("raid", "defense", "scrim", "training")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class UsersMixin:
    """Mixin for user record and XP log operations."""

    # =========================================================================
    # Reads
    # =========================================================================

    def find_user(self, roblox_id: str) -> Optional[UserRecord]:
        with self._lock:
            cursor = self._get_connection().execute(
                "SELECT * FROM users WHERE roblox_id = ?", (str(roblox_id),)
            )
            row = cursor.fetchone()
            return UserRecord.from_row(row) if row else None

    async def find_user_async(self, roblox_id: str) -> Optional[UserRecord]:
        return await asyncio.to_thread(self.find_user, roblox_id)

    def get_all_users(self) -> list[UserRecord]:
        """Every user in insertion order (the order promotion scans walk)."""
        with self._lock:
            cursor = self._get_connection().execute("SELECT * FROM users ORDER BY rowid")
            return [UserRecord.from_row(row) for row in cursor.fetchall()]

    async def get_all_users_async(self) -> list[UserRecord]:
        return await asyncio.to_thread(self.get_all_users)

    def get_xp_logs(self, roblox_id: str, limit: int = 10) -> list[XpLogEntry]:
        """Most recent XP log entries for a user, newest first."""
        with self._lock:
            cursor = self._get_connection().execute(
                "SELECT * FROM xp_logs WHERE roblox_id = ? ORDER BY id DESC LIMIT ?",
                (str(roblox_id), limit)
            )
            return [XpLogEntry.from_row(row) for row in cursor.fetchall()]

    async def get_xp_logs_async(self, roblox_id: str, limit: int = 10) -> list[XpLogEntry]:
        return await asyncio.to_thread(self.get_xp_logs, roblox_id, limit)

    # =========================================================================
    # Writes
    # =========================================================================

    def update_user(self, roblox_id: str, /, **fields: Any) -> Optional[UserRecord]:
        """
        Update columns on an existing user.

        Raises:
            ValueError: For unknown columns or negative counters.

        Returns:
            The updated record, or None if the user does not exist.
        """
        unknown = set(fields) - VALID_USER_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {', '.join(sorted(unknown))}")
        for name in COUNTER_FIELDS & set(fields):
            if fields[name] is not None and int(fields[name]) < 0:
                raise ValueError(f"{name} cannot be negative")
        if not fields:
            return self.find_user(roblox_id)

        columns = ", ".join(f"{name} = ?" for name in fields)
        values = [int(v) if isinstance(v, bool) else v for v in fields.values()]

        with self._lock:
            conn = self._get_connection()
            cursor = conn.execute(
                f"UPDATE users SET {columns} WHERE roblox_id = ?",
                (*values, str(roblox_id))
            )
            conn.commit()
            if cursor.rowcount == 0:
                return None
            row = conn.execute("SELECT * FROM users WHERE roblox_id = ?", (str(roblox_id),)).fetchone()
            return UserRecord.from_row(row)

    async def update_user_async(self, roblox_id: str, /, **fields: Any) -> Optional[UserRecord]:
        return await asyncio.to_thread(lambda: self.update_user(roblox_id, **fields))

    def record_event(self, roblox_id: str, event: str) -> Optional[UserRecord]:
        """
        Count one attended event (raid, defense, scrim or training).

        Returns:
            The updated record, or None if the user does not exist.
        """
        if event not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event}")
        user = self.find_user(roblox_id)
        if user is None:
            return None
        counter = f"{event}s"
        return self.update_user(
            roblox_id,
            **{counter: getattr(user, counter) + 1, f"last_{event}": _now_iso()},
        )

    async def record_event_async(self, roblox_id: str, event: str) -> Optional[UserRecord]:
        return await asyncio.to_thread(self.record_event, roblox_id, event)

    def add_xp(
        self,
        roblox_id: str,
        amount: int,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> int:
        """
        Grant (or with a negative amount, deduct) XP.

        Creates the user on first grant, never lets XP drop below zero and
        writes an XP log row in the same transaction.

        Returns:
            The user's new XP total.
        """
        roblox_id = str(roblox_id)
        with self._lock:
            conn = self._get_connection()
            try:
                cursor = conn.cursor()
                cursor.execute("BEGIN IMMEDIATE")
                cursor.execute("INSERT OR IGNORE INTO users (roblox_id) VALUES (?)", (roblox_id,))
                cursor.execute("SELECT xp FROM users WHERE roblox_id = ?", (roblox_id,))
                current = cursor.fetchone()[0]
                new_xp = max(0, current + amount)
                applied = new_xp - current

                cursor.execute(
                    "UPDATE users SET xp = ?, last_activity = ? WHERE roblox_id = ?",
                    (new_xp, _now_iso(), roblox_id)
                )
                self._insert_xp_log(cursor, roblox_id, applied, reason, actor_id)
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise

        logger.tree("XP Updated", [
            ("Roblox ID", roblox_id),
            ("Change", f"{applied:+d}"),
            ("Total", new_xp),
            ("Reason", reason or "-"),
        ], emoji="⭐")
        return new_xp

    async def add_xp_async(
        self,
        roblox_id: str,
        amount: int,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> int:
        return await asyncio.to_thread(self.add_xp, roblox_id, amount, reason, actor_id)

    def log_xp_change(
        self,
        roblox_id: str,
        amount: int,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> None:
        """Record an XP change made outside add_xp (e.g. a stats reset)."""
        with self._lock:
            conn = self._get_connection()
            self._insert_xp_log(conn.cursor(), str(roblox_id), amount, reason, actor_id)
            conn.commit()

    async def log_xp_change_async(
        self,
        roblox_id: str,
        amount: int,
        reason: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> None:
        await asyncio.to_thread(self.log_xp_change, roblox_id, amount, reason, actor_id)

    def _insert_xp_log(
        self,
        cursor: sqlite3.Cursor,
        roblox_id: str,
        amount: int,
        reason: Optional[str],
        actor_id: Optional[str],
    ) -> None:
        cursor.execute(
            "INSERT INTO xp_logs (roblox_id, amount, reason, actor_id, timestamp) VALUES (?, ?, ?, ?, ?)",
            (roblox_id, amount, reason, str(actor_id) if actor_id is not None else None, _now_iso())
        )

    def safe_delete_user(self, roblox_id: str) -> bool:
        """
        Delete a user and their XP logs in one transaction.

        Returns:
            True if the user existed and was deleted.
        """
        with self._lock:
            conn = self._get_connection()
            try:
                cursor = conn.cursor()
                cursor.execute("BEGIN IMMEDIATE")
                cursor.execute("DELETE FROM xp_logs WHERE roblox_id = ?", (str(roblox_id),))
                logs_removed = cursor.rowcount
                cursor.execute("DELETE FROM users WHERE roblox_id = ?", (str(roblox_id),))
                deleted = cursor.rowcount > 0
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise

        if deleted:
            logger.tree("User Removed", [
                ("Roblox ID", roblox_id),
                ("XP Logs Removed", logs_removed),
            ], emoji="🗑️")
        return deleted

    async def safe_delete_user_async(self, roblox_id: str) -> bool:
        return await asyncio.to_thread(self.safe_delete_user, roblox_id)


__all__ = ["UsersMixin", "VALID_USER_FIELDS", "EVENT_TYPES"]

"""
QBot - Database Core
====================

Base database class with connection handling and schema.

Locking: one persistent WAL connection is shared by every
mixin and guarded by ``self._lock``; async callers go through the
``*_async`` wrappers which run the sync method in a worker thread.
"""

import sqlite3
import threading
from pathlib import Path
from typing import Optional

from src.core.config import DATABASE_TIMEOUT
from src.core.logger import logger


class DatabaseUnavailableError(Exception):
    """Raised when the SQLite connection cannot be (re)opened."""
    pass


class DatabaseCore:
    """
    Base database class with connection handling and schema management.

    Uses a persistent connection with WAL mode for better concurrency.
    Thread-safe via a threading lock for all operations.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str = "data/qbot.db") -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.Lock()
        self._connection: Optional[sqlite3.Connection] = None
        self._connect()
        self._init_database()

    # =========================================================================
    # Connection
    # =========================================================================

    def _connect(self) -> None:
        try:
            self._connection = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=DATABASE_TIMEOUT,
            )
        except sqlite3.Error as e:
            raise DatabaseUnavailableError(f"Cannot open {self.db_path}: {e}") from e

        self._connection.row_factory = sqlite3.Row
        self._connection.execute("PRAGMA journal_mode=WAL")
        self._connection.execute("PRAGMA foreign_keys=ON")
        self._connection.execute("PRAGMA synchronous=NORMAL")

        logger.tree("Database Connection Established", [
            ("Path", str(self.db_path)),
            ("Mode", "WAL"),
        ], emoji="🗄️")

    def _get_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            self._connect()
        return self._connection

    def close(self) -> None:
        """Close the database connection and checkpoint WAL."""
        with self._lock:
            if not self._connection:
                return
            try:
                self._connection.execute("PRAGMA wal_checkpoint(TRUNCATE)")
                self._connection.close()
                logger.tree("Database Connection Closed", [
                    ("WAL", "Checkpointed"),
                ], emoji="🗄️")
            except sqlite3.Error as e:
                logger.error("Database Checkpoint Failed", [("Error", str(e))])
                try:
                    self._connection.close()
                except sqlite3.Error:
                    pass
            finally:
                self._connection = None

    def health_check(self) -> bool:
        """Verify database connectivity."""
        with self._lock:
            try:
                self._get_connection().execute("SELECT 1").fetchone()
                return True
            except sqlite3.Error:
                return False

    # =========================================================================
    # Schema
    # =========================================================================

    def _init_database(self) -> None:
        """Create tables (idempotent) and record the schema version."""
        with self._lock:
            conn = self._get_connection()
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    version INTEGER NOT NULL DEFAULT 0,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            cursor.execute("SELECT version FROM schema_version WHERE id = 1")
            row = cursor.fetchone()
            current_version = row[0] if row else 0

            self._create_base_tables(cursor)

            if current_version < self.SCHEMA_VERSION:
                cursor.execute(
                    "INSERT OR REPLACE INTO schema_version (id, version) VALUES (1, ?)",
                    (self.SCHEMA_VERSION,)
                )
                logger.tree("Database Schema Ready", [
                    ("From Version", str(current_version)),
                    ("To Version", str(self.SCHEMA_VERSION)),
                ], emoji="🗳️")

            conn.commit()

    def _create_base_tables(self, cursor: sqlite3.Cursor) -> None:
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                roblox_id TEXT PRIMARY KEY,
                xp INTEGER NOT NULL DEFAULT 0 CHECK (xp >= 0),
                raids INTEGER NOT NULL DEFAULT 0,
                defenses INTEGER NOT NULL DEFAULT 0,
                scrims INTEGER NOT NULL DEFAULT 0,
                trainings INTEGER NOT NULL DEFAULT 0,
                last_activity TEXT,
                last_raid TEXT,
                last_defense TEXT,
                last_scrim TEXT,
                last_training TEXT,
                suspended_until TEXT,
                unsuspend_rank INTEGER,
                is_banned INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS xp_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                roblox_id TEXT NOT NULL REFERENCES users(roblox_id),
                amount INTEGER NOT NULL,
                reason TEXT,
                actor_id TEXT,
                timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_xp_logs_user ON xp_logs(roblox_id)")

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS role_bindings (
                guild_id TEXT NOT NULL,
                discord_role_id TEXT NOT NULL,
                min_rank_id INTEGER NOT NULL,
                max_rank_id INTEGER NOT NULL,
                roblox_rank_name TEXT NOT NULL DEFAULT '',
                roles_to_remove TEXT NOT NULL DEFAULT '[]',
                PRIMARY KEY (guild_id, discord_role_id),
                CHECK (min_rank_id <= max_rank_id)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS user_links (
                discord_id TEXT PRIMARY KEY,
                roblox_id TEXT NOT NULL,
                linked_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_user_links_roblox ON user_links(roblox_id)")

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS guild_settings (
                guild_id TEXT PRIMARY KEY,
                nickname_format TEXT NOT NULL DEFAULT '{robloxUsername}'
            )
        """)


__all__ = [
    "DatabaseCore",
    "DatabaseUnavailableError",
]

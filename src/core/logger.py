"""
QBot - Logger
=============

Tree-style logger used by every module in the bot. Each entry is a titled
header followed by ``key: value`` branches, printed to the console and
appended to a daily log folder. Warnings and errors are mirrored into a
separate error file so failed rank updates are easy to audit.

Log Structure:
    logs/
    ├── 2026-10-16/
    │   ├── QBot-2026-10-16.log
    │   └── QBot-Errors-2026-10-16.log
    └── ...

The base directory defaults to ``./logs`` and can be moved with ``LOG_DIR``.
"""

import os
import re
import shutil
import uuid
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Tuple, Optional, Any


# =============================================================================
# Constants
# =============================================================================

LOG_RETENTION_DAYS = 7
LOG_FILE_PREFIX = "QBot"

EMOJI_PATTERN = re.compile(
    "["
    "\U0001F600-\U0001F64F"
    "\U0001F300-\U0001F5FF"
    "\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF"
    "\U00002702-\U000027B0"
    "\U0001F900-\U0001F9FF"
    "\U00002600-\U000026FF"
    "\U0001FA00-\U0001FAFF"
    "\U00002300-\U000023FF"
    "]+",
    flags=re.UNICODE
)


# =============================================================================
# Tree Symbols
# =============================================================================

class TreeSymbols:
    """Box-drawing characters for tree formatting."""
    BRANCH = "├─"
    LAST = "└─"
    PIPE = "│ "
    SPACE = "  "


# =============================================================================
# MiniTreeLogger
# =============================================================================

class MiniTreeLogger:
    """Console + file logger that renders every entry as a small tree."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self.run_id: str = str(uuid.uuid4())[:8]

        if base_dir is None:
            base_dir = Path(os.getenv("LOG_DIR", "logs"))
        self.logs_base_dir = Path(base_dir)
        self.logs_base_dir.mkdir(parents=True, exist_ok=True)

        self.current_date = ""
        self.log_file: Path = self.logs_base_dir / "pending.log"
        self.error_file: Path = self.logs_base_dir / "pending-errors.log"
        self._rotate_if_needed()

        self._cleanup_old_logs()
        self._append(self._banner(f"NEW SESSION - RUN ID: {self.run_id}"), to_error=True)

    # =========================================================================
    # Private Methods - Files
    # =========================================================================

    def _rotate_if_needed(self) -> None:
        """Switch to a new daily folder once the UTC date changes."""
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        if today == self.current_date:
            return

        rotating = bool(self.current_date)
        self.current_date = today
        day_dir = self.logs_base_dir / today
        day_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = day_dir / f"{LOG_FILE_PREFIX}-{today}.log"
        self.error_file = day_dir / f"{LOG_FILE_PREFIX}-Errors-{today}.log"

        if rotating:
            self._append(self._banner(f"LOG ROTATION - Continuing session {self.run_id}"), to_error=True)

    def _cleanup_old_logs(self) -> None:
        """Remove daily folders older than LOG_RETENTION_DAYS."""
        now = datetime.now(timezone.utc)
        deleted = 0
        try:
            for folder in self.logs_base_dir.iterdir():
                if not folder.is_dir():
                    continue
                try:
                    folder_date = datetime.strptime(folder.name, "%Y-%m-%d").replace(tzinfo=timezone.utc)
                except ValueError:
                    continue
                if (now - folder_date).days > LOG_RETENTION_DAYS:
                    shutil.rmtree(folder)
                    deleted += 1
        except OSError as e:
            print(f"[LOG CLEANUP ERROR] {e}")
            return

        if deleted:
            print(f"[LOG CLEANUP] Deleted {deleted} old log folders (>{LOG_RETENTION_DAYS} days)")

    def _banner(self, text: str) -> str:
        return f"\n{'=' * 60}\n{text}\n{self._get_timestamp()}\n{'=' * 60}\n"

    def _append(self, text: str, to_error: bool = False) -> None:
        """Append a line to the main log (and optionally the error log)."""
        try:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(f"{text}\n")
            if to_error:
                with open(self.error_file, "a", encoding="utf-8") as f:
                    f.write(f"{text}\n")
        except OSError:
            pass

    # =========================================================================
    # Private Methods - Formatting
    # =========================================================================

    def _get_timestamp(self) -> str:
        return datetime.now(timezone.utc).strftime("[%Y-%m-%d %H:%M:%S UTC]")

    def _strip_emojis(self, text: str) -> str:
        return EMOJI_PATTERN.sub("", text).strip()

    def _emit(self, title: str, emoji: str, items: List[Tuple[str, Any]], to_error: bool = False) -> None:
        """Render a titled tree to console and files."""
        self._rotate_if_needed()

        clean_title = self._strip_emojis(title)
        header = f"{self._get_timestamp()} {emoji} {clean_title}" if emoji else f"{self._get_timestamp()} {clean_title}"
        lines = [header]
        for i, (key, value) in enumerate(items):
            prefix = TreeSymbols.LAST if i == len(items) - 1 else TreeSymbols.BRANCH
            lines.append(f"  {prefix} {key}: {value}")
        lines.append("")

        for line in lines:
            print(line)
            self._append(line, to_error=to_error)

    # =========================================================================
    # Public Methods - Log Levels
    # =========================================================================

    def info(self, msg: str, details: Optional[List[Tuple[str, Any]]] = None) -> None:
        self._emit(msg, "ℹ️", details or [("Status", "OK")])

    def success(self, msg: str, details: Optional[List[Tuple[str, Any]]] = None) -> None:
        self._emit(msg, "✅", details or [("Status", "Complete")])

    def warning(self, msg: str, details: Optional[List[Tuple[str, Any]]] = None) -> None:
        """Log a warning (also written to the error log)."""
        self._emit(msg, "⚠️", details or [("Status", "Warning")], to_error=True)

    def error(self, msg: str, details: Optional[List[Tuple[str, Any]]] = None) -> None:
        """Log an error (also written to the error log)."""
        self._emit(msg, "❌", details or [("Status", "Failed")], to_error=True)

    def critical(self, msg: str, details: Optional[List[Tuple[str, Any]]] = None) -> None:
        """Log a fatal condition (also written to the error log)."""
        self._emit(msg, "🚨", details or [("Status", "Critical")], to_error=True)

    def debug(self, msg: str, details: Optional[List[Tuple[str, Any]]] = None) -> None:
        """Log a debug message (only if DEBUG env var is set)."""
        if os.getenv("DEBUG", "").lower() in ("1", "true", "yes"):
            self._emit(msg, "🔍", details or [("Status", "Debug")])

    def exception(self, msg: str, details: Optional[List[Tuple[str, Any]]] = None) -> None:
        """Log an error followed by the active traceback."""
        self._emit(msg, "💥", details or [("Status", "Exception")], to_error=True)
        self._append(traceback.format_exc(), to_error=True)

    # =========================================================================
    # Public Methods - Tree Formatting
    # =========================================================================

    def tree(
        self,
        title: str,
        items: List[Tuple[str, Any]],
        emoji: str = "📦"
    ) -> None:
        """
        Log structured data in tree format.

        Example output:
            [2026-10-16 12:00:00 UTC] 📦 Bot Ready
              ├─ Bot ID: 123456789
              ├─ Guilds: 1
              └─ Latency: 50ms
        """
        self._emit(title, emoji, items)

    def error_tree(
        self,
        title: str,
        error: Exception,
        context: Optional[List[Tuple[str, Any]]] = None
    ) -> None:
        """Log an exception's type and message together with extra context."""
        items: List[Tuple[str, Any]] = [
            ("Type", type(error).__name__),
            ("Message", str(error)[:200]),
        ]
        if context:
            items.extend(context)
        self._emit(title, "❌", items, to_error=True)

    def rank_tree(
        self,
        action: str,
        username: str,
        roblox_id: str,
        old_rank: str,
        new_rank: str,
        extra: Optional[List[Tuple[str, Any]]] = None
    ) -> None:
        """
        Log a group rank change.

        Example output:
            [2026-10-16 12:00:00 UTC] 🎖️ XP Rankup
              ├─ User: builderman (156)
              ├─ From: Recruit
              └─ To: Private
        """
        items: List[Tuple[str, Any]] = [
            ("User", f"{username} ({roblox_id})"),
            ("From", old_rank),
            ("To", new_rank),
        ]
        if extra:
            items.extend(extra)
        self._emit(action, "🎖️", items)

    def startup_tree(
        self,
        bot_name: str,
        bot_id: int,
        guilds: int,
        latency: float,
        extra: Optional[List[Tuple[str, Any]]] = None
    ) -> None:
        items: List[Tuple[str, Any]] = [
            ("Bot ID", bot_id),
            ("Guilds", guilds),
            ("Latency", f"{latency:.0f}ms"),
            ("Run ID", self.run_id),
        ]
        if extra:
            items.extend(extra)
        self._emit(f"Bot Ready: {bot_name}", "🤖", items)


# =============================================================================
# Module Export
# =============================================================================

logger = MiniTreeLogger()

__all__ = ["logger", "MiniTreeLogger", "TreeSymbols"]

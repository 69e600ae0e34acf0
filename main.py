"""
QBot - Main Entry Point
=======================

Application entry point with single-instance enforcement and graceful startup.

This module handles:
- Single-instance lock acquisition (prevents duplicate bots)
- Environment configuration loading and validation
- Signal handling (SIGTERM/SIGHUP close the bot cleanly)
- Bot initialization and execution

Usage:
    python main.py

Environment Variables:
    DISCORD_TOKEN: Required. Discord bot authentication token.
    ROBLOX_COOKIE: Required. .ROBLOSECURITY cookie of the ranking account.
    ROBLOX_GROUP_ID: Required. Group whose ranks are managed.
"""

import os
import sys
import fcntl
import signal
import asyncio
import tempfile
from pathlib import Path
from typing import NoReturn

# Load environment variables BEFORE importing local modules that read
# them at import time (config.py)
from dotenv import load_dotenv
load_dotenv()

from src.core.logger import logger
from src.core.config import ConfigValidationError, validate_and_log_config
from src.bot import QBot


LOCK_FILE_PATH = Path(os.getenv("QBOT_LOCK_FILE", str(Path(tempfile.gettempdir()) / "qbot.lock")))


# =============================================================================
# Single Instance Lock
# =============================================================================

def acquire_lock() -> int:
    """
    Take an exclusive flock on LOCK_FILE_PATH.

    The kernel releases the lock when the process dies, so a crashed
    instance never leaves a stale lock behind.

    Returns:
        File descriptor of the lock file (kept open for lock lifetime).

    Raises:
        SystemExit: If another instance is already running.
    """
    try:
        fd = os.open(str(LOCK_FILE_PATH), os.O_RDWR | os.O_CREAT, 0o644)
    except OSError as e:
        logger.error("Failed to Open Lock File", [
            ("Path", str(LOCK_FILE_PATH)),
            ("Error", str(e)),
        ])
        sys.exit(1)

    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError:
        _report_existing_instance(fd)
        os.close(fd)
        sys.exit(1)

    os.truncate(fd, 0)
    os.write(fd, str(os.getpid()).encode())
    logger.info("🔒 Lock Acquired Successfully", [
        ("PID", str(os.getpid())),
        ("Path", str(LOCK_FILE_PATH)),
    ])
    return fd


def _report_existing_instance(fd: int) -> None:
    try:
        os.lseek(fd, 0, os.SEEK_SET)
        existing_pid = os.read(fd, 100).decode().strip()
    except OSError as e:
        logger.error("🔒 Another Instance Already Running", [
            ("PID", "Could not read"),
            ("Error", str(e)),
        ])
        return

    logger.error("🔒 Another Instance Already Running", [
        ("Existing PID", existing_pid or "Unknown"),
    ])


# =============================================================================
# Configuration
# =============================================================================

def load_configuration() -> str:
    """
    Validate environment configuration.

    Returns:
        Discord bot token.

    Raises:
        SystemExit: If required configuration is missing or malformed.
    """
    try:
        validate_and_log_config()
    except ConfigValidationError as e:
        logger.error("Configuration Validation Failed", [
            ("Error", str(e)),
            ("Action", "Check your .env file"),
        ])
        sys.exit(1)

    return os.environ["DISCORD_TOKEN"]


# =============================================================================
# Run
# =============================================================================

def _install_signal_handlers(bot: QBot) -> None:
    """Close the bot from the event loop on SIGTERM / SIGHUP."""
    loop = asyncio.get_running_loop()

    def handle(sig: signal.Signals) -> None:
        logger.info("Signal Received", [
            ("Signal", sig.name),
            ("Action", "Initiating graceful shutdown"),
        ])
        asyncio.create_task(bot.close())

    for sig in (signal.SIGTERM, signal.SIGHUP):
        try:
            loop.add_signal_handler(sig, handle, sig)
        except (NotImplementedError, RuntimeError, ValueError) as e:
            logger.warning(f"Could not register {sig.name} handler", [
                ("Error", str(e)),
            ])


async def _run(token: str) -> None:
    bot = QBot()
    async with bot:
        _install_signal_handlers(bot)
        await bot.start(token)


def main() -> NoReturn:
    """
    Execution flow:
    1. Acquire single-instance lock
    2. Validate configuration
    3. Run the bot until it is closed
    """
    lock_fd = acquire_lock()
    token = load_configuration()

    logger.tree(
        "Starting QBot",
        [
            ("Purpose", "Discord <-> Roblox rank bridge"),
            ("Features", "XP promotions, role bindings, nickname sync"),
            ("PID", str(os.getpid())),
        ],
        emoji="🎖️",
    )

    exit_code = 0
    try:
        asyncio.run(_run(token))
    except KeyboardInterrupt:
        logger.info("🛑 Shutdown Requested", [
            ("By", "User (Ctrl+C)"),
        ])
    except Exception as e:
        logger.error("💥 Fatal Error During Bot Execution", [
            ("Error", str(e)),
        ])
        logger.exception("Full traceback:")
        exit_code = 1
    finally:
        try:
            os.close(lock_fd)
        except OSError:
            pass
        logger.info("🛑 Bot Shutdown Complete")

    sys.exit(exit_code)


if __name__ == "__main__":
    main()

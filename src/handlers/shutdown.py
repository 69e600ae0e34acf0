"""
QBot - Shutdown Handler
=======================

Graceful shutdown and cleanup logic.
"""

import asyncio
from typing import TYPE_CHECKING, Any, List, Tuple

from src.core.logger import logger

if TYPE_CHECKING:
    from src.bot import QBot


SHUTDOWN_TIMEOUT = 10.0  # Maximum seconds to wait for cleanup tasks


async def _safe_cleanup(name: str, cleanup_coro: Any) -> bool:
    """
    Run one cleanup coroutine, logging instead of raising.

    Returns:
        True if cleanup succeeded, False otherwise
    """
    try:
        await cleanup_coro
        logger.debug("Cleanup Complete", [
            ("Task", name),
        ])
        return True
    except asyncio.CancelledError:
        logger.debug("Cleanup Cancelled", [
            ("Task", name),
        ])
        return True
    except asyncio.TimeoutError:
        logger.warning("Cleanup Timed Out", [
            ("Task", name),
        ])
        return False
    except Exception as e:
        logger.warning("Cleanup Failed", [
            ("Task", name),
            ("Error Type", type(e).__name__),
            ("Error", str(e)),
        ])
        return False


async def shutdown_handler(bot: "QBot") -> None:
    """
    Stop the scheduler, close the Roblox session and the database.

    Each cleanup runs independently so one failure doesn't prevent the
    others.
    """
    logger.info("Shutting Down QBot", [
        ("Timeout", f"{SHUTDOWN_TIMEOUT}s"),
    ])

    cleanup_tasks: List[Tuple[str, Any]] = []

    if bot.promotion_scheduler is not None:
        cleanup_tasks.append(("Promotion Scheduler", bot.promotion_scheduler.stop()))

    if bot.roblox_client is not None:
        cleanup_tasks.append(("Roblox Client", bot.roblox_client.close()))

    if bot.db is not None:
        cleanup_tasks.append(("Database", _close_database(bot.db)))

    if cleanup_tasks:
        try:
            async with asyncio.timeout(SHUTDOWN_TIMEOUT):
                results = await asyncio.gather(
                    *[_safe_cleanup(name, coro) for name, coro in cleanup_tasks],
                    return_exceptions=True
                )

                successful = sum(1 for r in results if r is True)
                logger.info("Shutdown Cleanup Complete", [
                    ("Successful", str(successful)),
                    ("Failed", str(len(results) - successful)),
                ])

        except asyncio.TimeoutError:
            logger.warning("Shutdown Cleanup Timed Out", [
                ("Timeout", f"{SHUTDOWN_TIMEOUT}s"),
                ("Note", "Some tasks may not have completed"),
            ])
    else:
        logger.info("No Cleanup Tasks Required")

    logger.tree("Bot Shutdown Complete", [
        ("Status", "All services stopped"),
    ], emoji="👋")


async def _close_database(db: Any) -> None:
    """Close the database connection off the event loop."""
    await asyncio.to_thread(db.close)


__all__ = ["shutdown_handler"]

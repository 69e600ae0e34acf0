"""
QBot - Promotion Scheduler
==========================

Drives the promotion service on a timer.

States:
    WAITING_FOR_DEPENDENCY -> READY -> PERIODIC
    WAITING_FOR_DEPENDENCY -> FAILED

Startup waits (bounded) for the Roblox group, runs one scan, then keeps
two independent loops: a full scan every PROMOTION_CHECK_INTERVAL and an
embed refresh/purge every PROMOTION_REFRESH_INTERVAL. FAILED is terminal
for the scheduler only; the bot keeps running.
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional

from src.core.logger import logger
from src.services.ranking.promotion import PromotionService


class SchedulerState(Enum):
    IDLE = "idle"
    WAITING_FOR_DEPENDENCY = "waiting_for_dependency"
    READY = "ready"
    PERIODIC = "periodic"
    FAILED = "failed"
    STOPPED = "stopped"


class PromotionScheduler:
    """Bounded startup wait followed by periodic scans and embed refreshes."""

    def __init__(
        self,
        service: PromotionService,
        dependency_ready: Callable[[], Awaitable[bool]],
        init_retries: int = 3,
        init_retry_delay: float = 10.0,
        check_interval: float = 86400.0,
        refresh_interval: float = 21600.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.service = service
        self.dependency_ready = dependency_ready
        self.init_retries = max(1, init_retries)
        self.init_retry_delay = init_retry_delay
        self.check_interval = check_interval
        self.refresh_interval = refresh_interval
        self._sleep = sleep

        self.state = SchedulerState.IDLE
        self._main_task: Optional[asyncio.Task] = None
        self._loop_tasks: list[asyncio.Task] = []

    @property
    def is_running(self) -> bool:
        tasks = [t for t in [self._main_task, *self._loop_tasks] if t is not None]
        return any(not t.done() for t in tasks)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        if self._main_task is not None and not self._main_task.done():
            logger.warning("Promotion Scheduler Already Running")
            return
        self._main_task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        tasks = [t for t in [self._main_task, *self._loop_tasks] if t is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._main_task = None
        self._loop_tasks = []
        if self.state != SchedulerState.FAILED:
            self.state = SchedulerState.STOPPED
        logger.info("Promotion Scheduler Stopped")

    async def _run(self) -> None:
        await self.initialize()
        if self.state != SchedulerState.READY:
            return
        self._loop_tasks = [
            asyncio.create_task(self._periodic("Promotion Check", self.check_interval, self.service.check_for_promotions)),
            asyncio.create_task(self._periodic("Promotion Embed Refresh", self.refresh_interval, self.service.update_promotion_embed)),
        ]
        self.state = SchedulerState.PERIODIC
        logger.success("Promotion Scheduler Started", [
            ("Check Every", f"{self.check_interval / 3600:.1f}h"),
            ("Refresh Every", f"{self.refresh_interval / 3600:.1f}h"),
        ])

    # =========================================================================
    # Startup
    # =========================================================================

    async def initialize(self) -> SchedulerState:
        """
        Wait for the Roblox group, then run the first scan.

        Returns:
            READY on success, FAILED once every attempt is used up.
        """
        self.state = SchedulerState.WAITING_FOR_DEPENDENCY

        for attempt in range(1, self.init_retries + 1):
            try:
                ready = await self.dependency_ready()
            except Exception as e:
                logger.error_tree("Promotion Dependency Check Errored", e, [
                    ("Attempt", f"{attempt}/{self.init_retries}"),
                ])
                ready = False

            if ready:
                break

            if attempt < self.init_retries:
                logger.warning("Roblox Group Not Ready", [
                    ("Attempt", f"{attempt}/{self.init_retries}"),
                    ("Next Try", f"{self.init_retry_delay:.0f}s"),
                ])
                await self._sleep(self.init_retry_delay)
        else:
            self.state = SchedulerState.FAILED
            logger.critical("Promotion Scheduler Gave Up", [
                ("Reason", "Roblox group never became ready"),
                ("Attempts", self.init_retries),
                ("Impact", "Automatic promotion checks disabled until restart"),
            ])
            return self.state

        self.state = SchedulerState.READY
        try:
            await self.service.check_for_promotions()
        except Exception as e:
            logger.error_tree("Initial Promotion Check Failed", e)
        return self.state

    # =========================================================================
    # Loops
    # =========================================================================

    async def _periodic(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[object]],
    ) -> None:
        """Run ``callback`` every ``interval`` seconds. Errors are logged and the loop continues."""
        while True:
            try:
                await self._sleep(interval)
                await callback()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error_tree(f"{name} Failed", e, [
                    ("Next Try", f"{interval / 3600:.1f}h"),
                ])


__all__ = ["SchedulerState", "PromotionScheduler"]

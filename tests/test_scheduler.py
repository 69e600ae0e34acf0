"""Tests for the promotion scheduler state machine."""

import asyncio

from src.services.ranking.scheduler import PromotionScheduler, SchedulerState


class RecordingService:
    def __init__(self, fail_checks: int = 0) -> None:
        self.checks = 0
        self.refreshes = 0
        self.fail_checks = fail_checks

    async def check_for_promotions(self):
        self.checks += 1
        if self.checks <= self.fail_checks:
            raise RuntimeError("scan exploded")
        return []

    async def update_promotion_embed(self):
        self.refreshes += 1


class FakeSleep:
    """Records requested delays; cancels the caller after ``limit`` calls."""

    def __init__(self, limit=None) -> None:
        self.delays: list[float] = []
        self.limit = limit

    async def __call__(self, delay: float) -> None:
        if self.limit is not None and len(self.delays) >= self.limit:
            raise asyncio.CancelledError
        self.delays.append(delay)


def readiness(*answers):
    calls = iter(answers)

    async def dependency_ready():
        answer = next(calls)
        if isinstance(answer, Exception):
            raise answer
        return answer
    return dependency_ready


async def test_gives_up_after_configured_attempts():
    sleep = FakeSleep()
    service = RecordingService()
    scheduler = PromotionScheduler(
        service, readiness(False, False, False), init_retries=3, init_retry_delay=10, sleep=sleep,
    )

    state = await scheduler.initialize()

    assert state == SchedulerState.FAILED
    assert sleep.delays == [10, 10]
    assert service.checks == 0


async def test_ready_runs_initial_check():
    sleep = FakeSleep()
    service = RecordingService()
    scheduler = PromotionScheduler(service, readiness(False, True), init_retries=3, init_retry_delay=5, sleep=sleep)

    assert await scheduler.initialize() == SchedulerState.READY
    assert sleep.delays == [5]
    assert service.checks == 1


async def test_dependency_error_counts_as_not_ready():
    service = RecordingService()
    scheduler = PromotionScheduler(
        service, readiness(RuntimeError("boom"), True), init_retries=2, sleep=FakeSleep(),
    )
    assert await scheduler.initialize() == SchedulerState.READY


async def test_failed_initial_check_still_ready():
    scheduler = PromotionScheduler(RecordingService(fail_checks=1), readiness(True), sleep=FakeSleep())
    assert await scheduler.initialize() == SchedulerState.READY


async def test_periodic_loop_survives_callback_errors():
    service = RecordingService(fail_checks=2)
    sleep = FakeSleep(limit=4)
    scheduler = PromotionScheduler(service, readiness(True), sleep=sleep)

    await scheduler._periodic("Promotion Check", 60, service.check_for_promotions)

    assert service.checks == 4
    assert sleep.delays == [60, 60, 60, 60]


async def test_start_and_stop_run_both_loops():
    service = RecordingService()
    gate = asyncio.Event()

    async def blocking_sleep(delay):
        await gate.wait()

    scheduler = PromotionScheduler(service, readiness(True), sleep=blocking_sleep)
    await scheduler.start()
    await scheduler._main_task

    assert scheduler.state == SchedulerState.PERIODIC
    assert len(scheduler._loop_tasks) == 2
    assert scheduler.is_running

    await scheduler.stop()
    assert scheduler.state == SchedulerState.STOPPED
    assert not scheduler.is_running


async def test_stop_keeps_failed_state():
    scheduler = PromotionScheduler(RecordingService(), readiness(False), init_retries=1, sleep=FakeSleep())
    await scheduler.start()
    await scheduler._main_task
    await scheduler.stop()
    assert scheduler.state == SchedulerState.FAILED

"""
Background Sync Job - keeps the internal store converged with providers.

Every cycle runs each sync task once, all concurrently, waits for every one
of them to settle, then logs one summary line. The next cycle is armed only
after that, so two cycles never overlap; the cadence drifts by however long
a cycle takes.

A failed task is retried once after a short delay. Consecutive failed cycles
are counted per task, and an alert is raised when a task reaches the
threshold. Nothing a task does can stop the next cycle from being scheduled.

Usage:
    import asyncio
    from clubsync.jobs.background_sync_job import start_background_sync_scheduler

    asyncio.create_task(start_background_sync_scheduler())
"""

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from clubsync.config import settings
from clubsync.infrastructure.observability.logging import get_logger, log_job_run
from clubsync.jobs.tracker import SchedulerTracker, scheduler_tracker
from clubsync.models.domain.sync_domain import SyncCycle, SyncTaskResult
from clubsync.repositories.sync_record_repository import PostgresRecordStore
from clubsync.sync.base import SyncConfigurationError, SyncTask
from clubsync.sync.tasks import build_sync_tasks

logger = get_logger(__name__)

JOB_NAME = "Background Sync"

AlertHook = Callable[[str, SyncTaskResult, int], Awaitable[None]]
CycleListener = Callable[[SyncCycle], Awaitable[None] | None]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(slots=True)
class SyncSchedulerState:
    """Everything the scheduler remembers between cycles."""

    cycle_count: int = 0
    is_running: bool = False
    consecutive_failures: dict[str, int] = field(default_factory=dict)
    last_cycle: SyncCycle | None = None


class BackgroundSyncScheduler:
    """
    Runs the sync task roster on a self-rescheduling timer.

    Args:
        tasks: Roster of sync tasks; names and domains must be unique.
        interval_seconds: Pause between the end of one cycle and the next.
        initial_delay_seconds: Pause before the first cycle.
        retry_delay_seconds: Pause before retrying a failed task once.
        alert_threshold: Consecutive failed cycles before alerting.
        alert_hook: Async notifier called as (task_name, result, failures).
        alert_timeout_seconds: Upper bound on one alert_hook call; a slower
            hook is cancelled so it cannot hold up the cycle.
        on_cycle_complete: Called with each finished SyncCycle.
        sleep: Awaitable sleep, replaceable for simulated time.
    """

    def __init__(
        self,
        tasks: Sequence[SyncTask],
        *,
        interval_seconds: float | None = None,
        initial_delay_seconds: float | None = None,
        retry_delay_seconds: float | None = None,
        alert_threshold: int | None = None,
        alert_timeout_seconds: float | None = None,
        alert_hook: AlertHook | None = None,
        on_cycle_complete: CycleListener | None = None,
        sleep: Sleep = asyncio.sleep,
        tracker: SchedulerTracker = scheduler_tracker,
    ):
        self._validate_roster(tasks)
        config = settings.get_sync_config()

        self.tasks = list(tasks)
        self.interval_seconds = (
            config["interval_seconds"] if interval_seconds is None else interval_seconds
        )
        self.initial_delay_seconds = (
            config["initial_delay_seconds"]
            if initial_delay_seconds is None
            else initial_delay_seconds
        )
        self.retry_delay_seconds = (
            config["retry_delay_seconds"] if retry_delay_seconds is None else retry_delay_seconds
        )
        self.alert_threshold = (
            config["alert_threshold"] if alert_threshold is None else alert_threshold
        )
        self.alert_timeout_seconds = (
            config["alert_timeout_seconds"]
            if alert_timeout_seconds is None
            else alert_timeout_seconds
        )
        self.alert_hook = alert_hook
        self.on_cycle_complete = on_cycle_complete
        self._sleep = sleep
        self.tracker = tracker
        self.state = SyncSchedulerState()

    @staticmethod
    def _validate_roster(tasks: Sequence[SyncTask]) -> None:
        names = [task.name for task in tasks]
        domains = [task.domain for task in tasks]
        if len(set(names)) != len(names):
            raise SyncConfigurationError(f"Duplicate sync task names: {names}")
        if len(set(domains)) != len(domains):
            raise SyncConfigurationError(f"Sync tasks must own disjoint domains: {domains}")

    async def run_once(self) -> SyncCycle | None:
        """
        Run a single cycle.

        Returns:
            The finished cycle, or None when a cycle is already in flight.
        """
        if self.state.is_running:
            logger.warning("Background sync cycle already running, skipping this trigger")
            return None

        self.state.is_running = True
        self.state.cycle_count += 1
        cycle = SyncCycle(number=self.state.cycle_count)
        start = time.perf_counter()

        try:
            results = await asyncio.gather(
                *(self._run_task_with_retry(task) for task in self.tasks),
                return_exceptions=True,
            )
            for task, result in zip(self.tasks, results, strict=True):
                if isinstance(result, BaseException):
                    if not isinstance(result, Exception):
                        raise result
                    result = SyncTaskResult.failure(f"{task.name} crashed: {result}")
                cycle.results[task.name] = result

            cycle.completed_at = datetime.now(UTC)
            self.state.last_cycle = cycle
            await self._report(cycle, time.perf_counter() - start)
            return cycle

        finally:
            self.state.is_running = False

    async def _run_task_with_retry(self, task: SyncTask) -> SyncTaskResult:
        result = await self._run_task(task)

        if result.ok:
            previous = self.state.consecutive_failures.get(task.name, 0)
            if previous:
                logger.info(
                    "Sync task recovered", task=task.name, consecutive_failures=previous
                )
            self.state.consecutive_failures[task.name] = 0
            return result

        logger.warning(
            "Sync task failed, retrying",
            task=task.name,
            error=result.error,
            retry_delay_seconds=self.retry_delay_seconds,
        )
        await self._sleep(self.retry_delay_seconds)
        result = await self._run_task(task)

        if result.ok:
            self.state.consecutive_failures[task.name] = 0
            logger.info("Sync task succeeded on retry", task=task.name)
            return result

        failures = self.state.consecutive_failures.get(task.name, 0) + 1
        self.state.consecutive_failures[task.name] = failures
        logger.error(
            "Sync task failed after retry",
            task=task.name,
            error=result.error,
            consecutive_failures=failures,
        )

        if failures >= self.alert_threshold:
            await self._alert(task.name, result, failures)
        return result

    @staticmethod
    async def _run_task(task: SyncTask) -> SyncTaskResult:
        # run() already converts failures into results; this guards broken subclasses
        try:
            return await task.run()
        except Exception as e:
            logger.error(
                "Sync task raised past its boundary",
                task=task.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return SyncTaskResult.failure(f"{task.name} sync failed: {e}")

    async def _alert(self, task_name: str, result: SyncTaskResult, failures: int) -> None:
        logger.error(
            "Sync failure alert",
            task=task_name,
            error=result.error,
            consecutive_failures=failures,
            alert=True,
        )
        if self.alert_hook is None:
            return
        try:
            await asyncio.wait_for(
                self.alert_hook(task_name, result, failures),
                timeout=self.alert_timeout_seconds,
            )
        except TimeoutError:
            logger.error(
                "Sync failure alert timed out",
                task=task_name,
                timeout_seconds=self.alert_timeout_seconds,
            )
        except Exception as e:
            logger.error("Failed to send sync failure alert", task=task_name, error=str(e))

    async def _report(self, cycle: SyncCycle, duration_seconds: float) -> None:
        logger.info(
            "Background sync cycle completed",
            cycle=cycle.number,
            summary=cycle.summary(),
            summary_line=cycle.summary_line(),
            failed_tasks=cycle.failed_tasks,
        )

        if self.on_cycle_complete is not None:
            outcome = self.on_cycle_complete(cycle)
            if inspect.isawaitable(outcome):
                await outcome

        log_job_run(
            JOB_NAME,
            success=True,
            duration_ms=duration_seconds * 1000,
            cycle=cycle.number,
            failed_tasks=len(cycle.failed_tasks),
        )
        self.tracker.record_run(JOB_NAME, True)

    async def _run_cycle_safely(self) -> SyncCycle | None:
        try:
            return await self.run_once()
        except Exception as e:
            logger.error(
                "Background sync cycle failed", error=str(e), error_type=type(e).__name__
            )
            self.tracker.record_run(JOB_NAME, False, str(e))
            return None

    async def run_forever(self, max_cycles: int | None = None) -> None:
        """
        Idle -> Running -> Idle loop. The timer is re-armed only after a cycle
        has fully settled and reported.

        Args:
            max_cycles: Stop after this many cycles (None runs until cancelled).
        """
        logger.info(
            "Background sync scheduler started",
            interval_seconds=self.interval_seconds,
            initial_delay_seconds=self.initial_delay_seconds,
            tasks=[task.name for task in self.tasks],
        )
        delay = self.initial_delay_seconds
        cycles = 0

        while max_cycles is None or cycles < max_cycles:
            try:
                await self._sleep(delay)
            except asyncio.CancelledError:
                logger.info("Background sync scheduler cancelled")
                raise

            await self._run_cycle_safely()
            cycles += 1
            delay = self.interval_seconds

    def get_job_status(self) -> dict:
        last_cycle = self.state.last_cycle
        return {
            "job_name": JOB_NAME,
            "is_running": self.state.is_running,
            "cycle_count": self.state.cycle_count,
            "interval_seconds": self.interval_seconds,
            "tasks": [task.name for task in self.tasks],
            "consecutive_failures": dict(self.state.consecutive_failures),
            "last_cycle": (
                {
                    "number": last_cycle.number,
                    "completed_at": (
                        last_cycle.completed_at.isoformat() if last_cycle.completed_at else None
                    ),
                    "summary": last_cycle.summary(),
                }
                if last_cycle
                else None
            ),
        }


async def start_background_sync_scheduler() -> None:
    """Build the full task roster against the Postgres store and run forever."""
    scheduler = BackgroundSyncScheduler(build_sync_tasks(PostgresRecordStore))
    await scheduler.run_forever()

"""
Maintenance Schedulers - wall-clock gated housekeeping.

Each scheduler wakes on a coarse timer (hourly by default), reads the wall
clock in the configured time zone, and runs its action only inside its
window. A period marker (calendar date for daily jobs, ISO week for weekly
ones) stops the action firing twice in the same period, however often the
check runs.

Schedule (MAINTENANCE_TIMEZONE, default America/Los_Angeles):
- Session cleanup: daily at 2 AM
- Webhook log cleanup: daily at 4 AM, 30 day retention
- Weekly cleanup: Sundays at 3 AM, purges removed sync records then sessions

Usage:
    import asyncio
    from clubsync.jobs.maintenance_job import start_session_cleanup_scheduler

    asyncio.create_task(start_session_cleanup_scheduler())
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from clubsync.config import settings
from clubsync.infrastructure.observability.logging import get_logger, log_job_run
from clubsync.jobs.tracker import SchedulerTracker, scheduler_tracker
from clubsync.repositories.maintenance_repository import MaintenanceRepository
from clubsync.repositories.sync_record_repository import purge_removed_records

logger = get_logger(__name__)

MaintenanceAction = Callable[[], Awaitable[dict | None]]


@dataclass(frozen=True, slots=True)
class MaintenanceWindow:
    """An hour of the day, optionally restricted to one weekday (Monday=0)."""

    hour: int
    weekday: int | None = None

    def __post_init__(self):
        if not 0 <= self.hour <= 23:
            raise ValueError(f"hour must be between 0 and 23, got {self.hour}")
        if self.weekday is not None and not 0 <= self.weekday <= 6:
            raise ValueError(f"weekday must be between 0 and 6, got {self.weekday}")

    @property
    def cadence(self) -> str:
        return "daily" if self.weekday is None else "weekly"

    def matches(self, now: datetime) -> bool:
        if now.hour != self.hour:
            return False
        return self.weekday is None or now.weekday() == self.weekday

    def period_marker(self, now: datetime) -> str:
        """Sortable id of the period containing now."""
        if self.weekday is None:
            return now.date().isoformat()
        iso = now.isocalendar()
        return f"{iso.year:04d}-W{iso.week:02d}"


@dataclass(slots=True)
class MaintenanceState:
    """Owned by one scheduler and updated only by check_maintenance_window."""

    last_run_marker: str | None = None
    runs: int = 0


def check_maintenance_window(
    window: MaintenanceWindow, state: MaintenanceState, now: datetime
) -> bool:
    """
    Decide whether the action is due, claiming the period if it is.

    Args:
        window: When the action may run.
        state: The scheduler's marker state; advanced when this returns True.
        now: Current time, already converted to the scheduler's time zone.
    """
    if not window.matches(now):
        return False

    marker = window.period_marker(now)
    if state.last_run_marker is not None and marker <= state.last_run_marker:
        return False

    state.last_run_marker = marker
    state.runs += 1
    return True


class MaintenanceScheduler:
    """
    Hourly wall-clock check around one maintenance action.

    Args:
        name: Job name used in logs and the run tracker.
        window: Hour (and weekday) the action belongs to.
        action: Coroutine function doing the work; may return a result dict.
        timezone: IANA zone the window is expressed in.
        check_interval_seconds: Time between window checks.
        clock: Returns the current aware datetime.
        sleep: Awaitable sleep, replaceable for simulated time.
    """

    def __init__(
        self,
        name: str,
        window: MaintenanceWindow,
        action: MaintenanceAction,
        *,
        timezone: str | None = None,
        check_interval_seconds: float | None = None,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        tracker: SchedulerTracker = scheduler_tracker,
    ):
        config = settings.get_maintenance_config()
        self.name = name
        self.window = window
        self.action = action
        self.tz = ZoneInfo(timezone or config["timezone"])
        self.check_interval_seconds = (
            config["check_interval_seconds"]
            if check_interval_seconds is None
            else check_interval_seconds
        )
        self._clock = clock or (lambda: datetime.now(UTC))
        self._sleep = sleep
        self.tracker = tracker
        self.state = MaintenanceState()

    def local_now(self) -> datetime:
        return self._clock().astimezone(self.tz)

    async def check_and_run(self) -> bool:
        """Run the action if the window is open and unclaimed. Never raises."""
        try:
            now = self.local_now()
            if not check_maintenance_window(self.window, self.state, now):
                return False
        except Exception as e:
            logger.error("Maintenance window check failed", job=self.name, error=str(e))
            return False

        logger.info(
            "Starting maintenance job",
            job=self.name,
            period=self.state.last_run_marker,
            local_time=now.isoformat(),
        )
        start = time.perf_counter()
        try:
            result = await self.action()
        except Exception as e:
            log_job_run(
                self.name,
                success=False,
                duration_ms=(time.perf_counter() - start) * 1000,
                error=str(e),
                error_type=type(e).__name__,
            )
            self.tracker.record_run(self.name, False, str(e))
            return True

        log_job_run(
            self.name,
            success=True,
            duration_ms=(time.perf_counter() - start) * 1000,
            result=result,
        )
        self.tracker.record_run(self.name, True)
        return True

    async def run_forever(self, max_checks: int | None = None) -> None:
        logger.info(
            "Maintenance scheduler started",
            job=self.name,
            hour=self.window.hour,
            weekday=self.window.weekday,
            cadence=self.window.cadence,
            timezone=str(self.tz),
            check_interval_seconds=self.check_interval_seconds,
        )
        checks = 0
        while True:
            await self.check_and_run()
            checks += 1
            if max_checks is not None and checks >= max_checks:
                break
            try:
                await self._sleep(self.check_interval_seconds)
            except asyncio.CancelledError:
                logger.info("Maintenance scheduler cancelled", job=self.name)
                raise

    def get_job_status(self) -> dict:
        return {
            "job_name": self.name,
            "hour": self.window.hour,
            "weekday": self.window.weekday,
            "timezone": str(self.tz),
            "last_run_marker": self.state.last_run_marker,
            "runs": self.state.runs,
        }


# =======================================================================
# ACTIONS
# =======================================================================


async def run_session_cleanup() -> dict:
    return {"sessions_deleted": await MaintenanceRepository.delete_expired_sessions()}


async def run_webhook_log_cleanup() -> dict:
    retention_days = settings.WEBHOOK_LOG_RETENTION_DAYS
    deleted = await MaintenanceRepository.delete_old_webhook_logs(retention_days)
    return {"webhook_logs_deleted": deleted, "retention_days": retention_days}


async def run_weekly_cleanup() -> dict:
    purged = await purge_removed_records(settings.SYNC_RECORD_RETENTION_DAYS)
    sessions = await MaintenanceRepository.delete_expired_sessions()
    return {"sync_records_purged": purged, "sessions_deleted": sessions}


def build_maintenance_schedulers() -> dict[str, MaintenanceScheduler]:
    config = settings.get_maintenance_config()
    return {
        "session_cleanup": MaintenanceScheduler(
            "Session Cleanup",
            MaintenanceWindow(hour=config["session_cleanup_hour"]),
            run_session_cleanup,
        ),
        "webhook_log_cleanup": MaintenanceScheduler(
            "Webhook Log Cleanup",
            MaintenanceWindow(hour=config["webhook_log_cleanup_hour"]),
            run_webhook_log_cleanup,
        ),
        "weekly_cleanup": MaintenanceScheduler(
            "Weekly Cleanup",
            MaintenanceWindow(
                hour=config["weekly_cleanup_hour"], weekday=config["weekly_cleanup_weekday"]
            ),
            run_weekly_cleanup,
        ),
    }


async def start_session_cleanup_scheduler() -> None:
    await build_maintenance_schedulers()["session_cleanup"].run_forever()


async def start_webhook_log_cleanup_scheduler() -> None:
    await build_maintenance_schedulers()["webhook_log_cleanup"].run_forever()


async def start_weekly_cleanup_scheduler() -> None:
    await build_maintenance_schedulers()["weekly_cleanup"].run_forever()

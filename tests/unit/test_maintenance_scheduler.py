from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from clubsync.jobs import maintenance_job
from clubsync.jobs.maintenance_job import (
    MaintenanceScheduler,
    MaintenanceState,
    MaintenanceWindow,
    build_maintenance_schedulers,
    check_maintenance_window,
)

TZ = "America/Los_Angeles"

# Sunday 2026-10-18 03:30 PDT
SUNDAY_0330_UTC = datetime(2026, 10, 18, 10, 30, tzinfo=UTC)


class WallClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now += timedelta(**delta)


def _scheduler(window, action, clock, tracker, **kwargs):
    return MaintenanceScheduler(
        "Test Cleanup",
        window,
        action,
        timezone=TZ,
        check_interval_seconds=3600,
        clock=clock,
        tracker=tracker,
        **kwargs,
    )


def test_window_validation():
    with pytest.raises(ValueError):
        MaintenanceWindow(hour=24)
    with pytest.raises(ValueError):
        MaintenanceWindow(hour=3, weekday=7)


def test_period_markers():
    local = SUNDAY_0330_UTC.astimezone(maintenance_job.ZoneInfo(TZ))

    assert MaintenanceWindow(hour=3).period_marker(local) == "2026-10-18"
    assert MaintenanceWindow(hour=3, weekday=6).period_marker(local) == "2026-W42"
    assert MaintenanceWindow(hour=3).cadence == "daily"
    assert MaintenanceWindow(hour=3, weekday=6).cadence == "weekly"


def test_daily_window_fires_once_per_day():
    window = MaintenanceWindow(hour=2)
    state = MaintenanceState()
    first = datetime(2026, 10, 18, 2, 0)

    assert check_maintenance_window(window, state, first)
    assert not check_maintenance_window(window, state, first + timedelta(minutes=30))
    assert not check_maintenance_window(window, state, first + timedelta(hours=1))
    assert check_maintenance_window(window, state, first + timedelta(days=1))
    assert state.runs == 2
    assert state.last_run_marker == "2026-10-19"


def test_weekly_window_fires_once_per_iso_week():
    window = MaintenanceWindow(hour=3, weekday=6)
    state = MaintenanceState()
    sunday = datetime(2026, 10, 18, 3, 0)

    assert check_maintenance_window(window, state, sunday)
    assert not check_maintenance_window(window, state, sunday + timedelta(minutes=45))
    assert not check_maintenance_window(window, state, sunday + timedelta(days=1))
    assert check_maintenance_window(window, state, sunday + timedelta(weeks=1))
    assert state.runs == 2


def test_marker_never_moves_backwards():
    window = MaintenanceWindow(hour=2)
    state = MaintenanceState(last_run_marker="2026-10-19")

    assert not check_maintenance_window(window, state, datetime(2026, 10, 18, 2, 0))
    assert state.last_run_marker == "2026-10-19"


@pytest.mark.asyncio
async def test_scheduler_uses_local_time(tracker):
    action = AsyncMock(return_value={"sessions_deleted": 3})
    clock = WallClock(SUNDAY_0330_UTC)
    scheduler = _scheduler(MaintenanceWindow(hour=3, weekday=6), action, clock, tracker)

    assert scheduler.local_now().hour == 3
    assert await scheduler.check_and_run() is True
    assert await scheduler.check_and_run() is False

    action.assert_awaited_once()
    record = tracker.get("Test Cleanup")
    assert record.runs == 1
    assert record.last_success is True


@pytest.mark.asyncio
async def test_scheduler_skips_outside_window(tracker):
    action = AsyncMock()
    clock = WallClock(SUNDAY_0330_UTC + timedelta(hours=1))
    scheduler = _scheduler(MaintenanceWindow(hour=3, weekday=6), action, clock, tracker)

    assert await scheduler.check_and_run() is False
    action.assert_not_awaited()
    assert tracker.get("Test Cleanup") is None


@pytest.mark.asyncio
async def test_failed_action_is_recorded_and_not_retried_in_period(tracker):
    action = AsyncMock(side_effect=RuntimeError("database unavailable"))
    clock = WallClock(SUNDAY_0330_UTC)
    scheduler = _scheduler(MaintenanceWindow(hour=3), action, clock, tracker)

    assert await scheduler.check_and_run() is True
    clock.advance(minutes=20)
    assert await scheduler.check_and_run() is False

    action.assert_awaited_once()
    record = tracker.get("Test Cleanup")
    assert record.failures == 1
    assert record.last_error == "database unavailable"


@pytest.mark.asyncio
async def test_run_forever_checks_hourly(simulated_clock, tracker):
    action = AsyncMock(return_value=None)
    clock = WallClock(SUNDAY_0330_UTC - timedelta(hours=2))

    async def sleep(seconds):
        await simulated_clock.sleep(seconds)
        clock.advance(seconds=seconds)

    scheduler = _scheduler(MaintenanceWindow(hour=3), action, clock, tracker, sleep=sleep)

    await scheduler.run_forever(max_checks=27)

    # 01:30, 02:30, 03:30 ... next day 03:30 is the 27th check
    assert simulated_clock.sleeps == [3600] * 26
    assert action.await_count == 2
    assert scheduler.get_job_status()["last_run_marker"] == "2026-10-19"


@pytest.mark.asyncio
async def test_session_cleanup_action(monkeypatch):
    delete_sessions = AsyncMock(return_value=12)
    monkeypatch.setattr(
        maintenance_job.MaintenanceRepository, "delete_expired_sessions", delete_sessions
    )

    result = await maintenance_job.run_session_cleanup()

    assert result == {"sessions_deleted": 12}


@pytest.mark.asyncio
async def test_webhook_log_cleanup_uses_retention(monkeypatch):
    delete_logs = AsyncMock(return_value=40)
    monkeypatch.setattr(
        maintenance_job.MaintenanceRepository, "delete_old_webhook_logs", delete_logs
    )
    monkeypatch.setattr(maintenance_job.settings, "WEBHOOK_LOG_RETENTION_DAYS", 14)

    result = await maintenance_job.run_webhook_log_cleanup()

    delete_logs.assert_awaited_once_with(14)
    assert result == {"webhook_logs_deleted": 40, "retention_days": 14}


@pytest.mark.asyncio
async def test_weekly_cleanup_purges_then_clears_sessions(monkeypatch):
    purge = AsyncMock(return_value=5)
    delete_sessions = AsyncMock(return_value=2)
    monkeypatch.setattr(maintenance_job, "purge_removed_records", purge)
    monkeypatch.setattr(
        maintenance_job.MaintenanceRepository, "delete_expired_sessions", delete_sessions
    )

    result = await maintenance_job.run_weekly_cleanup()

    purge.assert_awaited_once_with(maintenance_job.settings.SYNC_RECORD_RETENTION_DAYS)
    assert result == {"sync_records_purged": 5, "sessions_deleted": 2}


def test_build_maintenance_schedulers_uses_configured_windows():
    schedulers = build_maintenance_schedulers()

    assert set(schedulers) == {"session_cleanup", "webhook_log_cleanup", "weekly_cleanup"}
    assert schedulers["session_cleanup"].window == MaintenanceWindow(hour=2)
    assert schedulers["webhook_log_cleanup"].window == MaintenanceWindow(hour=4)
    assert schedulers["weekly_cleanup"].window == MaintenanceWindow(hour=3, weekday=6)
    assert str(schedulers["weekly_cleanup"].tz) == "America/Los_Angeles"

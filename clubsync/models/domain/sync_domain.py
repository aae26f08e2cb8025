# clubsync/models/domain/sync_domain.py
"""
Sync Domain Models
Result shapes produced by sync tasks and aggregated by the scheduler.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True, slots=True)
class SyncTaskResult:
    """Outcome of one sync task for one cycle. Built once, never mutated."""

    synced: int = 0
    created: int = 0
    updated: int = 0
    deleted_or_cancelled: int = 0
    skipped: int = 0
    error: str | None = None
    warning: str | None = None

    @classmethod
    def failure(cls, error: str) -> "SyncTaskResult":
        return cls(error=error)

    @classmethod
    def not_configured(cls, task_name: str) -> "SyncTaskResult":
        return cls(warning=f"{task_name} not configured")

    @property
    def ok(self) -> bool:
        return self.error is None

    def summary_message(self) -> str:
        """Short text used in the per-cycle summary line."""
        if self.error:
            return self.error
        if self.warning:
            return self.warning
        return f"{self.synced} synced"

    def to_dict(self) -> dict:
        data = {
            "synced": self.synced,
            "created": self.created,
            "updated": self.updated,
            "deleted_or_cancelled": self.deleted_or_cancelled,
            "skipped": self.skipped,
        }
        if self.error:
            data["error"] = self.error
        if self.warning:
            data["warning"] = self.warning
        return data


@dataclass(slots=True)
class SyncCycle:
    """One scheduler pass over every configured task. Logged, then dropped."""

    number: int
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    results: dict[str, SyncTaskResult] = field(default_factory=dict)

    @property
    def failed_tasks(self) -> list[str]:
        return [name for name, result in self.results.items() if not result.ok]

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def summary(self) -> dict[str, int | str]:
        """Task name -> synced count, or the error/warning text."""
        return {
            name: result.synced if result.ok and not result.warning else result.summary_message()
            for name, result in self.results.items()
        }

    def summary_line(self) -> str:
        return ", ".join(
            f"{name}: {result.summary_message()}" for name, result in self.results.items()
        )

"""
In-process record of scheduler runs, for status and health reporting.
"""

from dataclasses import dataclass
from datetime import UTC, datetime


@dataclass(slots=True)
class SchedulerRunRecord:
    name: str
    runs: int = 0
    failures: int = 0
    last_run_at: datetime | None = None
    last_success: bool | None = None
    last_error: str | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "runs": self.runs,
            "failures": self.failures,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_success": self.last_success,
            "last_error": self.last_error,
        }


class SchedulerTracker:
    def __init__(self):
        self._records: dict[str, SchedulerRunRecord] = {}

    def record_run(self, name: str, success: bool, error: str | None = None) -> None:
        record = self._records.setdefault(name, SchedulerRunRecord(name=name))
        record.runs += 1
        record.last_run_at = datetime.now(UTC)
        record.last_success = success
        record.last_error = None if success else error
        if not success:
            record.failures += 1

    def get(self, name: str) -> SchedulerRunRecord | None:
        return self._records.get(name)

    def get_status(self) -> list[dict]:
        return [record.to_dict() for record in self._records.values()]

    def reset(self) -> None:
        self._records.clear()


scheduler_tracker = SchedulerTracker()

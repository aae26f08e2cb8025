import asyncio

import pytest

from clubsync.jobs.tracker import SchedulerTracker
from clubsync.models.domain.sync_domain import SyncTaskResult


class FakeRecordStore:
    """In-memory RecordStore for one domain."""

    def __init__(self, domain: str, records: dict[str, dict] | None = None):
        self.domain = domain
        self.records: dict[str, dict] = dict(records or {})
        self.status: dict[str, str] = {external_id: "active" for external_id in self.records}
        self.upsert_errors: dict[str, Exception] = {}
        self.upserts: list[str] = []

    async def find_by_external_id(self, external_id: str) -> dict | None:
        if self.status.get(external_id) != "active":
            return None
        return self.records.get(external_id)

    async def upsert(self, record) -> None:
        if record.external_id in self.upsert_errors:
            raise self.upsert_errors[record.external_id]
        self.records[record.external_id] = record.payload()
        self.status[record.external_id] = "active"
        self.upserts.append(record.external_id)

    async def delete(self, external_id: str) -> None:
        self.status[external_id] = "deleted"

    async def cancel(self, external_id: str) -> None:
        self.status[external_id] = "cancelled"

    async def list_active_external_ids(self) -> set[str]:
        return {external_id for external_id, status in self.status.items() if status == "active"}


class FakeFetchClient:
    def __init__(self, records: list[dict] | None = None, error: Exception | None = None):
        self.records = records or []
        self.error = error
        self.calls = 0

    async def fetch(self) -> list[dict]:
        self.calls += 1
        if self.error:
            raise self.error
        return list(self.records)


class StubTask:
    """Stands in for a SyncTask inside scheduler tests."""

    def __init__(
        self,
        name: str,
        results: list[SyncTaskResult | Exception] | None = None,
        *,
        steps: int = 0,
        events: list[str] | None = None,
        gate: asyncio.Event | None = None,
    ):
        self.name = name
        self.domain = name.lower()
        self.results = results or [SyncTaskResult(synced=1)]
        self.steps = steps
        self.events = events if events is not None else []
        self.gate = gate
        self.calls = 0

    async def run(self) -> SyncTaskResult:
        self.calls += 1
        self.events.append(f"start:{self.name}")
        if self.gate is not None:
            await self.gate.wait()
        for _ in range(self.steps):
            await asyncio.sleep(0)
        outcome = self.results[min(self.calls, len(self.results)) - 1]
        self.events.append(f"end:{self.name}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class SimulatedClock:
    """Records requested sleeps and advances virtual time instead of waiting."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@pytest.fixture
def make_store():
    def _make(domain: str, records: dict[str, dict] | None = None) -> FakeRecordStore:
        return FakeRecordStore(domain, records)

    return _make


@pytest.fixture
def make_client():
    def _make(records: list[dict] | None = None, error: Exception | None = None):
        return FakeFetchClient(records, error)

    return _make


@pytest.fixture
def simulated_clock():
    return SimulatedClock()


@pytest.fixture
def tracker():
    return SchedulerTracker()

"""
The sync task roster: one task per external domain.

Each task owns a disjoint slice of the internal store (its ``domain``). Keep
it that way when adding tasks; the scheduler runs them concurrently without
any locking between them.
"""

from collections.abc import Callable, Sequence
from typing import Any

from pydantic import ValidationError

from clubsync.config import settings
from clubsync.db.helpers import DatabaseError
from clubsync.infrastructure.observability.logging import get_logger
from clubsync.models.domain.status_domain import ContactStatus, PipelineStage
from clubsync.models.domain.sync_domain import SyncTaskResult
from clubsync.models.domain.sync_records import (
    CalendarEventRecord,
    ClosureRecord,
    ConferenceBookingRecord,
    MemberRecord,
    SyncRecord,
    TourRecord,
    WellnessClassRecord,
)
from clubsync.rules.interval_math import BookingSlot, TimeInterval, find_booking_conflicts
from clubsync.rules.normalizer import DEFAULT_FUZZY_PATTERNS, TierNormalizer
from clubsync.rules.status_mapper import map_status
from clubsync.sync.base import (
    PARSE_ERRORS,
    FetchClient,
    RecordSkipped,
    RecordStore,
    SyncTask,
    raw_external_id,
)
from clubsync.sync.clients import get_client

logger = get_logger(__name__)


class CalendarEventsSyncTask(SyncTask):
    name = "Events"
    domain = "calendar_events"
    record_model = CalendarEventRecord


class WellnessCalendarSyncTask(SyncTask):
    name = "Wellness"
    domain = "wellness_classes"
    record_model = WellnessClassRecord


class ToursSyncTask(SyncTask):
    name = "Tours"
    domain = "tours"
    record_model = TourRecord
    removal = "cancel"  # tours keep their history


class ClosuresSyncTask(SyncTask):
    name = "Closures"
    domain = "closures"
    record_model = ClosureRecord


class ConferenceRoomSyncTask(SyncTask):
    """
    Conference room bookings.

    Two occupying bookings may never overlap on the same room and date. The
    feed is authoritative, so a booking is checked against the bookings
    accepted earlier in the same pass plus any stored booking whose upstream
    copy is unreadable this pass (it stays as stored). The later booking of
    a conflicting pair is skipped.
    """

    name = "ConfRoom"
    domain = "conference_bookings"
    record_model = ConferenceBookingRecord
    removal = "cancel"

    def __init__(self, client: FetchClient | None, store: RecordStore):
        super().__init__(client, store)
        self._held: dict[str, BookingSlot] = {}

    async def _reconcile(self, raw_records: list[dict[str, Any]]) -> SyncTaskResult:
        self._held = {}
        for raw in raw_records:
            try:
                self.parse_record(raw)
            except PARSE_ERRORS:
                external_id = raw_external_id(raw)
                if external_id is not None:
                    await self._hold_stored(external_id)
        return await super()._reconcile(raw_records)

    async def _hold_stored(self, external_id: str) -> None:
        try:
            payload = await self.store.find_by_external_id(external_id)
        except DatabaseError as e:
            if not e.recoverable:
                raise
            return
        if payload is None:
            return
        try:
            record = ConferenceBookingRecord.model_validate(payload)
        except ValidationError:
            return
        self._held[external_id] = _booking_slot(record)

    def prepare_record(
        self, record: ConferenceBookingRecord, existing: dict[str, Any] | None
    ) -> SyncRecord:
        slot = _booking_slot(record)
        if slot.is_occupying:
            conflicts = find_booking_conflicts(slot, self._held.values())
            if conflicts:
                conflicting_ids = [conflict.booking_id for conflict in conflicts]
                logger.warning(
                    "Conference booking overlaps another booking",
                    diagnostic="booking_conflict",
                    external_id=record.external_id,
                    resource_id=record.resource_id,
                    booking_date=record.booking_date.isoformat(),
                    conflicting_ids=conflicting_ids,
                )
                raise RecordSkipped(f"overlaps booking(s) {', '.join(conflicting_ids)}")
            self._held[record.external_id] = slot
        return record


def _booking_slot(record: ConferenceBookingRecord) -> BookingSlot:
    return BookingSlot(
        booking_id=record.external_id,
        resource_id=record.resource_id,
        booking_date=record.booking_date,
        interval=TimeInterval.from_strings(record.start_time, record.end_time),
        status=record.status,
    )


class MemberRosterSyncTask(SyncTask):
    """
    CRM roster sync.

    Tiers are normalized while validating. Statuses are projected onto the
    pipeline stage and contact status; a status with no mapping leaves the
    stored value alone, and a brand-new member without one starts in intake.
    """

    name = "Roster"
    domain = "members"
    record_model = MemberRecord

    def __init__(
        self,
        client: FetchClient | None,
        store: RecordStore,
        fuzzy_patterns: Sequence[str] = DEFAULT_FUZZY_PATTERNS,
    ):
        super().__init__(client, store)
        self.normalizer = TierNormalizer(fuzzy_patterns)

    def parse_record(self, raw: dict[str, Any]) -> MemberRecord:
        return MemberRecord.model_validate(raw, context={"normalizer": self.normalizer})

    def prepare_record(self, record: MemberRecord, existing: dict[str, Any] | None) -> SyncRecord:
        mapping = map_status(record.membership_status)
        existing = existing or {}

        stage = mapping.stage
        if stage is None:
            if not existing:
                stage = PipelineStage.INTAKE
            elif existing.get("pipeline_stage"):
                stage = PipelineStage(existing["pipeline_stage"])
            if record.membership_status:
                logger.info(
                    "Unmapped membership status, pipeline stage unchanged",
                    external_id=record.external_id,
                    membership_status=record.membership_status,
                )

        contact_status = mapping.contact_status
        if contact_status is None and existing.get("contact_status"):
            contact_status = ContactStatus(existing["contact_status"])

        return record.model_copy(update={"pipeline_stage": stage, "contact_status": contact_status})


SYNC_TASK_TYPES: tuple[type[SyncTask], ...] = (
    CalendarEventsSyncTask,
    WellnessCalendarSyncTask,
    ToursSyncTask,
    ClosuresSyncTask,
    ConferenceRoomSyncTask,
    MemberRosterSyncTask,
)


def build_sync_tasks(store_factory: Callable[[str], RecordStore]) -> list[SyncTask]:
    """Instantiate the full roster with registered clients and per-domain stores."""
    tasks: list[SyncTask] = []
    for task_type in SYNC_TASK_TYPES:
        client = get_client(task_type.domain)
        store = store_factory(task_type.domain)
        if task_type is MemberRosterSyncTask:
            tasks.append(task_type(client, store, fuzzy_patterns=settings.TIER_FUZZY_PATTERNS))
        else:
            tasks.append(task_type(client, store))
    return tasks

"""
Sync task base class and collaborator contracts.

A sync task pulls every authoritative record for one external domain,
converges the internal store's slice for that domain onto it, and reports a
SyncTaskResult. External data always wins for the fields it owns, so running
a task twice is harmless.

Failure handling:
    - one bad record (fails validation, one-row write error): skip it, count
      it, keep going; a stored copy of a record that fails validation is
      left untouched rather than removed as stale
    - anything that makes the whole pass untrustworthy (fetch failure, store
      unavailable): stop and return a result carrying the error
"""

from abc import ABC, abstractmethod
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import ValidationError

from clubsync.db.helpers import DatabaseError
from clubsync.infrastructure.observability.logging import get_logger
from clubsync.models.domain.sync_domain import SyncTaskResult
from clubsync.models.domain.sync_records import SyncRecord

logger = get_logger(__name__)


class RecordSkipped(Exception):
    """Raised while preparing one record to skip it without failing the task."""


class SyncConfigurationError(Exception):
    """A task or scheduler roster is wired up incorrectly."""


# Raised by parse_record for one unusable record.
PARSE_ERRORS = (ValidationError, RecordSkipped, TypeError)


def raw_external_id(raw: Any) -> str | None:
    """Best-effort id of a raw provider record, for records that fail validation."""
    if not isinstance(raw, dict):
        return None
    value = raw.get("external_id", raw.get("id"))
    if value is None or isinstance(value, bool):
        return None
    return str(value).strip() or None


@runtime_checkable
class FetchClient(Protocol):
    """External provider for one domain. Must bound its own network calls."""

    async def fetch(self) -> list[dict[str, Any]]: ...


@runtime_checkable
class RecordStore(Protocol):
    """Internal store slice owned by exactly one sync task."""

    domain: str

    async def find_by_external_id(self, external_id: str) -> dict[str, Any] | None: ...

    async def upsert(self, record: SyncRecord) -> None: ...

    async def delete(self, external_id: str) -> None: ...

    async def cancel(self, external_id: str) -> None: ...

    async def list_active_external_ids(self) -> set[str]: ...


class SyncTask(ABC):
    """
    One external domain's reconciliation pass.

    Subclasses set ``name``, ``domain`` and ``record_model``, and may override
    ``prepare_record`` to enrich a validated record before it is compared.
    """

    name: str
    domain: str
    record_model: type[SyncRecord]
    removal: Literal["delete", "cancel"] = "delete"

    def __init__(self, client: FetchClient | None, store: RecordStore):
        if store.domain != self.domain:
            raise SyncConfigurationError(
                f"{self.name} task owns domain '{self.domain}' but got store for '{store.domain}'"
            )
        self.client = client
        self.store = store

    async def run(self) -> SyncTaskResult:
        """Run one reconciliation pass. Never raises."""
        if self.client is None:
            logger.info("Sync task has no client configured", task=self.name)
            return SyncTaskResult.not_configured(self.name)

        try:
            raw_records = await self.client.fetch()
        except Exception as e:
            logger.error(
                "Sync task fetch failed", task=self.name, error=str(e), error_type=type(e).__name__
            )
            return SyncTaskResult.failure(f"{self.name} fetch failed: {e}")

        try:
            return await self._reconcile(raw_records or [])
        except Exception as e:
            logger.error(
                "Sync task aborted", task=self.name, error=str(e), error_type=type(e).__name__
            )
            return SyncTaskResult.failure(f"{self.name} sync failed: {e}")

    def parse_record(self, raw: dict[str, Any]) -> SyncRecord:
        return self.record_model.model_validate(raw)

    def prepare_record(self, record: SyncRecord, existing: dict[str, Any] | None) -> SyncRecord:
        """Hook for derived fields that depend on the stored copy."""
        return record

    async def _reconcile(self, raw_records: list[dict[str, Any]]) -> SyncTaskResult:
        synced = created = updated = removed = skipped = 0
        seen: set[str] = set()
        # malformed upstream copies; the stored version stays as it is
        unparsed: set[str] = set()

        for raw in raw_records:
            try:
                record = self.parse_record(raw)
            except PARSE_ERRORS as e:
                skipped += 1
                self._log_skip(raw, e)
                external_id = raw_external_id(raw)
                if external_id is not None:
                    unparsed.add(external_id)
                continue

            if record.external_id in seen:
                skipped += 1
                self._log_skip(raw, RecordSkipped("duplicate external id in feed"))
                continue
            seen.add(record.external_id)

            try:
                existing = await self.store.find_by_external_id(record.external_id)
                record = self.prepare_record(record, existing)
                if existing is None:
                    await self.store.upsert(record)
                    created += 1
                elif existing != record.payload():
                    await self.store.upsert(record)
                    updated += 1
                synced += 1
            except RecordSkipped as e:
                skipped += 1
                self._log_skip(raw, e)
            except DatabaseError as e:
                if not e.recoverable:
                    raise
                skipped += 1
                self._log_skip(raw, e)

        for external_id in await self.store.list_active_external_ids() - seen - unparsed:
            try:
                if self.removal == "cancel":
                    await self.store.cancel(external_id)
                else:
                    await self.store.delete(external_id)
                removed += 1
            except DatabaseError as e:
                if not e.recoverable:
                    raise
                skipped += 1
                logger.warning(
                    "Sync task could not remove stale record",
                    task=self.name,
                    external_id=external_id,
                    error=str(e),
                )

        result = SyncTaskResult(
            synced=synced,
            created=created,
            updated=updated,
            deleted_or_cancelled=removed,
            skipped=skipped,
        )
        logger.info("Sync task completed", task=self.name, **result.to_dict())
        return result

    def _log_skip(self, raw: Any, error: Exception) -> None:
        logger.warning(
            "Sync task skipped record",
            task=self.name,
            external_id=raw_external_id(raw),
            error=str(error),
            error_type=type(error).__name__,
        )

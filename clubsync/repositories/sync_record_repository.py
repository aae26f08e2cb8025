"""
Postgres record store for synced external data.

One table holds every domain's records keyed by (domain, external_id). Each
PostgresRecordStore instance is bound to a single domain, which is the
write boundary a sync task owns. Removal is soft: rows are marked deleted or
cancelled and purged later by the weekly cleanup.
"""

from typing import Any

from psycopg.types.json import Jsonb

from clubsync.db.helpers import execute_query, fetch_all, fetch_one, with_db_retry
from clubsync.infrastructure.observability.logging import get_logger
from clubsync.models.domain.sync_records import SyncRecord

logger = get_logger(__name__)

SYNC_RECORDS_DDL = """
    CREATE TABLE IF NOT EXISTS sync_records (
        domain TEXT NOT NULL,
        external_id TEXT NOT NULL,
        payload JSONB NOT NULL,
        status TEXT NOT NULL DEFAULT 'active',
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        removed_at TIMESTAMPTZ,
        PRIMARY KEY (domain, external_id)
    )
"""


class PostgresRecordStore:
    """RecordStore implementation for one sync domain."""

    def __init__(self, domain: str):
        self.domain = domain

    @with_db_retry()
    async def find_by_external_id(self, external_id: str) -> dict[str, Any] | None:
        query = """
            SELECT payload
            FROM sync_records
            WHERE domain = %s AND external_id = %s AND status = 'active'
        """
        row = await fetch_one(query, (self.domain, external_id))
        return row["payload"] if row else None

    @with_db_retry()
    async def upsert(self, record: SyncRecord) -> None:
        query = """
            INSERT INTO sync_records (domain, external_id, payload, status, created_at, updated_at)
            VALUES (%s, %s, %s, 'active', NOW(), NOW())
            ON CONFLICT (domain, external_id)
            DO UPDATE SET
                payload = EXCLUDED.payload,
                status = 'active',
                removed_at = NULL,
                updated_at = NOW()
        """
        await execute_query(query, (self.domain, record.external_id, Jsonb(record.payload())))

    async def delete(self, external_id: str) -> None:
        await self._mark_removed(external_id, "deleted")

    async def cancel(self, external_id: str) -> None:
        await self._mark_removed(external_id, "cancelled")

    @with_db_retry()
    async def list_active_external_ids(self) -> set[str]:
        query = """
            SELECT external_id
            FROM sync_records
            WHERE domain = %s AND status = 'active'
        """
        rows = await fetch_all(query, (self.domain,))
        return {row["external_id"] for row in rows}

    @with_db_retry()
    async def _mark_removed(self, external_id: str, status: str) -> None:
        query = """
            UPDATE sync_records
            SET status = %s, removed_at = NOW(), updated_at = NOW()
            WHERE domain = %s AND external_id = %s AND status = 'active'
        """
        await execute_query(query, (status, self.domain, external_id))


async def ensure_sync_records_schema() -> None:
    await execute_query(SYNC_RECORDS_DDL)
    logger.debug("sync_records schema ensured")


async def purge_removed_records(retention_days: int) -> int:
    """Hard delete soft-removed rows older than the retention window."""
    query = """
        DELETE FROM sync_records
        WHERE status IN ('deleted', 'cancelled')
          AND removed_at < NOW() - make_interval(days => %s)
    """
    return await execute_query(query, (retention_days,))

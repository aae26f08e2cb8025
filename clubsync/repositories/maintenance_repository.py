"""
Housekeeping queries run by the maintenance schedulers.
"""

from clubsync.db.helpers import execute_query
from clubsync.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class MaintenanceRepository:
    """Persistence helpers for session and webhook log retention."""

    @staticmethod
    async def delete_expired_sessions() -> int:
        query = """
            DELETE FROM sessions
            WHERE expire < NOW()
        """
        deleted = await execute_query(query)
        logger.info("Expired sessions deleted", count=deleted)
        return deleted

    @staticmethod
    async def delete_old_webhook_logs(retention_days: int) -> int:
        query = """
            DELETE FROM webhook_logs
            WHERE created_at < NOW() - make_interval(days => %s)
        """
        deleted = await execute_query(query, (retention_days,))
        logger.info("Old webhook logs deleted", count=deleted, retention_days=retention_days)
        return deleted

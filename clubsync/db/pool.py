# clubsync/db/pool.py
"""
Connection pool for the internal record store.

The worker opens one pool at startup (see jobs/worker.py) and closes it on
the way out. Rows come back as dicts, and every statement autocommits
because sync writes are single-record upserts with no cross-record
transaction.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from clubsync.config import settings
from clubsync.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

POOL_CLOSE_TIMEOUT_SECONDS = 30.0


async def _prepare_session(conn: psycopg.AsyncConnection) -> None:
    conn.row_factory = dict_row
    await conn.set_autocommit(True)
    await conn.execute(
        sql.SQL("SET application_name = {}").format(
            sql.Literal(f"clubsync-worker-{settings.environment}")
        )
    )
    await conn.execute("SET timezone = 'UTC'")
    await conn.execute("SET statement_timeout = '60s'")


class DatabasePoolManager:
    """Owns the worker process's AsyncConnectionPool."""

    def __init__(self):
        self.pool: AsyncConnectionPool | None = None

    @property
    def is_initialized(self) -> bool:
        return self.pool is not None

    async def initialize(self) -> None:
        if self.pool is not None:
            logger.warning("Database pool already initialized")
            return
        if not settings.DATABASE_URL:
            raise RuntimeError("DATABASE_URL is not configured")

        config = settings.get_db_pool_config()
        pool = AsyncConnectionPool(
            conninfo=settings.DATABASE_URL,
            open=False,
            check=AsyncConnectionPool.check_connection,
            configure=_prepare_session,
            **config,
        )
        try:
            await pool.open(wait=True, timeout=config["timeout"])
            async with pool.connection() as conn:
                await conn.execute("SELECT 1")
        except Exception as e:
            logger.error("Record store unreachable at startup", error=str(e))
            await pool.close()
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

        self.pool = pool
        logger.info(
            "Database pool ready", min_size=config["min_size"], max_size=config["max_size"]
        )

    async def close(self) -> None:
        if self.pool is None:
            return
        pool, self.pool = self.pool, None
        try:
            await asyncio.wait_for(pool.close(), timeout=POOL_CLOSE_TIMEOUT_SECONDS)
        except TimeoutError:
            logger.warning("Database pool close timed out")
            return
        logger.info("Database pool closed")

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Borrow a connection:

            async with db_pool.connection() as conn:
                await conn.execute("SELECT 1")
        """
        if self.pool is None:
            raise RuntimeError("Database pool not initialized. Call initialize() first.")
        async with self.pool.connection() as conn:
            yield conn

    async def health_check(self) -> dict[str, Any]:
        """Round-trip timing for the worker status report."""
        if self.pool is None:
            return {"healthy": False, "error": "Pool not initialized", "service": "database_pool"}

        start = time.perf_counter()
        try:
            async with self.pool.connection() as conn:
                await conn.execute("SELECT 1")
        except Exception as e:
            logger.error("Database pool health check failed", error=str(e))
            return {
                "healthy": False,
                "service": "database_pool",
                "error": str(e),
                "error_type": type(e).__name__,
            }

        stats = self.pool.get_stats()
        return {
            "healthy": True,
            "service": "database_pool",
            "connection_time_ms": round((time.perf_counter() - start) * 1000, 2),
            "pool_size": stats.get("pool_size"),
            "pool_available": stats.get("pool_available"),
        }


db_pool = DatabasePoolManager()


async def get_db_connection():
    """Get database connection from pool."""
    return db_pool.connection()

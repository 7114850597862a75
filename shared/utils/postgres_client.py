"""
PostgreSQL client wrapper with async support
"""

from typing import Optional, List, Dict, Any, AsyncIterator
from contextlib import asynccontextmanager

import asyncpg
from asyncpg import Pool, Connection

from .logger import get_logger

logger = get_logger(__name__)


class PostgresClient:
    """
    Async PostgreSQL client backed by an asyncpg pool
    """

    def __init__(self, database_url: str, command_timeout: float = 60.0):
        """
        Initialize PostgreSQL client

        Args:
            database_url: PostgreSQL connection URL (asyncpg format)
            command_timeout: Default query timeout in seconds
        """
        self.database_url = database_url
        self.command_timeout = command_timeout
        self._pool: Optional[Pool] = None

    async def connect(
        self,
        min_size: int = 1,
        max_size: int = 5
    ) -> None:
        """
        Establish database connection pool

        Args:
            min_size: Minimum pool size
            max_size: Maximum pool size
        """
        try:
            self._pool = await asyncpg.create_pool(
                self.database_url,
                min_size=min_size,
                max_size=max_size,
                command_timeout=self.command_timeout
            )
            logger.info("postgres_connected", min_size=min_size, max_size=max_size)
        except Exception as e:
            logger.error("postgres_connect_failed", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close database connection pool"""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("postgres_disconnected")

    @property
    def pool(self) -> Pool:
        """Get connection pool"""
        if not self._pool:
            raise RuntimeError("PostgreSQL client not connected. Call connect() first.")
        return self._pool

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[Connection]:
        """
        Acquire a connection from the pool

        Usage:
            async with client.acquire() as conn:
                result = await conn.fetch("SELECT * FROM symbol_master")
        """
        async with self.pool.acquire() as connection:
            yield connection

    # =============================================
    # QUERY OPERATIONS
    # =============================================

    async def execute(
        self,
        query: str,
        *args,
        timeout: Optional[float] = None
    ) -> str:
        """
        Execute a query without returning results

        Returns:
            Status message
        """
        try:
            async with self.acquire() as conn:
                result = await conn.execute(query, *args, timeout=timeout)
                logger.debug("query_executed", query=query[:100], result=result)
                return result
        except Exception as e:
            logger.error("query_execute_error", query=query[:100], error=str(e))
            raise

    async def fetch(
        self,
        query: str,
        *args,
        timeout: Optional[float] = None
    ) -> List[Dict[str, Any]]:
        """
        Fetch multiple rows

        Returns:
            List of rows as dictionaries
        """
        try:
            async with self.acquire() as conn:
                rows = await conn.fetch(query, *args, timeout=timeout)
                return [dict(row) for row in rows]
        except Exception as e:
            logger.error("query_fetch_error", query=query[:100], error=str(e))
            raise

    async def fetchval(
        self,
        query: str,
        *args,
        column: int = 0,
        timeout: Optional[float] = None
    ) -> Any:
        """Fetch a single value"""
        try:
            async with self.acquire() as conn:
                return await conn.fetchval(query, *args, column=column, timeout=timeout)
        except Exception as e:
            logger.error("query_fetchval_error", query=query[:100], error=str(e))
            raise

    # =============================================
    # TRANSACTION OPERATIONS
    # =============================================

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Connection]:
        """
        Execute queries in a transaction

        The transaction is rolled back if the block raises.

        Usage:
            async with client.transaction() as conn:
                await conn.executemany("INSERT ...", rows)
                await conn.execute("UPDATE ...")
        """
        async with self.acquire() as conn:
            async with conn.transaction():
                yield conn

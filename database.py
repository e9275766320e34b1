"""
Read-only asyncpg pool for the content store
"""

import asyncpg
import logging
from typing import Any, List, Optional, Union
from contextlib import asynccontextmanager

from config import DatabaseConfig

logger = logging.getLogger(__name__)

# Every pooled session starts in a read-only transaction mode
READ_ONLY_SETTINGS = {'default_transaction_read_only': 'on'}


def ssl_setting(ssl_mode: str) -> Union[bool, str]:
    """Map DB_SSL_MODE onto asyncpg's ssl argument (True, False or 'prefer')."""
    if ssl_mode == 'require':
        return True
    if ssl_mode == 'disable':
        return False
    return 'prefer'


class DatabaseConnection:
    """
    Connection pool used to read entries and registries.
    Writes fail at the server: sessions are opened read-only.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        if self.pool is not None:
            logger.warning("Connection pool already initialized")
            return

        try:
            self.pool = await asyncpg.create_pool(
                host=self.config.host,
                port=self.config.port,
                database=self.config.database,
                user=self.config.user,
                password=self.config.password,
                min_size=self.config.min_pool_size,
                max_size=self.config.max_pool_size,
                command_timeout=self.config.command_timeout,
                ssl=ssl_setting(self.config.ssl_mode),
                server_settings=READ_ONLY_SETTINGS,
            )
            logger.info(f"✅ Connected to content store {self.config.database} at {self.config.host}:{self.config.port} (read-only)")
        except Exception as e:
            logger.error(f"❌ Failed to connect to content store: {e}")
            raise

    async def disconnect(self):
        if self.pool is not None:
            await self.pool.close()
            self.pool = None
            logger.info("Content store pool closed")

    @asynccontextmanager
    async def acquire(self):
        """
        Usage:
            async with db.acquire() as conn:
                rows = await conn.fetch("SELECT channel_id FROM channels")
        """
        if self.pool is None:
            raise RuntimeError("Database not connected. Call connect() first.")

        async with self.pool.acquire() as connection:
            try:
                yield connection
            except Exception as e:
                logger.error(f"Query failed: {e}", exc_info=True)
                raise

    async def fetch(self, query: str, *args, timeout: Optional[float] = None) -> List[asyncpg.Record]:
        """All rows of a parameterized query ($1..$n bound from args)"""
        async with self.acquire() as conn:
            return await conn.fetch(query, *args, timeout=timeout)

    async def fetchval(self, query: str, *args, timeout: Optional[float] = None) -> Any:
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args, timeout=timeout)

    async def check_connection(self) -> bool:
        """True when the pool can answer a trivial query"""
        try:
            return await self.fetchval("SELECT 1") == 1
        except Exception as e:
            logger.error(f"Connection check failed: {e}")
            return False

"""
Shared plumbing for asyncpg repositories.
"""

from contextlib import asynccontextmanager

import asyncpg


class BaseRepository:
    """Holds the connection pool and opens transactions on it."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    @asynccontextmanager
    async def transaction(self):
        """Connection from the pool with a transaction open; commits on clean exit."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn


def rows_affected(status: str) -> int:
    """Parse the row count out of an asyncpg command status like ``DELETE 1``."""
    return int(status.split()[-1])

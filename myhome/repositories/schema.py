"""
Schema creation for the MyHome database.

Compiles the SQLAlchemy table metadata to PostgreSQL DDL and runs it
through asyncpg, so the service can start against an empty database.
"""

from typing import List

import asyncpg
import structlog
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateIndex, CreateTable

from myhome.models.tables import Base

logger = structlog.get_logger(__name__)


def schema_statements() -> List[str]:
    """
    Render idempotent DDL for every table and index, parents first.

    Returns:
        List of SQL statements
    """
    dialect = postgresql.dialect()
    statements = []

    for table in Base.metadata.sorted_tables:
        statements.append(
            str(CreateTable(table, if_not_exists=True).compile(dialect=dialect)).strip()
        )
        for index in sorted(table.indexes, key=lambda i: i.name):
            statements.append(
                str(CreateIndex(index, if_not_exists=True).compile(dialect=dialect)).strip()
            )

    return statements


async def create_schema(pool: asyncpg.Pool) -> None:
    """
    Create missing tables and indexes.

    Args:
        pool: asyncpg connection pool

    Raises:
        asyncpg.PostgresError: On database error
    """
    statements = schema_statements()

    try:
        async with pool.acquire() as conn:
            async with conn.transaction():
                for statement in statements:
                    await conn.execute(statement)

        logger.info("database_schema_ready", statements=len(statements))

    except Exception as e:
        logger.error("database_schema_create_failed", error=str(e))
        raise

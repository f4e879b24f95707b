"""
Community repository for database operations.

Provides async CRUD operations for communities using asyncpg with
PostgreSQL. A community's admin set is stored in the
``community_admin_links`` table and kept in sync on every save; its house
set is read from the ``houses`` table.
"""

import asyncpg
import structlog
from typing import Optional

from myhome.errors import DuplicateRecordError
from myhome.models.domain import Community
from myhome.models.pagination import Page, PageRequest
from myhome.repositories.base import BaseRepository, rows_affected

logger = structlog.get_logger(__name__)

_SELECT_COMMUNITY = """
    SELECT c.id, c.community_id, c.name, c.district,
           ARRAY(
               SELECT l.admin_id FROM community_admin_links l
               WHERE l.community_id = c.community_id
           ) AS admins,
           ARRAY(
               SELECT h.house_id FROM houses h
               WHERE h.community_id = c.community_id
           ) AS houses
    FROM communities c
"""


def _to_community(row) -> Community:
    return Community(
        id=row["id"],
        community_id=row["community_id"],
        name=row["name"],
        district=row["district"],
        admins=set(row["admins"] or []),
        houses=set(row["houses"] or []),
    )


class CommunityRepository(BaseRepository):
    """Repository for community database operations."""

    async def save_community(self, community: Community) -> Community:
        """
        Insert a new community or update an existing one.

        The stored admin links are replaced by ``community.admins``; every
        admin in the set must already exist.

        Args:
            community: Community to persist (``id`` is None for new records)

        Returns:
            Persisted community with its generated ``id``

        Raises:
            DuplicateRecordError: If the community ID is already taken
            LookupError: If an update targets a community that no longer exists
            asyncpg.PostgresError: On database error
        """
        try:
            async with self.transaction() as conn:
                try:
                    if community.id is None:
                        row = await conn.fetchrow(
                            """
                            INSERT INTO communities (community_id, name, district)
                            VALUES ($1, $2, $3)
                            RETURNING id
                            """,
                            community.community_id,
                            community.name,
                            community.district
                        )
                    else:
                        row = await conn.fetchrow(
                            """
                            UPDATE communities
                            SET name = $1, district = $2
                            WHERE id = $3
                            RETURNING id
                            """,
                            community.name,
                            community.district,
                            community.id
                        )
                except asyncpg.UniqueViolationError:
                    logger.warning("community_already_exists", community_id=community.community_id)
                    raise DuplicateRecordError("Community", community.community_id)

                if not row:
                    raise LookupError(f"Community '{community.community_id}' not found")

                admins = sorted(community.admins)
                await conn.execute(
                    """
                    DELETE FROM community_admin_links
                    WHERE community_id = $1 AND NOT (admin_id = ANY($2::text[]))
                    """,
                    community.community_id,
                    admins
                )
                if admins:
                    await conn.executemany(
                        """
                        INSERT INTO community_admin_links (community_id, admin_id)
                        VALUES ($1, $2)
                        ON CONFLICT DO NOTHING
                        """,
                        [(community.community_id, admin_id) for admin_id in admins]
                    )

                saved = await conn.fetchrow(
                    _SELECT_COMMUNITY + " WHERE c.id = $1",
                    row["id"]
                )

                logger.info(
                    "community_saved",
                    community_id=community.community_id,
                    admins=len(admins)
                )

                return _to_community(saved)

        except (DuplicateRecordError, LookupError):
            raise
        except Exception as e:
            logger.error("community_save_failed", error=str(e), community_id=community.community_id)
            raise

    async def get_by_community_id(self, community_id: str) -> Optional[Community]:
        """
        Get community by its public ID.

        Args:
            community_id: Community ID

        Returns:
            Community or None if not found
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    _SELECT_COMMUNITY + " WHERE c.community_id = $1",
                    community_id
                )

                if not row:
                    logger.debug("community_not_found", community_id=community_id)
                    return None

                return _to_community(row)

        except Exception as e:
            logger.error("community_get_failed", error=str(e), community_id=community_id)
            raise

    async def exists(self, community_id: str) -> bool:
        """Check whether a community with this ID exists."""
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval(
                    "SELECT EXISTS(SELECT 1 FROM communities WHERE community_id = $1)",
                    community_id
                )

        except Exception as e:
            logger.error("community_exists_failed", error=str(e), community_id=community_id)
            raise

    async def list_communities(self, page_request: PageRequest) -> Page[Community]:
        """
        List communities with pagination.

        Args:
            page_request: Page to return

        Returns:
            Page of communities ordered by creation
        """
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    _SELECT_COMMUNITY + " ORDER BY c.id LIMIT $1 OFFSET $2",
                    page_request.page_size,
                    page_request.offset
                )
                total = await conn.fetchval("SELECT COUNT(*) FROM communities")

                return Page.of([_to_community(row) for row in rows], page_request, total)

        except Exception as e:
            logger.error(
                "community_list_failed",
                error=str(e),
                page=page_request.page_number,
                size=page_request.page_size
            )
            raise

    async def delete_community(self, community_id: str) -> bool:
        """
        Delete a community together with its houses, members and admin links.

        Args:
            community_id: Community ID

        Returns:
            True if deleted, False if not found
        """
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute(
                    "DELETE FROM communities WHERE community_id = $1",
                    community_id
                )

                deleted = rows_affected(result) > 0

                if deleted:
                    logger.info("community_deleted", community_id=community_id)
                else:
                    logger.debug("community_not_found", community_id=community_id)

                return deleted

        except Exception as e:
            logger.error("community_delete_failed", error=str(e), community_id=community_id)
            raise

    async def remove_admin(self, community_id: str, admin_id: str) -> bool:
        """
        Drop one admin link of a community.

        Other links of the community are left as they are.

        Returns:
            True if the link existed
        """
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute(
                    """
                    DELETE FROM community_admin_links
                    WHERE community_id = $1 AND admin_id = $2
                    """,
                    community_id,
                    admin_id
                )

                removed = rows_affected(result) > 0
                if removed:
                    logger.info("community_admin_unlinked", community_id=community_id, admin_id=admin_id)
                return removed

        except Exception as e:
            logger.error(
                "community_admin_unlink_failed",
                error=str(e),
                community_id=community_id,
                admin_id=admin_id
            )
            raise

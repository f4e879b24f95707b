"""
Community admin repository for database operations.
"""

import asyncpg
import structlog
from typing import Optional

from myhome.errors import DuplicateRecordError
from myhome.models.domain import CommunityAdmin
from myhome.models.pagination import Page, PageRequest
from myhome.repositories.base import BaseRepository, rows_affected

logger = structlog.get_logger(__name__)

_SELECT_ADMIN = """
    SELECT a.id, a.admin_id,
           ARRAY(
               SELECT l.community_id FROM community_admin_links l
               WHERE l.admin_id = a.admin_id
           ) AS communities
    FROM community_admins a
"""


def _to_admin(row) -> CommunityAdmin:
    return CommunityAdmin(
        id=row["id"],
        admin_id=row["admin_id"],
        communities=set(row["communities"] or []),
    )


class CommunityAdminRepository(BaseRepository):
    """Repository for community admin database operations."""

    async def save_community_admin(self, admin: CommunityAdmin) -> CommunityAdmin:
        """
        Insert a new admin or update the communities of an existing one.

        The stored community links are replaced by ``admin.communities``;
        every community in the set must already exist.

        Args:
            admin: Admin to persist (``id`` is None for new records)

        Returns:
            Persisted admin with its generated ``id``

        Raises:
            DuplicateRecordError: If the admin ID is already taken
            asyncpg.PostgresError: On database error
        """
        try:
            async with self.transaction() as conn:
                if admin.id is None:
                    try:
                        await conn.execute(
                            "INSERT INTO community_admins (admin_id) VALUES ($1)",
                            admin.admin_id
                        )
                    except asyncpg.UniqueViolationError:
                        logger.warning("community_admin_already_exists", admin_id=admin.admin_id)
                        raise DuplicateRecordError("CommunityAdmin", admin.admin_id)

                communities = sorted(admin.communities)
                await conn.execute(
                    """
                    DELETE FROM community_admin_links
                    WHERE admin_id = $1 AND NOT (community_id = ANY($2::text[]))
                    """,
                    admin.admin_id,
                    communities
                )
                if communities:
                    await conn.executemany(
                        """
                        INSERT INTO community_admin_links (community_id, admin_id)
                        VALUES ($1, $2)
                        ON CONFLICT DO NOTHING
                        """,
                        [(community_id, admin.admin_id) for community_id in communities]
                    )

                saved = await conn.fetchrow(
                    _SELECT_ADMIN + " WHERE a.admin_id = $1",
                    admin.admin_id
                )

                logger.info(
                    "community_admin_saved",
                    admin_id=admin.admin_id,
                    communities=communities
                )

                return _to_admin(saved)

        except DuplicateRecordError:
            raise
        except Exception as e:
            logger.error("community_admin_save_failed", error=str(e), admin_id=admin.admin_id)
            raise

    async def get_by_admin_id(self, admin_id: str) -> Optional[CommunityAdmin]:
        """
        Get admin by its public ID.

        Args:
            admin_id: Admin ID

        Returns:
            Admin or None if not found
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    _SELECT_ADMIN + " WHERE a.admin_id = $1",
                    admin_id
                )

                if not row:
                    logger.debug("community_admin_not_found", admin_id=admin_id)
                    return None

                return _to_admin(row)

        except Exception as e:
            logger.error("community_admin_get_failed", error=str(e), admin_id=admin_id)
            raise

    async def list_by_community(
        self,
        community_id: str,
        page_request: PageRequest
    ) -> Page[CommunityAdmin]:
        """
        List the admins of one community with pagination.

        Args:
            community_id: Community ID
            page_request: Page to return

        Returns:
            Page of admins
        """
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    _SELECT_ADMIN
                    + """
                    JOIN community_admin_links cl ON cl.admin_id = a.admin_id
                    WHERE cl.community_id = $1
                    ORDER BY a.id
                    LIMIT $2 OFFSET $3
                    """,
                    community_id,
                    page_request.page_size,
                    page_request.offset
                )
                total = await conn.fetchval(
                    "SELECT COUNT(*) FROM community_admin_links WHERE community_id = $1",
                    community_id
                )

                return Page.of([_to_admin(row) for row in rows], page_request, total)

        except Exception as e:
            logger.error(
                "community_admin_list_failed",
                error=str(e),
                community_id=community_id
            )
            raise

    async def link_admin(self, community_id: str, admin_id: str) -> bool:
        """
        Make ``admin_id`` an admin of one community, creating the admin if needed.

        Links to other communities are left as they are.

        Returns:
            True if a new link was stored, False if it was already there
        """
        try:
            async with self.transaction() as conn:
                await conn.execute(
                    """
                    INSERT INTO community_admins (admin_id) VALUES ($1)
                    ON CONFLICT (admin_id) DO NOTHING
                    """,
                    admin_id
                )
                result = await conn.execute(
                    """
                    INSERT INTO community_admin_links (community_id, admin_id)
                    VALUES ($1, $2)
                    ON CONFLICT DO NOTHING
                    """,
                    community_id,
                    admin_id
                )

                linked = rows_affected(result) > 0
                if linked:
                    logger.info("community_admin_linked", community_id=community_id, admin_id=admin_id)
                return linked

        except Exception as e:
            logger.error(
                "community_admin_link_failed",
                error=str(e),
                community_id=community_id,
                admin_id=admin_id
            )
            raise

"""
House repository for database operations.

Houses belong to exactly one community; their members live in the
``house_members`` table and are deleted together with the house.
"""

import asyncpg
import structlog
from typing import List, Optional

from myhome.errors import DuplicateRecordError
from myhome.models.domain import House, HouseMember
from myhome.models.pagination import Page, PageRequest
from myhome.repositories.base import BaseRepository, rows_affected

logger = structlog.get_logger(__name__)

_SELECT_HOUSE = """
    SELECT h.id, h.house_id, h.community_id, h.name,
           ARRAY(
               SELECT m.member_id FROM house_members m
               WHERE m.house_id = h.house_id
           ) AS members
    FROM houses h
"""


def _to_house(row) -> House:
    return House(
        id=row["id"],
        house_id=row["house_id"],
        community_id=row["community_id"],
        name=row["name"],
        members=set(row["members"] or []),
    )


def _to_member(row) -> HouseMember:
    return HouseMember(
        id=row["id"],
        member_id=row["member_id"],
        name=row["name"],
        house_id=row["house_id"],
    )


class HouseRepository(BaseRepository):
    """Repository for house and house member database operations."""

    async def save_house(self, house: House) -> House:
        """
        Insert a new house or rename an existing one.

        Args:
            house: House to persist (``id`` is None for new records)

        Returns:
            Persisted house with its generated ``id``

        Raises:
            DuplicateRecordError: If the house ID is already taken
            LookupError: If an update targets a house that no longer exists
            asyncpg.PostgresError: On database error
        """
        try:
            async with self.transaction() as conn:
                try:
                    if house.id is None:
                        row = await conn.fetchrow(
                            """
                            INSERT INTO houses (house_id, community_id, name)
                            VALUES ($1, $2, $3)
                            RETURNING id
                            """,
                            house.house_id,
                            house.community_id,
                            house.name
                        )
                    else:
                        row = await conn.fetchrow(
                            """
                            UPDATE houses
                            SET name = $1, community_id = $2
                            WHERE id = $3
                            RETURNING id
                            """,
                            house.name,
                            house.community_id,
                            house.id
                        )
                except asyncpg.UniqueViolationError:
                    logger.warning("house_already_exists", house_id=house.house_id)
                    raise DuplicateRecordError("House", house.house_id)

                if not row:
                    raise LookupError(f"House '{house.house_id}' not found")

                saved = await conn.fetchrow(_SELECT_HOUSE + " WHERE h.id = $1", row["id"])

                logger.info(
                    "house_saved",
                    house_id=house.house_id,
                    community_id=house.community_id
                )

                return _to_house(saved)

        except (DuplicateRecordError, LookupError):
            raise
        except Exception as e:
            logger.error("house_save_failed", error=str(e), house_id=house.house_id)
            raise

    async def get_by_house_id(self, house_id: str) -> Optional[House]:
        """
        Get house by its public ID.

        Args:
            house_id: House ID

        Returns:
            House or None if not found
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(_SELECT_HOUSE + " WHERE h.house_id = $1", house_id)

                if not row:
                    logger.debug("house_not_found", house_id=house_id)
                    return None

                return _to_house(row)

        except Exception as e:
            logger.error("house_get_failed", error=str(e), house_id=house_id)
            raise

    async def list_houses(self, page_request: PageRequest) -> Page[House]:
        """List all houses with pagination."""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    _SELECT_HOUSE + " ORDER BY h.id LIMIT $1 OFFSET $2",
                    page_request.page_size,
                    page_request.offset
                )
                total = await conn.fetchval("SELECT COUNT(*) FROM houses")

                return Page.of([_to_house(row) for row in rows], page_request, total)

        except Exception as e:
            logger.error(
                "house_list_failed",
                error=str(e),
                page=page_request.page_number,
                size=page_request.page_size
            )
            raise

    async def list_by_community(
        self,
        community_id: str,
        page_request: PageRequest
    ) -> Page[House]:
        """
        List the houses of one community with pagination.

        Args:
            community_id: Community ID
            page_request: Page to return

        Returns:
            Page of houses
        """
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    _SELECT_HOUSE
                    + " WHERE h.community_id = $1 ORDER BY h.id LIMIT $2 OFFSET $3",
                    community_id,
                    page_request.page_size,
                    page_request.offset
                )
                total = await conn.fetchval(
                    "SELECT COUNT(*) FROM houses WHERE community_id = $1",
                    community_id
                )

                return Page.of([_to_house(row) for row in rows], page_request, total)

        except Exception as e:
            logger.error("house_list_by_community_failed", error=str(e), community_id=community_id)
            raise

    async def delete_house(self, house_id: str, community_id: Optional[str] = None) -> bool:
        """
        Delete a house and its members.

        Args:
            house_id: House ID
            community_id: Only delete when the house belongs to this community

        Returns:
            True if deleted, False if not found
        """
        try:
            async with self.pool.acquire() as conn:
                if community_id is None:
                    result = await conn.execute(
                        "DELETE FROM houses WHERE house_id = $1",
                        house_id
                    )
                else:
                    result = await conn.execute(
                        "DELETE FROM houses WHERE house_id = $1 AND community_id = $2",
                        house_id,
                        community_id
                    )

                deleted = rows_affected(result) > 0

                if deleted:
                    logger.info("house_deleted", house_id=house_id)
                else:
                    logger.debug("house_not_found", house_id=house_id)

                return deleted

        except Exception as e:
            logger.error("house_delete_failed", error=str(e), house_id=house_id)
            raise

    async def add_members(self, house_id: str, members: List[HouseMember]) -> List[HouseMember]:
        """
        Add members to a house.

        Args:
            house_id: House ID
            members: Members to insert (their ``house_id`` is overwritten)

        Returns:
            Inserted members with generated ``id``

        Raises:
            DuplicateRecordError: If a member ID is already taken
        """
        saved = []

        try:
            async with self.transaction() as conn:
                for member in members:
                    try:
                        row = await conn.fetchrow(
                            """
                            INSERT INTO house_members (member_id, name, house_id)
                            VALUES ($1, $2, $3)
                            RETURNING id, member_id, name, house_id
                            """,
                            member.member_id,
                            member.name,
                            house_id
                        )
                    except asyncpg.UniqueViolationError:
                        logger.warning("house_member_already_exists", member_id=member.member_id)
                        raise DuplicateRecordError("HouseMember", member.member_id)

                    saved.append(_to_member(row))

            logger.info("house_members_added", house_id=house_id, count=len(saved))

            return saved

        except DuplicateRecordError:
            raise
        except Exception as e:
            logger.error("house_members_add_failed", error=str(e), house_id=house_id)
            raise

    async def get_member(self, member_id: str) -> Optional[HouseMember]:
        """Get a house member by its public ID, or None."""
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    "SELECT id, member_id, name, house_id FROM house_members WHERE member_id = $1",
                    member_id
                )

                if not row:
                    logger.debug("house_member_not_found", member_id=member_id)
                    return None

                return _to_member(row)

        except Exception as e:
            logger.error("house_member_get_failed", error=str(e), member_id=member_id)
            raise

    async def delete_member(self, house_id: str, member_id: str) -> bool:
        """
        Remove a member from a house.

        Returns:
            True if deleted, False if the house has no such member
        """
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute(
                    "DELETE FROM house_members WHERE house_id = $1 AND member_id = $2",
                    house_id,
                    member_id
                )

                deleted = rows_affected(result) > 0

                if deleted:
                    logger.info("house_member_deleted", house_id=house_id, member_id=member_id)
                else:
                    logger.debug("house_member_not_found", house_id=house_id, member_id=member_id)

                return deleted

        except Exception as e:
            logger.error(
                "house_member_delete_failed",
                error=str(e),
                house_id=house_id,
                member_id=member_id
            )
            raise

    async def list_members(
        self,
        house_id: str,
        page_request: PageRequest
    ) -> Page[HouseMember]:
        """
        List the members of one house with pagination.

        Args:
            house_id: House ID
            page_request: Page to return

        Returns:
            Page of members
        """
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    """
                    SELECT id, member_id, name, house_id
                    FROM house_members
                    WHERE house_id = $1
                    ORDER BY id
                    LIMIT $2 OFFSET $3
                    """,
                    house_id,
                    page_request.page_size,
                    page_request.offset
                )
                total = await conn.fetchval(
                    "SELECT COUNT(*) FROM house_members WHERE house_id = $1",
                    house_id
                )

                return Page.of([_to_member(row) for row in rows], page_request, total)

        except Exception as e:
            logger.error("house_member_list_failed", error=str(e), house_id=house_id)
            raise

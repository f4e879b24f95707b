"""
Amenity repository for database operations.

Amenities belong to one community. Their bookings live in the
``amenity_bookings`` table; a new booking is checked against the existing
ones of the same amenity while the amenity row is locked, so two
overlapping bookings can never both be stored.
"""

import asyncpg
import structlog
from typing import List, Optional

from myhome.errors import BookingConflictError, DuplicateRecordError
from myhome.models.domain import Amenity, AmenityBooking
from myhome.models.pagination import Page, PageRequest
from myhome.repositories.base import BaseRepository, rows_affected

logger = structlog.get_logger(__name__)

_AMENITY_COLUMNS = "id, amenity_id, community_id, name, description, price"
_BOOKING_COLUMNS = "id, booking_id, amenity_id, user_id, booking_start, booking_end"


def _to_amenity(row) -> Amenity:
    return Amenity(
        id=row["id"],
        amenity_id=row["amenity_id"],
        community_id=row["community_id"],
        name=row["name"],
        description=row["description"],
        price=row["price"],
    )


def _to_booking(row) -> AmenityBooking:
    return AmenityBooking(
        id=row["id"],
        booking_id=row["booking_id"],
        amenity_id=row["amenity_id"],
        user_id=row["user_id"],
        booking_start=row["booking_start"],
        booking_end=row["booking_end"],
    )


class AmenityRepository(BaseRepository):
    """Repository for amenities and their bookings."""

    async def add_amenities(self, amenities: List[Amenity]) -> List[Amenity]:
        """
        Insert amenities in one transaction.

        Raises:
            DuplicateRecordError: If an amenity ID is already taken
        """
        saved = []

        try:
            async with self.transaction() as conn:
                for amenity in amenities:
                    try:
                        row = await conn.fetchrow(
                            f"""
                            INSERT INTO amenities (amenity_id, community_id, name, description, price)
                            VALUES ($1, $2, $3, $4, $5)
                            RETURNING {_AMENITY_COLUMNS}
                            """,
                            amenity.amenity_id,
                            amenity.community_id,
                            amenity.name,
                            amenity.description,
                            amenity.price
                        )
                    except asyncpg.UniqueViolationError:
                        logger.warning("amenity_already_exists", amenity_id=amenity.amenity_id)
                        raise DuplicateRecordError("Amenity", amenity.amenity_id)

                    saved.append(_to_amenity(row))

            logger.info("amenities_added", count=len(saved))

            return saved

        except DuplicateRecordError:
            raise
        except Exception as e:
            logger.error("amenities_add_failed", error=str(e))
            raise

    async def update_amenity(self, amenity: Amenity) -> Optional[Amenity]:
        """
        Overwrite name, description and price of an amenity.

        Returns:
            Updated amenity, or None if it no longer exists
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    UPDATE amenities
                    SET name = $1, description = $2, price = $3
                    WHERE amenity_id = $4
                    RETURNING {_AMENITY_COLUMNS}
                    """,
                    amenity.name,
                    amenity.description,
                    amenity.price,
                    amenity.amenity_id
                )

                if not row:
                    logger.debug("amenity_not_found", amenity_id=amenity.amenity_id)
                    return None

                logger.info("amenity_updated", amenity_id=amenity.amenity_id)
                return _to_amenity(row)

        except Exception as e:
            logger.error("amenity_update_failed", error=str(e), amenity_id=amenity.amenity_id)
            raise

    async def get_by_amenity_id(self, amenity_id: str) -> Optional[Amenity]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {_AMENITY_COLUMNS} FROM amenities WHERE amenity_id = $1",
                    amenity_id
                )

                if not row:
                    logger.debug("amenity_not_found", amenity_id=amenity_id)
                    return None

                return _to_amenity(row)

        except Exception as e:
            logger.error("amenity_get_failed", error=str(e), amenity_id=amenity_id)
            raise

    async def list_by_community(
        self,
        community_id: str,
        page_request: PageRequest
    ) -> Page[Amenity]:
        """
        List the amenities of one community with pagination.

        Args:
            community_id: Community ID
            page_request: Page to return

        Returns:
            Page of amenities
        """
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {_AMENITY_COLUMNS} FROM amenities
                    WHERE community_id = $1
                    ORDER BY id
                    LIMIT $2 OFFSET $3
                    """,
                    community_id,
                    page_request.page_size,
                    page_request.offset
                )
                total = await conn.fetchval(
                    "SELECT COUNT(*) FROM amenities WHERE community_id = $1",
                    community_id
                )

                return Page.of([_to_amenity(row) for row in rows], page_request, total)

        except Exception as e:
            logger.error("amenity_list_failed", error=str(e), community_id=community_id)
            raise

    async def delete_amenity(self, amenity_id: str) -> bool:
        """
        Delete an amenity together with its bookings.

        Returns:
            True if deleted, False if not found
        """
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute(
                    "DELETE FROM amenities WHERE amenity_id = $1",
                    amenity_id
                )

                deleted = rows_affected(result) > 0

                if deleted:
                    logger.info("amenity_deleted", amenity_id=amenity_id)
                else:
                    logger.debug("amenity_not_found", amenity_id=amenity_id)

                return deleted

        except Exception as e:
            logger.error("amenity_delete_failed", error=str(e), amenity_id=amenity_id)
            raise

    # ------------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------------

    async def create_booking(self, booking: AmenityBooking) -> Optional[AmenityBooking]:
        """
        Store a booking unless it overlaps another booking of the amenity.

        Spans are half-open: a booking ending at 10:00 does not clash with
        one starting at 10:00.

        Returns:
            Stored booking, or None if the amenity does not exist

        Raises:
            BookingConflictError: If the span overlaps an existing booking
            DuplicateRecordError: If the booking ID is already taken
        """
        try:
            async with self.transaction() as conn:
                locked = await conn.fetchval(
                    "SELECT id FROM amenities WHERE amenity_id = $1 FOR UPDATE",
                    booking.amenity_id
                )
                if locked is None:
                    logger.debug("amenity_not_found", amenity_id=booking.amenity_id)
                    return None

                clash = await conn.fetchval(
                    """
                    SELECT booking_id FROM amenity_bookings
                    WHERE amenity_id = $1 AND booking_start < $3 AND booking_end > $2
                    ORDER BY booking_start
                    LIMIT 1
                    """,
                    booking.amenity_id,
                    booking.booking_start,
                    booking.booking_end
                )
                if clash is not None:
                    logger.info(
                        "amenity_booking_conflict",
                        amenity_id=booking.amenity_id,
                        conflicting_booking_id=clash
                    )
                    raise BookingConflictError(booking.amenity_id, clash)

                try:
                    row = await conn.fetchrow(
                        f"""
                        INSERT INTO amenity_bookings
                            (booking_id, amenity_id, user_id, booking_start, booking_end)
                        VALUES ($1, $2, $3, $4, $5)
                        RETURNING {_BOOKING_COLUMNS}
                        """,
                        booking.booking_id,
                        booking.amenity_id,
                        booking.user_id,
                        booking.booking_start,
                        booking.booking_end
                    )
                except asyncpg.UniqueViolationError:
                    logger.warning("amenity_booking_already_exists", booking_id=booking.booking_id)
                    raise DuplicateRecordError("AmenityBooking", booking.booking_id)

                logger.info(
                    "amenity_booked",
                    amenity_id=booking.amenity_id,
                    booking_id=booking.booking_id,
                    user_id=booking.user_id
                )

                return _to_booking(row)

        except (BookingConflictError, DuplicateRecordError):
            raise
        except Exception as e:
            logger.error("amenity_booking_failed", error=str(e), amenity_id=booking.amenity_id)
            raise

    async def get_booking(self, amenity_id: str, booking_id: str) -> Optional[AmenityBooking]:
        """Booking ``booking_id`` of ``amenity_id``; None if absent or of another amenity."""
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"""
                    SELECT {_BOOKING_COLUMNS} FROM amenity_bookings
                    WHERE amenity_id = $1 AND booking_id = $2
                    """,
                    amenity_id,
                    booking_id
                )

                return _to_booking(row) if row else None

        except Exception as e:
            logger.error("amenity_booking_get_failed", error=str(e), booking_id=booking_id)
            raise

    async def list_bookings(
        self,
        amenity_id: str,
        page_request: PageRequest
    ) -> Page[AmenityBooking]:
        """List the bookings of an amenity, earliest first."""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {_BOOKING_COLUMNS} FROM amenity_bookings
                    WHERE amenity_id = $1
                    ORDER BY booking_start, id
                    LIMIT $2 OFFSET $3
                    """,
                    amenity_id,
                    page_request.page_size,
                    page_request.offset
                )
                total = await conn.fetchval(
                    "SELECT COUNT(*) FROM amenity_bookings WHERE amenity_id = $1",
                    amenity_id
                )

                return Page.of([_to_booking(row) for row in rows], page_request, total)

        except Exception as e:
            logger.error("amenity_booking_list_failed", error=str(e), amenity_id=amenity_id)
            raise

    async def delete_booking(self, amenity_id: str, booking_id: str) -> bool:
        """
        Cancel a booking of an amenity.

        Returns:
            True if deleted, False if the amenity has no such booking
        """
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute(
                    "DELETE FROM amenity_bookings WHERE amenity_id = $1 AND booking_id = $2",
                    amenity_id,
                    booking_id
                )

                deleted = rows_affected(result) > 0

                if deleted:
                    logger.info("amenity_booking_deleted", amenity_id=amenity_id, booking_id=booking_id)
                else:
                    logger.debug("amenity_booking_not_found", amenity_id=amenity_id, booking_id=booking_id)

                return deleted

        except Exception as e:
            logger.error("amenity_booking_delete_failed", error=str(e), booking_id=booking_id)
            raise

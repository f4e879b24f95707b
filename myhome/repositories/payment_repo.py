"""
Payment repository for database operations.
"""

import asyncpg
import structlog
from typing import Optional

from myhome.errors import DuplicateRecordError
from myhome.models.domain import Payment
from myhome.models.pagination import Page, PageRequest
from myhome.repositories.base import BaseRepository

logger = structlog.get_logger(__name__)

_PAYMENT_COLUMNS = (
    "p.id, p.payment_id, p.charge, p.type, p.description, p.recurring, "
    "p.due_date, p.admin_id, p.member_id"
)


def _to_payment(row) -> Payment:
    return Payment(
        id=row["id"],
        payment_id=row["payment_id"],
        charge=row["charge"],
        type=row["type"],
        description=row["description"],
        recurring=row["recurring"],
        due_date=row["due_date"],
        admin_id=row["admin_id"],
        member_id=row["member_id"],
    )


class PaymentRepository(BaseRepository):
    """Repository for scheduled payments."""

    async def save_payment(self, payment: Payment) -> Payment:
        """
        Insert a scheduled payment.

        Raises:
            DuplicateRecordError: If the payment ID is already taken
            asyncpg.PostgresError: On database error, including an unknown member
        """
        try:
            async with self.pool.acquire() as conn:
                try:
                    row = await conn.fetchrow(
                        f"""
                        INSERT INTO payments AS p
                            (payment_id, charge, type, description, recurring,
                             due_date, admin_id, member_id)
                        VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                        RETURNING {_PAYMENT_COLUMNS}
                        """,
                        payment.payment_id,
                        payment.charge,
                        payment.type,
                        payment.description,
                        payment.recurring,
                        payment.due_date,
                        payment.admin_id,
                        payment.member_id
                    )
                except asyncpg.UniqueViolationError:
                    logger.warning("payment_already_exists", payment_id=payment.payment_id)
                    raise DuplicateRecordError("Payment", payment.payment_id)

                logger.info(
                    "payment_scheduled",
                    payment_id=payment.payment_id,
                    member_id=payment.member_id,
                    admin_id=payment.admin_id
                )

                return _to_payment(row)

        except DuplicateRecordError:
            raise
        except Exception as e:
            logger.error("payment_save_failed", error=str(e), payment_id=payment.payment_id)
            raise

    async def get_by_payment_id(self, payment_id: str) -> Optional[Payment]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {_PAYMENT_COLUMNS} FROM payments p WHERE p.payment_id = $1",
                    payment_id
                )

                if not row:
                    logger.debug("payment_not_found", payment_id=payment_id)
                    return None

                return _to_payment(row)

        except Exception as e:
            logger.error("payment_get_failed", error=str(e), payment_id=payment_id)
            raise

    async def list_by_member(self, member_id: str, page_request: PageRequest) -> Page[Payment]:
        """Payments scheduled for one house member, by due date."""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {_PAYMENT_COLUMNS} FROM payments p
                    WHERE p.member_id = $1
                    ORDER BY p.due_date, p.id
                    LIMIT $2 OFFSET $3
                    """,
                    member_id,
                    page_request.page_size,
                    page_request.offset
                )
                total = await conn.fetchval(
                    "SELECT COUNT(*) FROM payments WHERE member_id = $1",
                    member_id
                )

                return Page.of([_to_payment(row) for row in rows], page_request, total)

        except Exception as e:
            logger.error("payment_list_by_member_failed", error=str(e), member_id=member_id)
            raise

    async def list_by_admin(
        self,
        community_id: str,
        admin_id: str,
        page_request: PageRequest
    ) -> Page[Payment]:
        """
        Payments an admin scheduled for members of one community.

        Args:
            community_id: Community the members' houses belong to
            admin_id: Admin who scheduled the payments
            page_request: Page to return

        Returns:
            Page of payments, by due date
        """
        scope = """
            FROM payments p
            JOIN house_members m ON m.member_id = p.member_id
            JOIN houses h ON h.house_id = m.house_id
            WHERE p.admin_id = $1 AND h.community_id = $2
        """

        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"SELECT {_PAYMENT_COLUMNS} {scope} ORDER BY p.due_date, p.id LIMIT $3 OFFSET $4",
                    admin_id,
                    community_id,
                    page_request.page_size,
                    page_request.offset
                )
                total = await conn.fetchval(f"SELECT COUNT(*) {scope}", admin_id, community_id)

                return Page.of([_to_payment(row) for row in rows], page_request, total)

        except Exception as e:
            logger.error(
                "payment_list_by_admin_failed",
                error=str(e),
                community_id=community_id,
                admin_id=admin_id
            )
            raise

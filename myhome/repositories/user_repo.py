"""
User repository for database operations.

Provides async operations for user accounts using asyncpg with PostgreSQL.
"""

import asyncpg
import structlog
from typing import Optional

from myhome.errors import DuplicateRecordError
from myhome.models.domain import UserDB
from myhome.models.pagination import Page, PageRequest
from myhome.repositories.base import BaseRepository

logger = structlog.get_logger(__name__)

_USER_COLUMNS = "id, user_id, name, email, email_confirmed, encrypted_password, created_at"


def _to_user(row) -> UserDB:
    return UserDB(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        email=row["email"],
        email_confirmed=row["email_confirmed"],
        encrypted_password=row["encrypted_password"],
        created_at=row["created_at"]
    )


class UserRepository(BaseRepository):
    """Repository for user database operations."""

    async def create_user(self, user: UserDB) -> UserDB:
        """
        Create a new user.

        Args:
            user: User to insert; ``encrypted_password`` must already be hashed

        Returns:
            Created user

        Raises:
            DuplicateRecordError: If the user ID or email already exists
            asyncpg.PostgresError: On database error
        """
        try:
            async with self.pool.acquire() as conn:
                try:
                    row = await conn.fetchrow(
                        f"""
                        INSERT INTO users (user_id, name, email, email_confirmed, encrypted_password)
                        VALUES ($1, $2, $3, $4, $5)
                        RETURNING {_USER_COLUMNS}
                        """,
                        user.user_id,
                        user.name,
                        user.email,
                        user.email_confirmed,
                        user.encrypted_password
                    )
                except asyncpg.UniqueViolationError as e:
                    if "email" in str(e):
                        logger.warning("email_already_exists", email=user.email)
                        raise DuplicateRecordError("User", user.email)
                    logger.warning("user_already_exists", user_id=user.user_id)
                    raise DuplicateRecordError("User", user.user_id)

                logger.info("user_created", user_id=user.user_id)

                return _to_user(row)

        except DuplicateRecordError:
            raise
        except Exception as e:
            logger.error("user_create_failed", error=str(e), user_id=user.user_id)
            raise

    async def get_by_user_id(self, user_id: str) -> Optional[UserDB]:
        """
        Get user by public ID.

        Args:
            user_id: User ID

        Returns:
            User or None if not found
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {_USER_COLUMNS} FROM users WHERE user_id = $1",
                    user_id
                )

                if not row:
                    logger.debug("user_not_found", user_id=user_id)
                    return None

                return _to_user(row)

        except Exception as e:
            logger.error("user_get_by_id_failed", error=str(e), user_id=user_id)
            raise

    async def get_by_email(self, email: str) -> Optional[UserDB]:
        """
        Get user by email.

        Args:
            email: Email address

        Returns:
            User or None if not found
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"SELECT {_USER_COLUMNS} FROM users WHERE email = $1",
                    email
                )

                if not row:
                    logger.debug("user_not_found", email=email)
                    return None

                return _to_user(row)

        except Exception as e:
            logger.error("user_get_by_email_failed", error=str(e), email=email)
            raise

    async def list_users(self, page_request: PageRequest) -> Page[UserDB]:
        """
        List users with pagination, oldest first.

        Args:
            page_request: Page to return

        Returns:
            Page of users
        """
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    f"""
                    SELECT {_USER_COLUMNS}
                    FROM users
                    ORDER BY created_at, id
                    LIMIT $1 OFFSET $2
                    """,
                    page_request.page_size,
                    page_request.offset
                )
                total = await conn.fetchval("SELECT COUNT(*) FROM users")

                return Page.of([_to_user(row) for row in rows], page_request, total)

        except Exception as e:
            logger.error(
                "user_list_failed",
                error=str(e),
                page=page_request.page_number,
                size=page_request.page_size
            )
            raise

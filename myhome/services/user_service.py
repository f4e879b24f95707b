"""
User account service.
"""

import uuid

import structlog
from typing import Optional

from myhome.errors import DuplicateRecordError
from myhome.models.auth import CreateUserRequest
from myhome.models.domain import UserDB
from myhome.models.pagination import Page, PageRequest
from myhome.repositories.user_repo import UserRepository
from myhome.services.auth_service import AuthService
from shared.metrics import ServiceMetrics, get_service_metrics

logger = structlog.get_logger(__name__)


class UserService:
    """Registers users and looks them up."""

    def __init__(
        self,
        user_repo: UserRepository,
        auth_service: AuthService,
        metrics: Optional[ServiceMetrics] = None
    ):
        self.user_repo = user_repo
        self.auth_service = auth_service
        self.metrics = metrics or get_service_metrics()

    async def create_user(self, request: CreateUserRequest) -> Optional[UserDB]:
        """
        Register a new user with a generated ID and a hashed password.

        Args:
            request: Sign-up data

        Returns:
            Created user, or None when the email is already registered
        """
        if await self.user_repo.get_by_email(request.email):
            logger.info("user_email_taken", email=request.email)
            return None

        user = UserDB(
            user_id=str(uuid.uuid4()),
            name=request.name,
            email=request.email,
            encrypted_password=self.auth_service.hash_password(request.password)
        )

        try:
            created = await self.user_repo.create_user(user)
        except DuplicateRecordError:
            return None

        self.metrics.records_created.labels(entity="user").inc()
        return created

    async def get_user_details(self, user_id: str) -> Optional[UserDB]:
        return await self.user_repo.get_by_user_id(user_id)

    async def find_user_by_email(self, email: str) -> Optional[UserDB]:
        return await self.user_repo.get_by_email(email)

    async def list_all(self, page_request: PageRequest) -> Page[UserDB]:
        return await self.user_repo.list_users(page_request)

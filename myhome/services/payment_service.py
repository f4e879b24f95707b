"""
Payment service.

Admins schedule charges for the members of houses in communities they
administer; members and admins can then list them.
"""

import uuid

import structlog
from typing import Optional

from myhome.errors import AccessDeniedError
from myhome.models.domain import Payment
from myhome.models.pagination import Page, PageRequest
from myhome.models.payment import SchedulePaymentRequest
from myhome.repositories.community_repo import CommunityRepository
from myhome.repositories.house_repo import HouseRepository
from myhome.repositories.payment_repo import PaymentRepository
from shared.metrics import ServiceMetrics, get_service_metrics

logger = structlog.get_logger(__name__)


class PaymentService:
    """Business operations on scheduled payments."""

    def __init__(
        self,
        payment_repo: PaymentRepository,
        house_repo: HouseRepository,
        community_repo: CommunityRepository,
        metrics: Optional[ServiceMetrics] = None
    ):
        self.payment_repo = payment_repo
        self.house_repo = house_repo
        self.community_repo = community_repo
        self.metrics = metrics or get_service_metrics()

    async def schedule_payment(
        self,
        request: SchedulePaymentRequest,
        admin_id: str
    ) -> Optional[Payment]:
        """
        Schedule a payment for a house member.

        Args:
            request: Member, charge and due date
            admin_id: Caller scheduling the payment

        Returns:
            The payment, or None when the member does not exist

        Raises:
            AccessDeniedError: ``admin_id`` does not administer the
                community of the member's house
        """
        member = await self.house_repo.get_member(request.member_id)
        if member is None:
            return None

        house = await self.house_repo.get_by_house_id(member.house_id)
        community_id = house.community_id if house else ""
        community = await self.community_repo.get_by_community_id(community_id)
        if community is None or admin_id not in community.admins:
            logger.info("payment_schedule_denied", member_id=member.member_id, admin_id=admin_id)
            raise AccessDeniedError(admin_id, community_id)

        payment = await self.payment_repo.save_payment(
            Payment(
                payment_id=str(uuid.uuid4()),
                charge=request.charge,
                type=request.type,
                description=request.description,
                recurring=request.recurring,
                due_date=request.due_date,
                admin_id=admin_id,
                member_id=member.member_id
            )
        )
        self.metrics.records_created.labels(entity="payment").inc()

        return payment

    async def get_payment_details(self, payment_id: str) -> Optional[Payment]:
        return await self.payment_repo.get_by_payment_id(payment_id)

    async def get_member_payments(
        self,
        member_id: str,
        page_request: PageRequest
    ) -> Optional[Page[Payment]]:
        """Payments of a member, or None when the member does not exist."""
        if await self.house_repo.get_member(member_id) is None:
            return None
        return await self.payment_repo.list_by_member(member_id, page_request)

    async def get_admin_payments(
        self,
        community_id: str,
        admin_id: str,
        page_request: PageRequest
    ) -> Optional[Page[Payment]]:
        """
        Payments ``admin_id`` scheduled in one community.

        Returns:
            Page of payments, or None when the community does not exist or
            ``admin_id`` is not one of its admins
        """
        community = await self.community_repo.get_by_community_id(community_id)
        if community is None or admin_id not in community.admins:
            return None
        return await self.payment_repo.list_by_admin(community_id, admin_id, page_request)

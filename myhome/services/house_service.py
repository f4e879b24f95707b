"""
House service.
"""

import uuid

import structlog
from typing import Iterable, List, Optional

from myhome.models.domain import House, HouseMember
from myhome.models.pagination import Page, PageRequest
from myhome.repositories.house_repo import HouseRepository
from shared.metrics import ServiceMetrics, get_service_metrics

logger = structlog.get_logger(__name__)


class HouseService:
    """Business operations on houses and their members."""

    def __init__(self, house_repo: HouseRepository, metrics: Optional[ServiceMetrics] = None):
        self.house_repo = house_repo
        self.metrics = metrics or get_service_metrics()

    async def list_all_houses(self, page_request: PageRequest) -> Page[House]:
        return await self.house_repo.list_houses(page_request)

    async def get_house_details(self, house_id: str) -> Optional[House]:
        return await self.house_repo.get_by_house_id(house_id)

    async def add_house_members(
        self,
        house_id: str,
        member_names: Iterable[str]
    ) -> List[HouseMember]:
        """
        Add members to a house, generating an ID for each.

        Args:
            house_id: House ID
            member_names: Names of the members to add

        Returns:
            Added members; empty when the house does not exist
        """
        if await self.house_repo.get_by_house_id(house_id) is None:
            logger.debug("house_not_found", house_id=house_id)
            return []

        members = [
            HouseMember(member_id=str(uuid.uuid4()), name=name, house_id=house_id)
            for name in member_names
        ]
        if not members:
            return []

        added = await self.house_repo.add_members(house_id, members)
        self.metrics.records_created.labels(entity="house_member").inc(len(added))

        return added

    async def delete_member_from_house(self, house_id: str, member_id: str) -> bool:
        deleted = await self.house_repo.delete_member(house_id, member_id)
        if deleted:
            self.metrics.records_deleted.labels(entity="house_member").inc()
        return deleted

    async def get_house_members(
        self,
        house_id: str,
        page_request: PageRequest
    ) -> Optional[Page[HouseMember]]:
        """
        Page through the members of a house.

        Returns:
            Page of members, or None when the house does not exist
        """
        if await self.house_repo.get_by_house_id(house_id) is None:
            return None
        return await self.house_repo.list_members(house_id, page_request)

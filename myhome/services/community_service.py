"""
Community service.

Orchestrates the community, community admin and house repositories:
community creation with the creator as first admin, admin and house
membership changes, and paged lookups scoped to one community.
"""

import uuid

import structlog
from typing import Iterable, Optional, Set

from myhome.models.community import CreateCommunityRequest
from myhome.models.domain import Community, CommunityAdmin, House
from myhome.models.pagination import Page, PageRequest
from myhome.repositories.community_admin_repo import CommunityAdminRepository
from myhome.repositories.community_repo import CommunityRepository
from myhome.repositories.house_repo import HouseRepository
from shared.metrics import ServiceMetrics, get_service_metrics

logger = structlog.get_logger(__name__)

_HOUSE_SCAN_PAGE_SIZE = 500


class CommunityService:
    """Business operations on communities."""

    def __init__(
        self,
        community_repo: CommunityRepository,
        community_admin_repo: CommunityAdminRepository,
        house_repo: HouseRepository,
        metrics: Optional[ServiceMetrics] = None
    ):
        """
        Initialize community service.

        Args:
            community_repo: Community repository
            community_admin_repo: Community admin repository
            house_repo: House repository
            metrics: Metrics to record created and deleted records on
        """
        self.community_repo = community_repo
        self.community_admin_repo = community_admin_repo
        self.house_repo = house_repo
        self.metrics = metrics or get_service_metrics()

    async def create_community(
        self,
        request: CreateCommunityRequest,
        creator_id: str
    ) -> Community:
        """
        Create a community with a generated ID and make its creator an admin.

        Args:
            request: Community name and district
            creator_id: ID of the authenticated user creating the community

        Returns:
            Created community including the creator in ``admins``
        """
        community = await self.community_repo.save_community(
            Community(
                community_id=str(uuid.uuid4()),
                name=request.name,
                district=request.district
            )
        )

        await self.community_admin_repo.link_admin(community.community_id, creator_id)

        logger.info(
            "community_created",
            community_id=community.community_id,
            creator_id=creator_id
        )
        self.metrics.records_created.labels(entity="community").inc()

        return await self.community_repo.get_by_community_id(community.community_id)

    async def list_all(self, page_request: PageRequest) -> Page[Community]:
        return await self.community_repo.list_communities(page_request)

    async def get_community_details(self, community_id: str) -> Optional[Community]:
        return await self.community_repo.get_by_community_id(community_id)

    async def find_community_admins(
        self,
        community_id: str,
        page_request: PageRequest
    ) -> Optional[Page[CommunityAdmin]]:
        """
        Page through the admins of a community.

        Returns:
            Page of admins, or None when the community does not exist
        """
        if not await self.community_repo.exists(community_id):
            return None
        return await self.community_admin_repo.list_by_community(community_id, page_request)

    async def find_community_houses(
        self,
        community_id: str,
        page_request: PageRequest
    ) -> Optional[Page[House]]:
        """
        Page through the houses of a community.

        Returns:
            Page of houses, or None when the community does not exist
        """
        if not await self.community_repo.exists(community_id):
            return None
        return await self.house_repo.list_by_community(community_id, page_request)

    async def add_admins_to_community(
        self,
        community_id: str,
        admin_ids: Iterable[str]
    ) -> Optional[Community]:
        """
        Make the given admins administrators of a community.

        Admins that do not exist yet are created.

        Args:
            community_id: Community ID
            admin_ids: IDs of the admins to add

        Returns:
            Updated community, or None when the community does not exist
        """
        if not await self.community_repo.exists(community_id):
            logger.debug("community_not_found", community_id=community_id)
            return None

        for admin_id in admin_ids:
            await self.community_admin_repo.link_admin(community_id, admin_id)

        community = await self.community_repo.get_by_community_id(community_id)

        logger.info(
            "community_admins_added",
            community_id=community_id,
            admins=len(community.admins)
        )

        return community

    async def add_houses_to_community(
        self,
        community_id: str,
        house_names: Iterable[str]
    ) -> Set[str]:
        """
        Create houses in a community.

        A name already used by a house of the community is skipped.

        Args:
            community_id: Community ID
            house_names: Names of the houses to create

        Returns:
            IDs of the created houses; empty when the community does not exist
        """
        community = await self.community_repo.get_by_community_id(community_id)
        if community is None:
            logger.debug("community_not_found", community_id=community_id)
            return set()

        existing_names = await self._house_names(community_id)
        added: Set[str] = set()

        for name in house_names:
            if name in existing_names:
                logger.debug("house_name_taken", community_id=community_id, name=name)
                continue

            house = await self.house_repo.save_house(
                House(house_id=str(uuid.uuid4()), community_id=community_id, name=name)
            )
            existing_names.add(name)
            added.add(house.house_id)

        if added:
            logger.info("community_houses_added", community_id=community_id, houses=len(added))
            self.metrics.records_created.labels(entity="house").inc(len(added))

        return added

    async def remove_admin_from_community(self, community_id: str, admin_id: str) -> bool:
        """
        Revoke an admin's rights over a community.

        Returns:
            True if removed, False if the admin was not linked to the community
        """
        removed = await self.community_repo.remove_admin(community_id, admin_id)
        if removed:
            logger.info("community_admin_removed", community_id=community_id, admin_id=admin_id)
        return removed

    async def remove_house_from_community(self, community_id: str, house_id: str) -> bool:
        """
        Delete a house of a community together with its members.

        Returns:
            True if removed, False if the house does not belong to the community
        """
        removed = await self.house_repo.delete_house(house_id, community_id=community_id)
        if removed:
            logger.info("community_house_removed", community_id=community_id, house_id=house_id)
            self.metrics.records_deleted.labels(entity="house").inc()
        return removed

    async def delete_community(self, community_id: str) -> bool:
        """
        Delete a community, its houses and their members.

        Returns:
            True if deleted, False if not found
        """
        deleted = await self.community_repo.delete_community(community_id)
        if deleted:
            self.metrics.records_deleted.labels(entity="community").inc()
        return deleted

    async def _house_names(self, community_id: str) -> Set[str]:
        names: Set[str] = set()
        page_request = PageRequest(page_number=0, page_size=_HOUSE_SCAN_PAGE_SIZE)

        while True:
            page = await self.house_repo.list_by_community(community_id, page_request)
            names.update(house.name for house in page.items)
            if len(page.items) < page_request.page_size:
                return names
            page_request = PageRequest(
                page_number=page_request.page_number + 1,
                page_size=page_request.page_size
            )
